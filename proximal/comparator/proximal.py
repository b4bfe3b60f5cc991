"""Proximal — сравнение значений с плавающей точкой с допуском в ULP.

Компаратор с фиксированным допуском N отвечает на вопрос «отличаются ли
два значения одной точности не более чем на 2^N ULP большего из них».

Порядок проверок operator():
1. a == b (IEEE-равенство: +0 == -0, значение равно самому себе) → True
2. Любой из операндов Inf/NaN → False (NaN не близок ничему, даже себе)
3. |a - b| <= margin(max(|a|, |b|))

Смешивание точностей (float32 и float64, float и int) отвергается
исключением — компаратор никогда не расширяет и не усекает операнды.
"""

import logging
from typing import Iterable, Optional

import numpy as np

from proximal.config import DEFAULT_TOLERANCE, ProximalConfig
from proximal.core.domain.formats import Precision, common_scalar_type
from proximal.core.math.ulp import margin as margin_at

logger = logging.getLogger(__name__)


class Proximal:
    """Предикат близости с допуском N (разница до 2^N ULP).

    Пример:
        close_enough = Proximal(tolerance=0)
        close_enough(1.0, 1.0 + 2.0 ** -52)  # True, ровно 1 ULP
    """

    def __init__(
        self,
        tolerance: int = DEFAULT_TOLERANCE,
        specializations: Optional[Iterable[Precision]] = None,
    ):
        """
        Args:
            tolerance: Допуск N (неотрицательное целое; 0 — один ULP)
            specializations: Точности с битовой специализацией
                (default: single, double, extended)

        Raises:
            pydantic.ValidationError: Если tolerance не неотрицательное целое
        """
        if specializations is None:
            self._config = ProximalConfig(tolerance=tolerance)
        else:
            self._config = ProximalConfig(
                tolerance=tolerance, specializations=frozenset(specializations)
            )
        logger.debug(
            "Proximal comparator created: tolerance=%d", self._config.tolerance
        )

    @classmethod
    def from_config(cls, config: ProximalConfig) -> "Proximal":
        """Компаратор из готовой конфигурации."""
        return cls(tolerance=config.tolerance, specializations=config.specializations)

    @property
    def tolerance(self) -> int:
        return self._config.tolerance

    @property
    def config(self) -> ProximalConfig:
        return self._config

    # -------------------------------------------------------------------------
    # ULP / margin
    # -------------------------------------------------------------------------

    def ulp(self, x: object) -> np.floating:
        """ULP значения x в его точности; 0 для Inf/NaN."""
        return margin_at(x, 0, self._config.specializations)

    def margin(self, x: object) -> np.floating:
        """Допуск компаратора на масштабе x; 0 для Inf/NaN."""
        return margin_at(x, self._config.tolerance, self._config.specializations)

    # -------------------------------------------------------------------------
    # Предикат
    # -------------------------------------------------------------------------

    def __call__(self, a: object, b: object) -> bool:
        """
        Близки ли a и b в пределах допуска.

        Args:
            a: Первое значение
            b: Второе значение той же точности

        Returns:
            True если |a - b| <= margin(max(|a|, |b|))

        Raises:
            UnsupportedPrecisionError: Если операнд не скаляр с плавающей точкой
            PrecisionMismatchError: Если точности операндов различаются
        """
        common_scalar_type(a, b)

        if a == b:
            return True

        if not (np.isfinite(a) and np.isfinite(b)):
            return False

        with np.errstate(over="ignore", under="ignore"):
            error = abs(a - b)
            scale = max(abs(a), abs(b))
        return bool(error <= self.margin(scale))

    # -------------------------------------------------------------------------
    # Value semantics
    # -------------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Proximal):
            return NotImplemented
        return self._config == other._config

    def __hash__(self) -> int:
        return hash(self._config)

    def __repr__(self) -> str:
        return f"Proximal(tolerance={self._config.tolerance})"
