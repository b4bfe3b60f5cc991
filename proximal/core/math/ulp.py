"""
ULP & Margin — расстояние до соседнего представимого значения

Модуль вычисляет:
- ulp(x): шаг между x и следующим представимым значением той же точности
  на масштабе x
- margin(x, n): максимальную абсолютную ошибку, считающуюся «в пределах
  допуска N» на масштабе x (2^N ULP)

Алгоритм margin(x, N):
    1. x = Inf/NaN → 0 (конечный допуск не имеет смысла)
    2. exp = ilog2(x) - fractional_precision(N)
    3. exp = max(exp, exponent_floor(N))
    4. результат = 2^exp (точная битовая композиция)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Допуск масштабируется с величиной x, но вычисляется арифметикой
   порядков, поэтому точен на любом масштабе, включая денормалы
2. Для малых x порядок ограничен снизу exponent_floor(N): допуск не
   вырождается в ноль
3. margin монотонно не убывает по N
"""

from typing import Iterable

import numpy as np

from proximal.core.domain.formats import Precision, scalar_type_of, traits_for_type
from proximal.core.domain.representation import (
    DEFAULT_SPECIALIZATIONS,
    representation_for_type,
    representation_type,
)

# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_tolerance(n: object) -> int:
    """
    Проверка допуска N.

    Args:
        n: Допуск в двоичных порядках ULP (0 — ровно один ULP)

    Returns:
        n как int

    Raises:
        TypeError: Если n не целое число (bool и float отвергаются)
        ValueError: Если n < 0
    """
    if isinstance(n, (bool, np.bool_)) or not isinstance(n, (int, np.integer)):
        raise TypeError(f"tolerance must be an int, got {type(n).__name__}")
    if n < 0:
        raise ValueError(f"tolerance must be non-negative, got {n}")
    return int(n)


# =============================================================================
# БАЗОВЫЕ ФУНКЦИИ
# =============================================================================


def exp2i(
    exp: int,
    scalar_type: type = np.float64,
    specializations: Iterable[Precision] = DEFAULT_SPECIALIZATIONS,
) -> np.floating:
    """
    Точная степень двойки заданной точности.

    Args:
        exp: Порядок
        scalar_type: Скалярный тип результата (numpy.float32, numpy.float64, ...)
        specializations: Точности с разрешённой битовой специализацией

    Returns:
        2^exp; денормал ниже минимального нормального порядка, ноль ниже
        наименьшего денормала, +Inf выше максимального порядка

    Examples:
        >>> exp2i(-1) == 0.5
        True
        >>> exp2i(-149, np.float32) == np.float32(1.401298464324817e-45)
        True
    """
    if scalar_type is float:
        scalar_type = np.float64
    return representation_for_type(scalar_type, specializations).power_of_two(exp)


def ilog2(
    x: object,
    specializations: Iterable[Precision] = DEFAULT_SPECIALIZATIONS,
) -> int:
    """
    Эффективный двоичный порядок x (аналог ilogb с учётом денормалов).

    Examples:
        >>> ilog2(1.0)
        0
        >>> ilog2(5e-324)
        -1074
    """
    representation = representation_type(x, specializations)
    return representation.from_value(x).effective_exponent()


# =============================================================================
# ULP / MARGIN
# =============================================================================


def margin(
    x: object,
    n: int,
    specializations: Iterable[Precision] = DEFAULT_SPECIALIZATIONS,
) -> np.floating:
    """
    Допуск N на масштабе x.

    margin(x, N) = 2^max(ilog2(x) - fractional_precision(N), exponent_floor(N))

    Args:
        x: Значение с плавающей точкой поддерживаемой точности
        n: Допуск (неотрицательное целое); допускается разница до 2^n ULP
        specializations: Точности с разрешённой битовой специализацией

    Returns:
        Допуск в точности x; 0 для Inf/NaN

    Raises:
        UnsupportedPrecisionError: Если x не скаляр с плавающей точкой
        TypeError / ValueError: Если n не неотрицательное целое

    Examples:
        >>> margin(1.0, 0) == 2.0 ** -52
        True
        >>> margin(1.0, 1) == 2.0 ** -51
        True
        >>> margin(float("inf"), 3) == 0.0
        True
    """
    n = validate_tolerance(n)
    scalar_type = scalar_type_of(x)
    traits = traits_for_type(scalar_type)

    if not np.isfinite(x):
        return traits.scalar_type(0.0)

    representation = representation_for_type(scalar_type, specializations)
    exp = representation.from_value(x).effective_exponent() - traits.fractional_precision(n)
    return representation.power_of_two(max(exp, traits.exponent_floor(n)))


def ulp(
    x: object,
    specializations: Iterable[Precision] = DEFAULT_SPECIALIZATIONS,
) -> np.floating:
    """
    Unit in the last place: margin(x, 0).

    Examples:
        >>> ulp(1.0) == 2.0 ** -52
        True
        >>> ulp(0.0) == 5e-324
        True
    """
    return margin(x, 0, specializations)
