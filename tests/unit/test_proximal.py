"""
Тесты для компаратора Proximal

Проверяет:
1. Граничные сценарии single / double / extended (1 и 2 ULP)
2. Рефлексивность, исключение NaN, правило бесконечностей
3. Монотонность по допуску и симметрию
4. ULP-соседство: x близок к next(x), но не к next(next(x)) при N = 0
5. ulp/margin компаратора, включая ноль
6. Отказ на смешанных точностях и не-float операндах
"""

import numpy as np
import pytest
from pydantic import ValidationError

from proximal.comparator import Proximal
from proximal.config import ProximalConfig
from proximal.core.domain.formats import (
    HAS_X87_EXTENDED,
    Precision,
    PrecisionMismatchError,
    UnsupportedPrecisionError,
)
from proximal.core.domain.representation import (
    DoubleRepresentation,
    ExtendedRepresentation,
    SingleRepresentation,
)

requires_x87 = pytest.mark.skipif(
    not HAS_X87_EXTENDED, reason="numpy.longdouble is not x87 extended on this platform"
)

EXTENDED_INTEGER_BIT = 0x8000000000000000


@pytest.fixture
def close_enough_0() -> Proximal:
    """Компаратор с допуском в один ULP"""
    return Proximal(tolerance=0)


@pytest.fixture
def close_enough_1() -> Proximal:
    """Компаратор с допуском в два ULP"""
    return Proximal(tolerance=1)


def _sample_values() -> list:
    return [
        0.0,
        -0.0,
        1.0,
        -1.5,
        5e-324,
        2.0**-1022,
        1.7976931348623157e308,
        np.float32(0.1),
        np.float32(-3.0e-40),
        np.float32(3.4028235e38),
        np.float16(0.5),
        np.float16(6.0e-8),
    ]


# =============================================================================
# ГРАНИЧНЫЕ СЦЕНАРИИ
# =============================================================================


class TestSingleScenarios:
    """float: (1, 1 + 1ulp) и (1, 1 + 2ulp) при N = 0"""

    def test_one_ulp_passes(self, close_enough_0: Proximal) -> None:
        """1 ULP в пределах допуска N = 0"""
        a = SingleRepresentation.from_fields(0, 0).value()
        b = SingleRepresentation.from_fields(0, 0x00000001).value()

        assert close_enough_0(a, b)

    def test_two_ulp_fails(self, close_enough_0: Proximal) -> None:
        """2 ULP вне допуска N = 0"""
        a = SingleRepresentation.from_fields(0, 0).value()
        b = SingleRepresentation.from_fields(0, 0x00000002).value()

        assert not close_enough_0(a, b)


class TestDoubleScenarios:
    """double: допуски N = 0 и N = 1"""

    def test_two_ulp_passes_with_tolerance_one(self, close_enough_1: Proximal) -> None:
        """(1, 1 + 2ulp) при N = 1 → True"""
        a = DoubleRepresentation.from_fields(0, 0).value()
        b = DoubleRepresentation.from_fields(0, 0x0000000000000002).value()

        assert close_enough_1(a, b)

    def test_two_ulp_fails_with_tolerance_zero(self, close_enough_0: Proximal) -> None:
        """(1, 1 + 2ulp) при N = 0 → False"""
        a = DoubleRepresentation.from_fields(0, 0).value()
        b = DoubleRepresentation.from_fields(0, 0x0000000000000002).value()

        assert not close_enough_0(a, b)

    def test_three_ulp_fails_with_tolerance_one(self, close_enough_1: Proximal) -> None:
        """(1, 1 + 3ulp) при N = 1 → False"""
        a = DoubleRepresentation.from_fields(0, 0).value()
        b = DoubleRepresentation.from_fields(0, 0x0000000000000003).value()

        assert not close_enough_1(a, b)


@requires_x87
class TestExtendedScenarios:
    """long double (x87): верх диапазона, окрестность денормалов, ноль"""

    def test_largest_binade_two_ulp_passes(self, close_enough_1: Proximal) -> None:
        """(2^16383, +2ulp) при N = 1 → True"""
        a = ExtendedRepresentation.from_fields(16383, EXTENDED_INTEGER_BIT).value()
        b = ExtendedRepresentation.from_fields(16383, EXTENDED_INTEGER_BIT + 2).value()

        assert close_enough_1(a, b)

    def test_near_underflow_two_ulp_fails(self, close_enough_0: Proximal) -> None:
        """(2^-16322, +2ulp) при N = 0 → False"""
        a = ExtendedRepresentation.from_fields(-16322, EXTENDED_INTEGER_BIT).value()
        b = ExtendedRepresentation.from_fields(-16322, EXTENDED_INTEGER_BIT + 2).value()

        assert not close_enough_0(a, b)

    def test_near_underflow_two_ulp_passes_with_tolerance_one(
        self, close_enough_1: Proximal
    ) -> None:
        """(2^-16322, +2ulp) при N = 1 → True"""
        a = ExtendedRepresentation.from_fields(-16322, EXTENDED_INTEGER_BIT).value()
        b = ExtendedRepresentation.from_fields(-16322, EXTENDED_INTEGER_BIT + 2).value()

        assert close_enough_1(a, b)

    def test_zero_and_smallest_denormal(self, close_enough_0: Proximal) -> None:
        """(0, наименьший денормал) при N = 0 → True"""
        a = ExtendedRepresentation.from_fields(-16383, 0x0000000000000000).value()
        b = ExtendedRepresentation.from_fields(-16383, 0x0000000000000001).value()

        assert a == 0
        assert close_enough_0(a, b)

    def test_ulp_of_extended(self) -> None:
        """ulp(1.0L) = 2^-63"""
        close_enough = Proximal(tolerance=0)
        assert close_enough.ulp(np.longdouble(1.0)) == ExtendedRepresentation.power_of_two(-63)


class TestHalfPrecision:
    """float16 через generic-путь"""

    def test_one_ulp_passes_two_fail(self, close_enough_0: Proximal) -> None:
        """Соседние float16 близки, через одно — нет"""
        one = np.float16(1.0)
        following = np.nextafter(one, np.float16(2.0))
        second = np.nextafter(following, np.float16(2.0))

        assert close_enough_0(one, following)
        assert not close_enough_0(one, second)


# =============================================================================
# СВОЙСТВА
# =============================================================================


class TestProperties:
    """Рефлексивность, NaN, бесконечности, монотонность, симметрия"""

    def test_reflexive(self, close_enough_0: Proximal) -> None:
        """x близок сам к себе для любого не-NaN x"""
        for x in _sample_values():
            assert close_enough_0(x, x)

        for x in (float("inf"), float("-inf"), np.float32(np.inf)):
            assert close_enough_0(x, x)

    def test_signed_zeros_are_equal(self, close_enough_0: Proximal) -> None:
        """+0 == -0"""
        assert close_enough_0(0.0, -0.0)
        assert close_enough_0(np.float32(-0.0), np.float32(0.0))

    def test_nan_is_never_close(self, close_enough_1: Proximal) -> None:
        """NaN не близок ничему, включая NaN"""
        nan = float("nan")
        for x in (nan, 0.0, 1.0, float("inf"), 5e-324):
            assert not close_enough_1(nan, x)
            assert not close_enough_1(x, nan)

        nan32 = np.float32(np.nan)
        assert not close_enough_1(nan32, nan32)

    def test_infinity_rule(self, close_enough_1: Proximal) -> None:
        """Inf близок только к самому себе"""
        inf = float("inf")
        assert close_enough_1(inf, inf)
        assert not close_enough_1(inf, 1.7976931348623157e308)
        assert not close_enough_1(1.7976931348623157e308, inf)
        assert not close_enough_1(inf, -inf)
        assert not close_enough_1(-inf, 0.0)

    def test_tolerance_counts_powers_of_two_ulps(self) -> None:
        """Допуск N принимает разницу до 2^N ULP"""
        for k in range(1, 20):
            b = DoubleRepresentation.from_fields(0, k).value()
            for n in range(5):
                assert Proximal(tolerance=n)(1.0, b) == (k <= 2**n)

    def test_monotonic_in_tolerance(self) -> None:
        """Близость при N1 влечёт близость при N2 > N1"""
        comparators = [Proximal(tolerance=n) for n in range(6)]
        pairs = [
            (1.0, 1.0 + 2.0**-50),
            (1e-310, 1.0000001e-310),
            (0.0, 2.0**-1070),
            (np.float32(100.0), np.float32(100.00002)),
        ]
        for a, b in pairs:
            results = [close_enough(a, b) for close_enough in comparators]
            for lower, higher in zip(results, results[1:]):
                assert not lower or higher

    def test_symmetric(self, close_enough_1: Proximal) -> None:
        """p(a, b) == p(b, a)"""
        values = [1.0, 1.0 + 2.0**-52, 1.0 + 2.0**-51, 1.0 + 2.0**-50, 0.0, 5e-324, -1.0]
        for a in values:
            for b in values:
                assert close_enough_1(a, b) == close_enough_1(b, a)

    def test_ulp_neighbourhood(self, close_enough_0: Proximal) -> None:
        """x близок к next(x), но не к next(next(x)) при N = 0"""
        for x in (0.0, 1.0, 1.25, -7.5, 1e-300, 1e300, 5e-324, 2.0**-1022):
            bits = DoubleRepresentation.from_value(x).bits
            following = DoubleRepresentation.from_bits(bits + 1).value()
            second = DoubleRepresentation.from_bits(bits + 2).value()

            assert close_enough_0(x, following)
            assert not close_enough_0(x, second)

        for x in (np.float32(1.0), np.float32(0.1), np.float32(3.0e-40)):
            bits = SingleRepresentation.from_value(x).bits
            following = SingleRepresentation.from_bits(bits + 1).value()
            second = SingleRepresentation.from_bits(bits + 2).value()

            assert close_enough_0(x, following)
            assert not close_enough_0(x, second)

    def test_opposite_extremes_do_not_overflow(self, close_enough_1: Proximal) -> None:
        """max и -max не близки; переполнение разности не поднимает ошибок"""
        big32 = np.float32(3.4028235e38)
        with np.errstate(all="raise"):
            assert not close_enough_1(big32, -big32)
        assert not close_enough_1(1.7976931348623157e308, -1.7976931348623157e308)

    def test_returns_bool(self, close_enough_1: Proximal) -> None:
        """Результат — bool, а не numpy.bool_"""
        assert type(close_enough_1(np.float32(1.0), np.float32(1.0))) is bool
        assert type(close_enough_1(np.float32(1.0), np.float32(2.0))) is bool


# =============================================================================
# ULP / MARGIN КОМПАРАТОРА
# =============================================================================


class TestComparatorUlpMargin:
    """Тесты Proximal.ulp / Proximal.margin"""

    def test_ulp_of_zero(self) -> None:
        """ULP нуля — наименьшая положительная величина"""
        close_enough = Proximal(tolerance=3)

        assert close_enough.ulp(0.0) == 5e-324
        assert close_enough.ulp(np.float32(0.0)) == np.float32(2.0**-149)
        assert isinstance(close_enough.ulp(np.float32(0.0)), np.float32)

    def test_margin_of_zero_uses_tolerance_floor(self) -> None:
        """margin(0) = 2^exponent_floor(N)"""
        assert Proximal(tolerance=3).margin(0.0) == 2.0**-1071
        assert Proximal(tolerance=0).margin(-0.0) == 5e-324

    def test_margin_of_normal_value(self) -> None:
        """margin(1.0) при N = 2 → 4 ULP"""
        close_enough = Proximal(tolerance=2)

        assert close_enough.margin(1.0) == 2.0**-50
        assert close_enough.ulp(1.0) == 2.0**-52

    def test_non_finite(self) -> None:
        """Inf/NaN → 0"""
        close_enough = Proximal()

        assert close_enough.ulp(float("inf")) == 0.0
        assert close_enough.margin(float("nan")) == 0.0

    def test_methods_reject_non_floating(self) -> None:
        """ulp/margin компаратора отвергают int"""
        with pytest.raises(UnsupportedPrecisionError):
            Proximal().ulp(1)

        with pytest.raises(UnsupportedPrecisionError):
            Proximal().margin(1)


# =============================================================================
# ГРАНИЦА ТИПОВ
# =============================================================================


class TestTypeBoundary:
    """Смешанные точности и не-float операнды отвергаются"""

    def test_mixed_precision_rejected(self, close_enough_1: Proximal) -> None:
        """float32 vs float64 → PrecisionMismatchError"""
        with pytest.raises(PrecisionMismatchError):
            close_enough_1(np.float32(1.0), 1.0)

        with pytest.raises(PrecisionMismatchError):
            close_enough_1(1.0, np.float32(1.0))

        with pytest.raises(PrecisionMismatchError):
            close_enough_1(np.float16(1.0), np.float32(1.0))

    def test_mismatch_rejected_even_for_equal_values(self, close_enough_1: Proximal) -> None:
        """Проверка типов выполняется до сравнения значений"""
        with pytest.raises(PrecisionMismatchError):
            close_enough_1(np.float32(0.5), 0.5)

    def test_non_floating_rejected(self, close_enough_1: Proximal) -> None:
        """int, bool, массивы → UnsupportedPrecisionError"""
        for a, b in ((1, 1), (1.0, 1), (True, 1.0), (np.array([1.0]), np.array([1.0]))):
            with pytest.raises(UnsupportedPrecisionError):
                close_enough_1(a, b)

    def test_python_float_and_float64_compatible(self, close_enough_1: Proximal) -> None:
        """float и numpy.float64 — одна точность"""
        assert close_enough_1(1.0, np.float64(1.0) + 2.0**-52)


# =============================================================================
# КОНСТРУИРОВАНИЕ
# =============================================================================


class TestConstruction:
    """Тесты конструктора и value semantics"""

    def test_default_tolerance(self) -> None:
        """Допуск по умолчанию — 1 (2 ULP)"""
        assert Proximal().tolerance == 1

    def test_invalid_tolerance_rejected(self) -> None:
        """Отрицательный, дробный, bool и строковый допуск отвергаются"""
        for tolerance in (-1, 1.5, True, "1"):
            with pytest.raises(ValidationError):
                Proximal(tolerance=tolerance)

    def test_from_config(self) -> None:
        """Компаратор из ProximalConfig"""
        config = ProximalConfig(tolerance=4, specializations=frozenset({Precision.SINGLE}))
        close_enough = Proximal.from_config(config)

        assert close_enough.tolerance == 4
        assert close_enough.config == config

    def test_generic_only_gives_same_answers(self) -> None:
        """Без специализаций сценарии double дают те же ответы"""
        generic = Proximal(tolerance=1, specializations=[])
        a = DoubleRepresentation.from_fields(0, 0).value()

        assert generic(a, DoubleRepresentation.from_fields(0, 2).value())
        assert not generic(a, DoubleRepresentation.from_fields(0, 3).value())
        assert generic.ulp(0.0) == 5e-324

    def test_value_semantics(self) -> None:
        """Равенство и хэш по конфигурации"""
        assert Proximal(2) == Proximal(tolerance=2)
        assert Proximal(2) != Proximal(3)
        assert len({Proximal(2), Proximal(2), Proximal(3)}) == 2
        assert repr(Proximal(2)) == "Proximal(tolerance=2)"
