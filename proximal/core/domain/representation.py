"""
Bit Representation — двустороннее отображение значение ↔ битовый образ

Для каждой точности модуль даёт представление, которое:
- строится из значения, из битового образа или из пары (порядок, мантисса)
- извлекает хранимый порядок, мантиссу и эффективный порядок (ilogb)
- строит значение, точно равное 2^exp (включая денормалы)
- меняет знак инверсией знакового бита

Специализации (single, double, x87 extended) работают прямой битовой
композицией. Для прочих типов используется generic-представление на основе
numpy.frexp / numpy.ldexp.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. from_value(x).value() бит-в-бит равно x
2. from_fields(exp, sig): поле порядка = exp + bias, поле мантиссы = sig & mask
3. Для денормалов эффективный порядок выводится из позиции первого
   установленного бита мантиссы
"""

import logging
from dataclasses import dataclass
from typing import ClassVar, Final, Iterable

import numpy as np

from proximal.core.domain.formats import (
    DOUBLE_TRAITS,
    EXTENDED_TRAITS,
    HAS_X87_EXTENDED,
    LONGDOUBLE_ITEMSIZE,
    SINGLE_TRAITS,
    FormatTraits,
    Precision,
    PrecisionMismatchError,
    UnsupportedPrecisionError,
    generic_traits,
    precision_of_type,
    scalar_type_of,
)
from proximal.core.math.bits import count_leading_zeros

logger = logging.getLogger(__name__)


# =============================================================================
# BITS80 — образ x87 extended
# =============================================================================

WORD16_MASK: Final[int] = 0xFFFF
WORD64_MASK: Final[int] = 0xFFFFFFFFFFFFFFFF

# Байты значащей части x87 extended (остальное — выравнивание)
EXTENDED_VALUE_BYTES: Final[int] = 10


@dataclass(frozen=True)
class Bits80:
    """Битовый образ extended: 16-битное старшее слово и 64-битное младшее."""

    high: int
    low: int

    def __post_init__(self) -> None:
        if not 0 <= self.high <= WORD16_MASK:
            raise ValueError(f"high word {self.high:#x} does not fit into 16 bits")
        if not 0 <= self.low <= WORD64_MASK:
            raise ValueError(f"low word {self.low:#x} does not fit into 64 bits")

    @classmethod
    def from_int(cls, u: int) -> "Bits80":
        if not 0 <= u < 1 << 80:
            raise ValueError(f"value {u:#x} does not fit into 80 bits")
        return cls(high=u >> 64, low=u & WORD64_MASK)

    def as_int(self) -> int:
        return (self.high << 64) | self.low


# =============================================================================
# БАЗОВОЕ ПРЕДСТАВЛЕНИЕ
# =============================================================================


class Representation:
    """
    Общий интерфейс представления значения.

    Подклассы задают traits и реализуют чтение/запись битового образа.
    """

    traits: ClassVar[FormatTraits]

    @classmethod
    def _check_value_type(cls, x: object) -> None:
        scalar_type = scalar_type_of(x)
        if scalar_type is not cls.traits.scalar_type:
            raise PrecisionMismatchError(
                f"{cls.__name__} expects {cls.traits.scalar_type.__name__}, "
                f"got {scalar_type.__name__}"
            )

    @classmethod
    def from_value(cls, x: object) -> "Representation":
        raise NotImplementedError

    @classmethod
    def from_bits(cls, bits: object) -> "Representation":
        raise NotImplementedError

    @classmethod
    def from_fields(cls, exponent: int, significand: int) -> "Representation":
        raise NotImplementedError

    @classmethod
    def power_of_two(cls, exp: int) -> np.floating:
        raise NotImplementedError

    @property
    def bits(self) -> object:
        raise NotImplementedError

    def value(self) -> np.floating:
        raise NotImplementedError

    def exponent(self) -> int:
        raise NotImplementedError

    def significand(self) -> int:
        raise NotImplementedError

    def effective_exponent(self) -> int:
        """
        Истинный двоичный порядок значения (ilogb).

        Для нуля и денормалов хранимый порядок фиксирован, поэтому порядок
        выводится из числа ведущих нулей в слове мантиссы за вычетом бит,
        не занятых дробной частью.
        """
        t = self.traits
        exp = self.exponent()
        if exp == t.denormal_exponent:  # денормал или ноль
            zeros = count_leading_zeros(self.significand(), t.significand_word_bits)
            return exp - (zeros - t.significand_offset)
        return exp

    def ilogb(self) -> int:
        """Синоним effective_exponent."""
        return self.effective_exponent()

    def negate(self) -> None:
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.bits == other.bits

    def __hash__(self) -> int:
        return hash((type(self), self.bits))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(value={self.value()!r}, "
            f"exponent={self.exponent()}, significand={self.significand():#x})"
        )


# =============================================================================
# SINGLE / DOUBLE — одно машинное слово
# =============================================================================


class _WordRepresentation(Representation):
    """Представление, целиком лежащее в одном беззнаковом слове."""

    _uint_type: ClassVar[type]

    def __init__(self, bits: int = 0):
        t = self.traits
        if isinstance(bits, bool) or not isinstance(bits, (int, np.unsignedinteger)):
            raise TypeError(f"bits must be an unsigned integer, got {type(bits).__name__}")
        bits = int(bits)
        if bits < 0 or bits >> t.storage_bits:
            raise ValueError(f"bits {bits:#x} do not fit into {t.storage_bits}-bit word")
        self._bits = bits

    @classmethod
    def from_value(cls, x: object) -> "_WordRepresentation":
        cls._check_value_type(x)
        scalar = cls.traits.scalar_type(x)
        return cls(int(scalar.view(cls._uint_type)))

    @classmethod
    def from_bits(cls, bits: int) -> "_WordRepresentation":
        return cls(bits)

    @classmethod
    def from_fields(cls, exponent: int, significand: int) -> "_WordRepresentation":
        """
        Композиция нормализованного значения из порядка и мантиссы.

        Предназначено для генерации тестовых граничных значений: вызывающий
        отвечает за допустимость exponent + bias.
        """
        t = cls.traits
        biased = (exponent + t.exponent_bias) << t.exponent_field_shift
        return cls((biased & t.exponent_field_mask) | (significand & t.significand_mask))

    @classmethod
    def power_of_two(cls, exp: int) -> np.floating:
        """
        Значение, точно равное 2^exp.

        Ниже min_exponent строится денормал (целый бит сдвигается вправо при
        нулевом поле порядка); ниже exponent_floor(0) результат — ноль.
        Выше max_exponent результат — +Inf.
        """
        t = cls.traits
        if exp > t.max_exponent:
            return cls(t.exponent_field_mask).value()
        if exp < t.min_exponent:
            return cls(t.significand_integer_bit >> (t.min_exponent - exp)).value()
        return cls(((exp + t.exponent_bias) << t.exponent_field_shift) & t.exponent_field_mask).value()

    @property
    def bits(self) -> int:
        return self._bits

    def value(self) -> np.floating:
        return self._uint_type(self._bits).view(self.traits.scalar_type)

    def exponent(self) -> int:
        t = self.traits
        return ((self._bits & t.exponent_field_mask) >> t.exponent_field_shift) - t.exponent_bias

    def significand(self) -> int:
        return self._bits & self.traits.significand_mask

    def negate(self) -> None:
        self._bits ^= self.traits.sign_mask


class SingleRepresentation(_WordRepresentation):
    """IEEE 754 binary32 (numpy.float32)."""

    traits = SINGLE_TRAITS
    _uint_type = np.uint32


class DoubleRepresentation(_WordRepresentation):
    """IEEE 754 binary64 (float / numpy.float64)."""

    traits = DOUBLE_TRAITS
    _uint_type = np.uint64


# =============================================================================
# EXTENDED — x87 80-bit
# =============================================================================


class ExtendedRepresentation(Representation):
    """
    x87 extended precision (numpy.longdouble на x86).

    Мантисса хранит явный целый бит в 64-битном младшем слове; знак и
    порядок лежат в 16-битном старшем слове.
    """

    traits = EXTENDED_TRAITS

    def __init__(self, bits: Bits80 | None = None):
        if bits is not None and not isinstance(bits, Bits80):
            raise TypeError(f"bits must be Bits80, got {type(bits).__name__}")
        self._bits = bits if bits is not None else Bits80(high=0, low=0)

    @staticmethod
    def _require_platform() -> None:
        if not HAS_X87_EXTENDED:
            raise UnsupportedPrecisionError(
                "numpy.longdouble on this platform is not the x87 extended format"
            )

    @classmethod
    def from_value(cls, x: object) -> "ExtendedRepresentation":
        cls._require_platform()
        cls._check_value_type(x)
        raw = np.asarray(x, dtype=np.longdouble).tobytes()
        return cls(Bits80.from_int(int.from_bytes(raw[:EXTENDED_VALUE_BYTES], "little")))

    @classmethod
    def from_bits(cls, bits: Bits80 | int) -> "ExtendedRepresentation":
        if isinstance(bits, Bits80):
            return cls(bits)
        if isinstance(bits, bool) or not isinstance(bits, int):
            raise TypeError(f"bits must be Bits80 or int, got {type(bits).__name__}")
        return cls(Bits80.from_int(bits))

    @classmethod
    def from_fields(cls, exponent: int, significand: int) -> "ExtendedRepresentation":
        """
        Композиция из порядка и мантиссы.

        Целый бит не выставляется автоматически: он является частью significand.
        """
        t = cls.traits
        high = (exponent + t.exponent_bias) & t.exponent_field_mask
        return cls(Bits80(high=high, low=significand & t.significand_mask))

    @classmethod
    def power_of_two(cls, exp: int) -> np.floating:
        t = cls.traits
        if exp > t.max_exponent:
            bits = Bits80(high=t.exponent_field_mask, low=t.significand_integer_bit)
        elif exp < t.min_exponent:
            bits = Bits80(high=0, low=t.significand_integer_bit >> (t.min_exponent - exp))
        else:
            bits = Bits80(
                high=(exp + t.exponent_bias) & t.exponent_field_mask,
                low=t.significand_integer_bit,
            )
        return cls(bits).value()

    @property
    def bits(self) -> Bits80:
        return self._bits

    def value(self) -> np.floating:
        self._require_platform()
        raw = self._bits.as_int().to_bytes(LONGDOUBLE_ITEMSIZE, "little")
        return np.frombuffer(raw, dtype=np.longdouble)[0]

    def exponent(self) -> int:
        t = self.traits
        return ((self._bits.high & t.exponent_field_mask) >> t.exponent_field_shift) - t.exponent_bias

    def significand(self) -> int:
        return self._bits.low & self.traits.significand_mask

    def negate(self) -> None:
        self._bits = Bits80(high=self._bits.high ^ self.traits.sign_mask, low=self._bits.low)


# =============================================================================
# GENERIC — numpy.frexp / numpy.ldexp
# =============================================================================

# Ширина порции мантиссы при сборке значения (точна для любого типа numpy)
COMPOSE_CHUNK_BITS: Final[int] = 32


class _UnboundTraits:
    """Раскладка базового GenericRepresentation, не привязанного к типу."""

    def __get__(self, instance: object, owner: type) -> FormatTraits:
        raise UnsupportedPrecisionError(
            f"{owner.__name__} is not bound to a scalar type; "
            f"use generic_representation(scalar_type)"
        )


class GenericRepresentation(Representation):
    """
    Переносимое представление для типов без специализации.

    Хранит само значение; порядок вычисляется через numpy.frexp, степени
    двойки — через numpy.ldexp(1, exp). Медленнее битовых специализаций, но корректно
    для любого IEEE-подобного формата.

    Базовый класс не привязан к типу: конкретный класс выдаёт
    generic_representation(scalar_type).
    """

    traits = _UnboundTraits()  # type: ignore[assignment]

    def __init__(self, value: object = 0.0):
        self._value = self.traits.scalar_type(value)

    @classmethod
    def from_value(cls, x: object) -> "GenericRepresentation":
        cls._check_value_type(x)
        return cls(x)

    @classmethod
    def from_bits(cls, bits: int) -> "GenericRepresentation":
        t = cls.traits
        if isinstance(bits, bool) or not isinstance(bits, (int, np.unsignedinteger)):
            raise TypeError(f"bits must be an unsigned integer, got {type(bits).__name__}")
        bits = int(bits)
        if bits < 0 or bits >> t.storage_bits:
            raise ValueError(f"bits {bits:#x} do not fit into {t.storage_bits} bits")

        field = (bits & t.exponent_field_mask) >> t.exponent_field_shift
        significand = bits & t.significand_mask
        if field == t.exponent_field_max:
            value = t.scalar_type(np.nan) if significand else t.scalar_type(np.inf)
        else:
            value = cls._compose(field - t.exponent_bias, significand)
        return cls(-value if bits & t.sign_mask else value)

    @classmethod
    def from_fields(cls, exponent: int, significand: int) -> "GenericRepresentation":
        return cls(cls._compose(exponent, significand & cls.traits.significand_mask))

    @classmethod
    def _compose(cls, exponent: int, significand: int) -> np.floating:
        t = cls.traits
        if exponent == t.denormal_exponent:
            mantissa, scale = significand, t.min_exponent - t.significand_bit_count
        else:
            mantissa = t.significand_integer_bit | significand
            scale = exponent - t.significand_bit_count
        # Мантисса собирается порциями: конструктор типа из широкого int
        # может потерять младшие биты (например, 113-битный quad)
        top = t.significand_bit_count // COMPOSE_CHUNK_BITS * COMPOSE_CHUNK_BITS
        value = t.scalar_type(0.0)
        for shift in range(top, -1, -COMPOSE_CHUNK_BITS):
            chunk = (mantissa >> shift) & ((1 << COMPOSE_CHUNK_BITS) - 1)
            value = np.ldexp(value, COMPOSE_CHUNK_BITS) + t.scalar_type(chunk)
        with np.errstate(over="ignore", under="ignore"):
            return np.ldexp(value, scale)

    @classmethod
    def power_of_two(cls, exp: int) -> np.floating:
        t = cls.traits
        if exp < t.exponent_floor(0):
            return t.scalar_type(0.0)
        with np.errstate(over="ignore", under="ignore"):
            return np.ldexp(t.scalar_type(1.0), exp)

    @property
    def bits(self) -> int:
        t = self.traits
        sign = t.sign_mask if np.signbit(self._value) else 0
        field = self.exponent() + t.exponent_bias
        return sign | (field << t.exponent_field_shift) | self.significand()

    def value(self) -> np.floating:
        return self._value

    def exponent(self) -> int:
        t = self.traits
        if not np.isfinite(self._value):
            return t.exponent_field_max - t.exponent_bias
        if self._value == 0:
            return t.denormal_exponent
        exp = self.effective_exponent()
        return exp if exp >= t.min_exponent else t.denormal_exponent

    def significand(self) -> int:
        t = self.traits
        if np.isnan(self._value):
            return t.significand_integer_bit >> 1  # quiet NaN
        if np.isinf(self._value) or self._value == 0:
            return 0
        magnitude = abs(self._value)
        if self.exponent() == t.denormal_exponent:
            return int(np.ldexp(magnitude, t.significand_bit_count - t.min_exponent))
        mantissa, _ = np.frexp(magnitude)
        return int(np.ldexp(mantissa, t.significand_bit_count + 1)) & t.significand_mask

    def effective_exponent(self) -> int:
        t = self.traits
        if not np.isfinite(self._value):
            return self.exponent()
        if self._value == 0:
            # на единицу ниже наименьшего денормала, как у битовых специализаций
            return t.exponent_floor(0) - 1
        _, exp = np.frexp(self._value)
        return int(exp) - 1

    def negate(self) -> None:
        self._value = -self._value


# Кэш generic-классов по скалярному типу
_GENERIC_REPRESENTATIONS: dict[type, type[GenericRepresentation]] = {}


def generic_representation(scalar_type: type) -> type[GenericRepresentation]:
    """
    Класс generic-представления для скалярного типа.

    Examples:
        >>> generic_representation(np.float16).traits.significand_bit_count
        10
    """
    if scalar_type not in _GENERIC_REPRESENTATIONS:
        traits = generic_traits(scalar_type)
        name = f"GenericRepresentation[{scalar_type.__name__}]"
        _GENERIC_REPRESENTATIONS[scalar_type] = type(
            name, (GenericRepresentation,), {"traits": traits}
        )
    return _GENERIC_REPRESENTATIONS[scalar_type]


# =============================================================================
# ВЫБОР ПРЕДСТАВЛЕНИЯ
# =============================================================================

SPECIALIZED_REPRESENTATIONS: Final[dict[Precision, type[Representation]]] = {
    Precision.SINGLE: SingleRepresentation,
    Precision.DOUBLE: DoubleRepresentation,
    Precision.EXTENDED: ExtendedRepresentation,
}

DEFAULT_SPECIALIZATIONS: Final[frozenset[Precision]] = frozenset(SPECIALIZED_REPRESENTATIONS)


def representation_for_type(
    scalar_type: type,
    specializations: Iterable[Precision] = DEFAULT_SPECIALIZATIONS,
) -> type[Representation]:
    """
    Класс представления для скалярного типа.

    Args:
        scalar_type: Скалярный тип numpy (numpy.float64 для Python float)
        specializations: Точности, для которых разрешена битовая специализация;
            отключённые точности обслуживаются generic-путём

    Returns:
        Класс представления
    """
    precision = precision_of_type(scalar_type)
    if precision in SPECIALIZED_REPRESENTATIONS:
        if precision in specializations:
            return SPECIALIZED_REPRESENTATIONS[precision]
        logger.debug("Specialization for %s disabled, using generic representation", precision.value)
    return generic_representation(scalar_type)


def representation_type(
    x: object,
    specializations: Iterable[Precision] = DEFAULT_SPECIALIZATIONS,
) -> type[Representation]:
    """
    Класс представления для значения.

    Raises:
        UnsupportedPrecisionError: Если x не скаляр с плавающей точкой
    """
    return representation_for_type(scalar_type_of(x), specializations)


def representation_for(
    x: object,
    specializations: Iterable[Precision] = DEFAULT_SPECIALIZATIONS,
) -> Representation:
    """
    Представление значения.

    Examples:
        >>> representation_for(1.0).exponent()
        0
        >>> representation_for(np.float32(0.75)).effective_exponent()
        -1
    """
    return representation_type(x, specializations).from_value(x)
