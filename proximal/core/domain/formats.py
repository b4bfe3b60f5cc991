"""
Format Traits — параметры битовой раскладки форматов с плавающей точкой

Для каждой поддерживаемой точности (single, double, x87 extended) модуль
описывает раскладку полей: смещение порядка, положение и маску поля порядка,
маску и разрядность мантиссы, минимальный и максимальный порядок.

Для остальных типов numpy (float16, не-x87 longdouble) параметры выводятся
из numpy.finfo — это обобщённый (generic) путь.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. min_exponent == 1 - exponent_bias (граница денормалов)
2. significand_bit_count == число явных дробных бит (23 / 52 / 63)
3. Смешивание точностей запрещено: несовпадение → PrecisionMismatchError
"""

import sys
from enum import Enum
from typing import Final

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# EXCEPTIONS
# =============================================================================


class UnsupportedPrecisionError(TypeError):
    """
    Значение не является скаляром с плавающей точкой поддерживаемого типа.

    Возникает для int, bool, строк, массивов numpy и т.п. Никакого неявного
    приведения не выполняется.
    """
    pass


class PrecisionMismatchError(TypeError):
    """
    Операнды имеют разную точность (например, float32 и float64).

    Сравнение через границу точностей некорректно: молчаливое расширение или
    усечение изменило бы значение одного из операндов.
    """
    pass


# =============================================================================
# ENUMS
# =============================================================================


class Precision(str, Enum):
    """Точность формата с плавающей точкой"""

    SINGLE = "single"
    DOUBLE = "double"
    EXTENDED = "extended"
    GENERIC = "generic"


# =============================================================================
# ПЛАТФОРМА
# =============================================================================


def _detect_x87_extended() -> bool:
    """longdouble платформы — это 80-битный x87 extended (little-endian)?"""
    info = np.finfo(np.longdouble)
    return (
        sys.byteorder == "little"
        and int(info.nmant) == 63
        and int(info.nexp) == 15
        and np.dtype(np.longdouble).itemsize >= 10
    )


HAS_X87_EXTENDED: Final[bool] = _detect_x87_extended()

LONGDOUBLE_ITEMSIZE: Final[int] = np.dtype(np.longdouble).itemsize


# =============================================================================
# FORMAT TRAITS MODEL
# =============================================================================


class FormatTraits(BaseModel):
    """
    Неизменяемое описание битовой раскладки формата.

    Для extended точности поле порядка и знак лежат в старшем 16-битном
    слове, а мантисса (с явным целым битом) — в младшем 64-битном.
    """

    precision: Precision = Field(..., description="Точность формата")
    scalar_type: type[np.floating] = Field(..., description="Скалярный тип numpy")

    storage_bits: int = Field(..., gt=0, description="Полная ширина представления")
    significand_word_bits: int = Field(
        ..., gt=0, description="Ширина слова, в котором хранится мантисса"
    )

    exponent_bias: int = Field(..., gt=0, description="Смещение порядка")
    exponent_field_shift: int = Field(..., ge=0, description="Сдвиг поля порядка")
    exponent_field_mask: int = Field(..., gt=0, description="Маска поля порядка")
    sign_mask: int = Field(..., gt=0, description="Маска знакового бита")

    significand_mask: int = Field(..., gt=0, description="Маска поля мантиссы")
    significand_bit_count: int = Field(..., gt=0, description="Число дробных бит")
    significand_integer_bit: int = Field(
        ..., gt=0, description="Бит целой части (неявный для IEEE 754)"
    )

    min_exponent: int = Field(..., description="Минимальный нормализованный порядок")
    max_exponent: int = Field(..., description="Максимальный нормализованный порядок")

    model_config = ConfigDict(frozen=True)  # Immutable

    @model_validator(mode="after")
    def validate_layout(self) -> "FormatTraits":
        """Проверка согласованности полей раскладки."""
        if self.min_exponent != 1 - self.exponent_bias:
            raise ValueError(
                f"min_exponent {self.min_exponent} != 1 - exponent_bias "
                f"({1 - self.exponent_bias})"
            )
        if self.max_exponent != self.exponent_bias:
            raise ValueError(
                f"max_exponent {self.max_exponent} != exponent_bias {self.exponent_bias}"
            )
        if self.significand_offset < 0:
            raise ValueError(
                f"significand_bit_count {self.significand_bit_count} exceeds "
                f"significand word width {self.significand_word_bits}"
            )
        single_word = self.significand_word_bits == self.storage_bits
        if single_word and self.exponent_field_mask & self.significand_mask:
            raise ValueError("exponent and significand fields overlap")
        return self

    # -------------------------------------------------------------------------
    # Производные параметры
    # -------------------------------------------------------------------------

    @property
    def significand_offset(self) -> int:
        """
        Число бит слова мантиссы, не занятых дробной частью.

        Выводится из раскладки: 32 - 23 = 9 (single), 64 - 52 = 12 (double),
        64 - 63 = 1 (extended, явный целый бит).
        """
        return self.significand_word_bits - self.significand_bit_count

    @property
    def denormal_exponent(self) -> int:
        """Хранимый порядок нуля и денормалов (нулевое поле порядка)."""
        return -self.exponent_bias

    @property
    def exponent_field_max(self) -> int:
        """Значение поля порядка для Inf/NaN (все единицы)."""
        return self.exponent_field_mask >> self.exponent_field_shift

    def fractional_precision(self, n: int) -> int:
        """
        Дробная точность для допуска N.

        fractional_precision(N) = significand_bit_count - N
        """
        return self.significand_bit_count - n

    def exponent_floor(self, n: int) -> int:
        """
        Нижняя граница порядка допуска N.

        exponent_floor(N) = min_exponent - significand_bit_count + N

        Для N = 0 это порядок наименьшего положительного денормала.
        """
        return self.min_exponent - self.significand_bit_count + n


# =============================================================================
# СПЕЦИАЛИЗИРОВАННЫЕ РАСКЛАДКИ
# =============================================================================

SINGLE_TRAITS: Final[FormatTraits] = FormatTraits(
    precision=Precision.SINGLE,
    scalar_type=np.float32,
    storage_bits=32,
    significand_word_bits=32,
    exponent_bias=127,
    exponent_field_shift=23,
    exponent_field_mask=0x7F800000,
    sign_mask=0x80000000,
    significand_mask=0x007FFFFF,
    significand_bit_count=23,
    significand_integer_bit=0x00800000,
    min_exponent=-126,
    max_exponent=127,
)

DOUBLE_TRAITS: Final[FormatTraits] = FormatTraits(
    precision=Precision.DOUBLE,
    scalar_type=np.float64,
    storage_bits=64,
    significand_word_bits=64,
    exponent_bias=1023,
    exponent_field_shift=52,
    exponent_field_mask=0x7FF0000000000000,
    sign_mask=0x8000000000000000,
    significand_mask=0x000FFFFFFFFFFFFF,
    significand_bit_count=52,
    significand_integer_bit=0x0010000000000000,
    min_exponent=-1022,
    max_exponent=1023,
)

# Маски порядка и знака относятся к старшему 16-битному слову
EXTENDED_TRAITS: Final[FormatTraits] = FormatTraits(
    precision=Precision.EXTENDED,
    scalar_type=np.longdouble,
    storage_bits=80,
    significand_word_bits=64,
    exponent_bias=16383,
    exponent_field_shift=0,
    exponent_field_mask=0x7FFF,
    sign_mask=0x8000,
    significand_mask=0xFFFFFFFFFFFFFFFF,
    significand_bit_count=63,
    significand_integer_bit=0x8000000000000000,
    min_exponent=-16382,
    max_exponent=16383,
)

SPECIALIZED_TRAITS: Final[dict[Precision, FormatTraits]] = {
    Precision.SINGLE: SINGLE_TRAITS,
    Precision.DOUBLE: DOUBLE_TRAITS,
    Precision.EXTENDED: EXTENDED_TRAITS,
}


# =============================================================================
# GENERIC TRAITS (numpy.finfo)
# =============================================================================

# Кэш выведенных раскладок по скалярному типу
_GENERIC_TRAITS: dict[type, FormatTraits] = {}


def generic_traits(scalar_type: type) -> FormatTraits:
    """
    Раскладка произвольного типа numpy, выведенная из numpy.finfo.

    Предполагается IEEE-подобный формат: знак | порядок | дробная часть
    с неявным целым битом.

    Args:
        scalar_type: Скалярный тип numpy с плавающей точкой

    Returns:
        FormatTraits с precision=GENERIC
    """
    if scalar_type in _GENERIC_TRAITS:
        return _GENERIC_TRAITS[scalar_type]

    info = np.finfo(scalar_type)
    nmant = int(info.nmant)
    nexp = int(info.nexp)
    storage_bits = 1 + nexp + nmant

    traits = FormatTraits(
        precision=Precision.GENERIC,
        scalar_type=scalar_type,
        storage_bits=storage_bits,
        significand_word_bits=storage_bits,
        exponent_bias=int(info.maxexp) - 1,
        exponent_field_shift=nmant,
        exponent_field_mask=((1 << nexp) - 1) << nmant,
        sign_mask=1 << (storage_bits - 1),
        significand_mask=(1 << nmant) - 1,
        significand_bit_count=nmant,
        significand_integer_bit=1 << nmant,
        min_exponent=int(info.minexp),
        max_exponent=int(info.maxexp) - 1,
    )
    _GENERIC_TRAITS[scalar_type] = traits
    return traits


# =============================================================================
# ОПРЕДЕЛЕНИЕ ТОЧНОСТИ ЗНАЧЕНИЯ
# =============================================================================


def scalar_type_of(x: object) -> type:
    """
    Скалярный тип numpy, соответствующий значению.

    Python float отображается в numpy.float64 (та же точность).

    Raises:
        UnsupportedPrecisionError: Если x не скаляр с плавающей точкой
    """
    if isinstance(x, float):
        # numpy.float64 — подкласс float
        return np.float64
    if isinstance(x, np.floating):
        return type(x)
    raise UnsupportedPrecisionError(
        f"expected a floating-point scalar, got {type(x).__name__}"
    )


def precision_of_type(scalar_type: type) -> Precision:
    """Точность скалярного типа numpy."""
    if scalar_type is np.float32:
        return Precision.SINGLE
    if scalar_type is np.float64:
        return Precision.DOUBLE
    if scalar_type is np.longdouble and HAS_X87_EXTENDED:
        return Precision.EXTENDED
    return Precision.GENERIC


def precision_of(x: object) -> Precision:
    """
    Точность значения.

    Examples:
        >>> precision_of(1.0)
        <Precision.DOUBLE: 'double'>
        >>> precision_of(np.float32(1.0))
        <Precision.SINGLE: 'single'>
    """
    return precision_of_type(scalar_type_of(x))


def traits_for_type(scalar_type: type) -> FormatTraits:
    """Раскладка скалярного типа (специализированная или generic)."""
    precision = precision_of_type(scalar_type)
    if precision is Precision.GENERIC:
        return generic_traits(scalar_type)
    return SPECIALIZED_TRAITS[precision]


def common_scalar_type(a: object, b: object) -> type:
    """
    Общий скалярный тип двух операндов.

    Raises:
        UnsupportedPrecisionError: Если операнд не скаляр с плавающей точкой
        PrecisionMismatchError: Если точности операндов различаются
    """
    type_a = scalar_type_of(a)
    type_b = scalar_type_of(b)
    if type_a is not type_b:
        raise PrecisionMismatchError(
            f"cannot compare {type_a.__name__} with {type_b.__name__}: "
            f"operands must have the same precision"
        )
    return type_a
