"""
Leading Zeros — подсчёт ведущих нулевых бит

Модуль нужен для вычисления истинного порядка денормализованных чисел:
у денормалов нет неявной ведущей единицы, поэтому порядок определяется
позицией первого установленного бита в поле мантиссы.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Для нулевого входа возвращается полная ширина слова (32 или 64)
2. 64-битный счётчик сначала проверяет старшее полуслово
3. Функции чистые и детерминированные
"""

from typing import Final

import numpy as np

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

WORD32_BITS: Final[int] = 32
WORD64_BITS: Final[int] = 64

WORD32_MASK: Final[int] = 0xFFFFFFFF
WORD64_MASK: Final[int] = 0xFFFFFFFFFFFFFFFF

SUPPORTED_WIDTHS: Final[tuple[int, ...]] = (WORD32_BITS, WORD64_BITS)


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def _as_word(u: object, width: int) -> int:
    """Приведение к int с проверкой диапазона беззнакового слова."""
    if isinstance(u, (bool, np.bool_)):
        raise TypeError("count_leading_zeros expects an unsigned integer, got bool")
    if not isinstance(u, (int, np.unsignedinteger)):
        raise TypeError(
            f"count_leading_zeros expects an unsigned integer, got {type(u).__name__}"
        )

    value = int(u)
    if value < 0 or value >> width:
        raise ValueError(f"value {value:#x} does not fit into {width}-bit unsigned word")
    return value


def _infer_width(u: object) -> int:
    if isinstance(u, np.uint32):
        return WORD32_BITS
    if isinstance(u, np.uint64):
        return WORD64_BITS
    raise TypeError(
        f"cannot infer word width from {type(u).__name__}; "
        f"pass width=32 or width=64 explicitly"
    )


# =============================================================================
# ПОДСЧЁТ ВЕДУЩИХ НУЛЕЙ
# =============================================================================


def count_leading_zeros32(u: int) -> int:
    """
    Количество ведущих нулевых бит в 32-битном беззнаковом слове.

    Args:
        u: Беззнаковое 32-битное значение

    Returns:
        Число ведущих нулей в диапазоне [0, 32]

    Examples:
        >>> count_leading_zeros32(1)
        31
        >>> count_leading_zeros32(0x80000000)
        0
        >>> count_leading_zeros32(0)
        32
    """
    value = _as_word(u, WORD32_BITS)
    if value == 0:
        return WORD32_BITS
    return WORD32_BITS - value.bit_length()


def count_leading_zeros64(u: int) -> int:
    """
    Количество ведущих нулевых бит в 64-битном беззнаковом слове.

    Считается по полусловам: если старшее полуслово ненулевое, ответ
    определяется им; иначе берётся младшее полуслово плюс 32.

    Examples:
        >>> count_leading_zeros64(1)
        63
        >>> count_leading_zeros64(1 << 40)
        23
        >>> count_leading_zeros64(0)
        64
    """
    value = _as_word(u, WORD64_BITS)
    if value == 0:
        return WORD64_BITS

    high = (value >> WORD32_BITS) & WORD32_MASK
    if high != 0:
        return count_leading_zeros32(high)

    low = value & WORD32_MASK
    return count_leading_zeros32(low) + WORD32_BITS


def count_leading_zeros(u: int, width: int | None = None) -> int:
    """
    Подсчёт ведущих нулей для слова фиксированной ширины.

    Args:
        u: Беззнаковое значение (int, numpy.uint32 или numpy.uint64)
        width: Ширина слова (32 или 64). Если не указана, выводится из
            типа numpy; для обычного int ширина обязательна.

    Returns:
        Число ведущих нулей; для нуля возвращается width

    Raises:
        TypeError: Если тип значения не поддерживается или ширину нельзя вывести
        ValueError: Если width не 32/64 или значение не помещается в слово
    """
    if width is None:
        width = _infer_width(u)

    if width not in SUPPORTED_WIDTHS:
        raise ValueError(f"width must be one of {SUPPORTED_WIDTHS}, got {width}")

    if width == WORD32_BITS:
        return count_leading_zeros32(u)
    return count_leading_zeros64(u)
