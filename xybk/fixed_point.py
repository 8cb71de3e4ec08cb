"""
Overflow-checked unsigned integer kernel.

Amounts are Python ints checked against explicit widths: reserves are bounded
to 112 bits so that the product of two reserves, scaled by the fee
denominator, still fits a 256-bit accumulator. Every add/sub/mul fails
instead of wrapping, and division floors. The only wrapping quantities are
the 32-bit block timestamp (carried as ``np.uint32``) and the price
accumulators, which are defined modulo 2**256.
"""

import numpy as np

from xybk.errors import (
    DIVISION_BY_ZERO,
    OVERFLOW,
    UNDERFLOW,
    ArithmeticViolation,
)

UINT32_MAX = int(np.iinfo(np.uint32).max)
UINT112_MAX = 2 ** 112 - 1
UINT224_MAX = 2 ** 224 - 1
UINT256_MAX = 2 ** 256 - 1
Q112 = 2 ** 112


def _verify_uint(value, param_name: str) -> None:
    """
    Helper function to verify that a value is a non-negative integer.

    Args:
        value: The value to verify
        param_name (str): The parameter name for error messages

    Raises:
        TypeError: If value is not an int (bool excluded)
        ArithmeticViolation: If value is negative
    """
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise TypeError(f"{param_name} must be an integer, got {type(value)}")
    if value < 0:
        raise ArithmeticViolation(UNDERFLOW, f"{param_name} must be non-negative, got {value}")


def check_width(value: int, bits: int, param_name: str = "value") -> int:
    """Returns ``value`` as an int if it fits in ``bits`` unsigned bits."""
    _verify_uint(value, param_name)
    value = int(value)
    if value >> bits:
        raise ArithmeticViolation(OVERFLOW, f"{param_name} exceeds uint{bits}: {value}")
    return value


# --- Checked arithmetic ---

def add(a: int, b: int) -> int:
    c = a + b
    if c > UINT256_MAX:
        raise ArithmeticViolation(OVERFLOW, f"{a} + {b} overflows uint256")
    return c


def sub(a: int, b: int) -> int:
    if b > a:
        raise ArithmeticViolation(UNDERFLOW, f"{a} - {b} underflows")
    return a - b


def mul(a: int, b: int) -> int:
    c = a * b
    if c > UINT256_MAX:
        raise ArithmeticViolation(OVERFLOW, f"{a} * {b} overflows uint256")
    return c


def div(a: int, b: int) -> int:
    if b == 0:
        raise ArithmeticViolation(DIVISION_BY_ZERO, f"{a} / 0")
    return a // b


def isqrt(y: int) -> int:
    """
    Floor square root by the Babylonian method.

    Starts from ``y // 2 + 1`` and iterates ``x = (y // x + x) // 2`` until the
    estimate stops decreasing, which lands exactly on ``floor(sqrt(y))``.
    """
    _verify_uint(y, "y")
    if y > 3:
        z = y
        x = y // 2 + 1
        while x < z:
            z = x
            x = (y // x + x) // 2
        return z
    if y != 0:
        return 1
    return 0


def interpolate(start: int, end: int, elapsed: int, duration: int) -> int:
    """
    Moves from ``start`` toward ``end`` in proportion to ``elapsed / duration``.

    The step ``|end - start| * elapsed // duration`` is floored, so the result
    never overshoots the exact line and never leaves ``[min, max]`` of the two
    endpoints. ``elapsed`` is clamped to ``[0, duration]``.
    """
    if duration <= 0:
        raise ArithmeticViolation(DIVISION_BY_ZERO, "interpolation duration must be positive")
    elapsed = min(max(elapsed, 0), duration)
    if end >= start:
        return add(start, div(mul(end - start, elapsed), duration))
    return sub(start, div(mul(start - end, elapsed), duration))


# --- UQ112x112 prices and 32-bit time ---

def encode_uq112(y: int) -> int:
    """Encodes a uint112 as a UQ112x112 fixed-point number."""
    return check_width(y, 112, "y") * Q112


def uqdiv(x: int, y: int) -> int:
    """Divides a UQ112x112 by a uint112, returning a UQ112x112."""
    return div(x, check_width(y, 112, "y"))


def block_timestamp(now: int) -> np.uint32:
    """Truncates a wall-clock time to the 32-bit block timestamp."""
    return np.uint32(int(now) % (UINT32_MAX + 1))


def wrapping_elapsed(current: np.uint32, last: np.uint32) -> int:
    """Seconds between two 32-bit timestamps, modulo 2**32."""
    with np.errstate(over="ignore"):
        return int(np.uint32(current) - np.uint32(last))


def wrapping_add(a: int, b: int) -> int:
    """Accumulator addition modulo 2**256."""
    return (a + b) & UINT256_MAX
