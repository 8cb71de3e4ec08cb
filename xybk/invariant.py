"""
Curve evaluation for the two pool modes.

The boosted ("xybk") curve keeps a virtual offset of ``b * sqrt(K)`` on both
reserves, with ``b = boost - 1``::

    (x + b * sqrtK) * (y + b * sqrtK) == ((b + 1) * sqrtK) ** 2

With ``b == 0`` this is the plain constant product, and a larger ``b`` turns
the neighbourhood of the balanced point into a nearly constant-sum curve.
Solving the quadratic for ``sqrtK`` gives::

    sqrtK = term + sqrt(term ** 2 + x * y / (2b + 1)),  term = b * (x + y) / (2 * (2b + 1))

Which side's boost applies is decided by which reserve is larger: ``boost0``
when token0 is the abundant side, ``boost1`` otherwise.

All checks compare fee-adjusted balances, scaled by ``FEE_DENOMINATOR``,
against the previous reserves scaled the same way.
"""

import enum

import numpy as np

from xybk.config import DEFAULT_FEE_BPS, FEE_DENOMINATOR
from xybk.errors import (
    INSUFFICIENT_INPUT_AMOUNT,
    INSUFFICIENT_LIQUIDITY,
    INSUFFICIENT_UNI_K,
    INSUFFICIENT_XYBK_K,
    InvariantViolation,
    LiquidityViolation,
)
from xybk.fixed_point import UINT112_MAX, add, div, isqrt, mul, sub


class CurveMode(enum.Enum):
    UNI = "uni"
    XYBK = "xybk"


def curve_mode(boost0: int, boost1: int) -> CurveMode:
    """Constant product exactly when the effective boost is the identity."""
    if boost0 == 1 and boost1 == 1:
        return CurveMode.UNI
    return CurveMode.XYBK


def adjusted_balance(balance: int, amount_in: int, fee_bps: int) -> int:
    """Scales a post-trade balance and withholds the fee on its input."""
    return sub(mul(balance, FEE_DENOMINATOR), mul(amount_in, fee_bps))


def _side_boost(boost0: int, boost1: int, x: int, y: int) -> int:
    return boost0 if x > y else boost1


# --- Root of K ---

def _uni_root_k(boost0: int, boost1: int, x: int, y: int) -> int:
    return isqrt(mul(x, y))


def _xybk_root_k(boost0: int, boost1: int, x: int, y: int) -> int:
    b = _side_boost(boost0, boost1, x, y) - 1
    denominator = add(mul(b, 2), 1)
    term = div(mul(b, add(x, y)), mul(denominator, 2))
    return add(isqrt(add(mul(term, term), div(mul(x, y), denominator))), term)


# --- K checks ---

def _uni_check(boost0: int, boost1: int, old_x: int, old_y: int, new_x: int, new_y: int) -> bool:
    return mul(new_x, new_y) >= mul(old_x, old_y)


def _xybk_check(boost0: int, boost1: int, old_x: int, old_y: int, new_x: int, new_y: int) -> bool:
    sqrt_k = _xybk_root_k(boost0, boost1, old_x, old_y)
    boost = _side_boost(boost0, boost1, new_x, new_y)
    offset = mul(boost - 1, sqrt_k)
    boosted_k = mul(add(new_x, offset), add(new_y, offset))
    target = mul(boost, sqrt_k)
    return boosted_k >= mul(target, target)


_ROOT_K = {
    CurveMode.UNI: _uni_root_k,
    CurveMode.XYBK: _xybk_root_k,
}

_CHECK_K = {
    CurveMode.UNI: (_uni_check, INSUFFICIENT_UNI_K),
    CurveMode.XYBK: (_xybk_check, INSUFFICIENT_XYBK_K),
}


def root_k(boost0: int, boost1: int, x: int, y: int) -> int:
    """Square root of the active curve's invariant at ``(x, y)``."""
    return _ROOT_K[curve_mode(boost0, boost1)](boost0, boost1, x, y)


def is_k_satisfied(boost0: int, boost1: int, old_x: int, old_y: int, new_x: int, new_y: int) -> bool:
    check, _ = _CHECK_K[curve_mode(boost0, boost1)]
    return check(boost0, boost1, old_x, old_y, new_x, new_y)


def check_k(boost0: int, boost1: int, old_x: int, old_y: int, new_x: int, new_y: int) -> CurveMode:
    """
    Asserts the post-trade state does not decrease the active invariant.

    Args:
        boost0, boost1 (int): Effective boost at the time of the trade.
        old_x, old_y (int): Previous reserves, scaled by ``FEE_DENOMINATOR``.
        new_x, new_y (int): Fee-adjusted post-trade balances.

    Returns:
        CurveMode: The mode that accepted the trade.

    Raises:
        InvariantViolation: ``IF: INSUFFICIENT_UNI_K`` or ``IF: INSUFFICIENT_XYBK_K``.
    """
    mode = curve_mode(boost0, boost1)
    check, code = _CHECK_K[mode]
    if not check(boost0, boost1, old_x, old_y, new_x, new_y):
        raise InvariantViolation(code, f"{mode.value} invariant decreased")
    return mode


# --- Quotes ---

def _trade_passes(amount_in: int, amount_out: int, reserve0: int, reserve1: int,
                  zero_for_one: bool, boost0: int, boost1: int, fee_bps: int) -> bool:
    if zero_for_one:
        in0, in1, out0, out1 = amount_in, 0, 0, amount_out
    else:
        in0, in1, out0, out1 = 0, amount_in, amount_out, 0
    new_x = adjusted_balance(reserve0 + in0 - out0, in0, fee_bps)
    new_y = adjusted_balance(reserve1 + in1 - out1, in1, fee_bps)
    return is_k_satisfied(boost0, boost1,
                          mul(reserve0, FEE_DENOMINATOR), mul(reserve1, FEE_DENOMINATOR),
                          new_x, new_y)


def _verify_reserves(reserve0: int, reserve1: int) -> None:
    if reserve0 == 0 or reserve1 == 0:
        raise LiquidityViolation(INSUFFICIENT_LIQUIDITY, "pool has no reserves")


def get_amount_out(amount_in: int, reserve0: int, reserve1: int, zero_for_one: bool,
                   boost0: int = 1, boost1: int = 1, fee_bps: int = DEFAULT_FEE_BPS) -> int:
    """
    Largest output the active curve accepts for ``amount_in``.

    Constant-product mode has the exact closed form; boosted mode bisects
    over the same check the pool runs on ``swap``.
    """
    if amount_in <= 0:
        raise LiquidityViolation(INSUFFICIENT_INPUT_AMOUNT, "amount_in must be positive")
    _verify_reserves(reserve0, reserve1)
    reserve_in, reserve_out = (reserve0, reserve1) if zero_for_one else (reserve1, reserve0)

    if curve_mode(boost0, boost1) is CurveMode.UNI:
        amount_in_with_fee = mul(amount_in, FEE_DENOMINATOR - fee_bps)
        numerator = mul(amount_in_with_fee, reserve_out)
        denominator = add(mul(reserve_in, FEE_DENOMINATOR), amount_in_with_fee)
        return div(numerator, denominator)

    lo, hi = 0, reserve_out - 1
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if _trade_passes(amount_in, mid, reserve0, reserve1, zero_for_one, boost0, boost1, fee_bps):
            lo = mid
        else:
            hi = mid - 1
    return lo


def get_amount_in(amount_out: int, reserve0: int, reserve1: int, zero_for_one: bool,
                  boost0: int = 1, boost1: int = 1, fee_bps: int = DEFAULT_FEE_BPS) -> int:
    """Smallest input the active curve accepts for ``amount_out``."""
    _verify_reserves(reserve0, reserve1)
    reserve_in, reserve_out = (reserve0, reserve1) if zero_for_one else (reserve1, reserve0)
    if amount_out <= 0 or amount_out >= reserve_out:
        raise LiquidityViolation(INSUFFICIENT_LIQUIDITY, f"cannot buy {amount_out} of {reserve_out}")

    if curve_mode(boost0, boost1) is CurveMode.UNI:
        numerator = mul(mul(reserve_in, amount_out), FEE_DENOMINATOR)
        denominator = mul(sub(reserve_out, amount_out), FEE_DENOMINATOR - fee_bps)
        return div(add(numerator, denominator - 1), denominator)

    def passes(amount_in):
        return _trade_passes(amount_in, amount_out, reserve0, reserve1, zero_for_one, boost0, boost1, fee_bps)

    hi = 1
    while not passes(hi):
        hi *= 2
        if reserve_in + hi > UINT112_MAX:
            raise LiquidityViolation(INSUFFICIENT_LIQUIDITY, "required input exceeds uint112")
    lo = hi // 2 + 1 if hi > 1 else 1
    while lo < hi:
        mid = (lo + hi) // 2
        if passes(mid):
            hi = mid
        else:
            lo = mid + 1
    return hi


def quote_curve(amounts_in, reserve0: int, reserve1: int, zero_for_one: bool,
                boost0: int = 1, boost1: int = 1, fee_bps: int = DEFAULT_FEE_BPS) -> np.ndarray:
    """
    Outputs for a grid of input sizes.

    Returns an object array so amounts above 64 bits stay exact.
    """
    return np.array(
        [get_amount_out(int(a), reserve0, reserve1, zero_for_one, boost0, boost1, fee_bps)
         for a in np.asarray(amounts_in, dtype=object).ravel()],
        dtype=object,
    )
