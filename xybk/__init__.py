"""Two-asset liquidity pool on a boostable constant-product curve."""

from xybk.assets import ZERO_ADDRESS, Token
from xybk.boost import BoostMode, BoostSchedule
from xybk.config import PoolConfig
from xybk.invariant import CurveMode
from xybk.pool import TradeState, XybkPool
from xybk.registry import PoolRegistry

__all__ = [
    "ZERO_ADDRESS",
    "BoostMode",
    "BoostSchedule",
    "CurveMode",
    "PoolConfig",
    "PoolRegistry",
    "Token",
    "TradeState",
    "XybkPool",
]
