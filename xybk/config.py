"""Pool configuration."""

from dataclasses import dataclass, replace

# Default parameters
DEFAULT_FEE_BPS = 30
MIN_FEE_BPS = 5
MAX_FEE_BPS = 100
FEE_DENOMINATOR = 10_000
DEFAULT_TRANSITION_WINDOW = 24 * 60 * 60
MINIMUM_LIQUIDITY = 1000
MAX_BOOST = 1_000_000
PROTOCOL_FEE_DIVISOR = 6


@dataclass(frozen=True)
class PoolConfig:
    """
    Parameters shared by every pool a registry deploys.

    Attributes:
        fee_bps (int): Swap fee in basis points, charged on the input side.
        transition_window (int): Seconds over which a boost change is interpolated.
        minimum_liquidity (int): Claims permanently locked on the first mint.
        max_boost (int): Upper bound for either boost component. The boosted
            check squares ``boost * sqrtK`` on reserves scaled by
            ``FEE_DENOMINATOR``, so a swap is priced only while
            ``boost * reserve * FEE_DENOMINATOR < 2**128``. Past that it fails
            with ``IF: OVERFLOW``: at the default maximum of 10**6 reserves
            must stay below about 3.4 * 10**28 units.
        protocol_fee_divisor (int): The protocol receives 1/divisor of fee-driven
            root-K growth; must be at least 2.
        chain_id (int): Chain identifier bound into permit signatures.
        claim_name (str): EIP-712 domain name of the claim token.
    """

    fee_bps: int = DEFAULT_FEE_BPS
    transition_window: int = DEFAULT_TRANSITION_WINDOW
    minimum_liquidity: int = MINIMUM_LIQUIDITY
    max_boost: int = MAX_BOOST
    protocol_fee_divisor: int = PROTOCOL_FEE_DIVISOR
    chain_id: int = 1
    claim_name: str = "Xybk Pool Claims"

    def __post_init__(self):
        if not MIN_FEE_BPS <= self.fee_bps <= MAX_FEE_BPS:
            raise ValueError(f"fee_bps must be in [{MIN_FEE_BPS}, {MAX_FEE_BPS}], got {self.fee_bps}")
        if self.transition_window <= 0:
            raise ValueError(f"transition_window must be positive, got {self.transition_window}")
        if self.minimum_liquidity <= 0:
            raise ValueError(f"minimum_liquidity must be positive, got {self.minimum_liquidity}")
        if self.max_boost < 1:
            raise ValueError(f"max_boost must be at least 1, got {self.max_boost}")
        if self.protocol_fee_divisor < 2:
            raise ValueError(f"protocol_fee_divisor must be at least 2, got {self.protocol_fee_divisor}")

    def with_overrides(self, **changes) -> "PoolConfig":
        """Returns a copy with the given fields replaced (and re-validated)."""
        return replace(self, **changes)
