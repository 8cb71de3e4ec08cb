"""Shared setup for the pool test suites."""

from xybk import PoolConfig, PoolRegistry, Token
from xybk.clock import ManualClock

E18 = 10 ** 18
REGISTRY = "0x" + "f0" * 20
GOVERNANCE = "0x" + "0a" * 20
WALLET = "0x" + "0b" * 20
OTHER = "0x" + "0c" * 20
FEE_TO = "0x" + "0d" * 20
WINDOW = 50


def make_registry(clock=None, config=None) -> PoolRegistry:
    clock = clock or ManualClock()
    return PoolRegistry(REGISTRY, GOVERNANCE, config or PoolConfig(transition_window=WINDOW), clock)


def make_pool(config=None, start: int = 1_000_000):
    """
    Registry, pool and clock over two fresh tokens, wallet funded with 10**12 of each.

    Returns:
        tuple: ``(registry, pool, clock)``
    """
    clock = ManualClock(start)
    registry = make_registry(clock, config)
    token_a = Token("AAA", "0x" + "aa" * 20)
    token_b = Token("BBB", "0x" + "bb" * 20)
    for token in (token_a, token_b):
        token.mint(WALLET, 10 ** 12 * E18)
        registry.change_token_access(token, True, sender=GOVERNANCE)
    pool = registry.create_pair(token_a, token_b)
    return registry, pool, clock


def add_liquidity(pool, amount0: int, amount1: int, to: str = WALLET) -> int:
    pool.token0.transfer(WALLET, pool.address, amount0)
    pool.token1.transfer(WALLET, pool.address, amount1)
    return pool.mint(to, sender=WALLET)


def swap_exact_in(pool, amount_in: int, zero_for_one: bool, amount_out: int = None, to: str = WALLET):
    """Pays ``amount_in`` to the pool and takes ``amount_out`` (the exact quote by default)."""
    if amount_out is None:
        amount_out = pool.get_amount_out(amount_in, zero_for_one)
    if zero_for_one:
        pool.token0.transfer(WALLET, pool.address, amount_in)
        return pool.swap(0, amount_out, to, sender=WALLET)
    pool.token1.transfer(WALLET, pool.address, amount_in)
    return pool.swap(amount_out, 0, to, sender=WALLET)


def boost_to(pool, clock, boost0: int, boost1: int) -> None:
    """Boosts a constant-product pool and waits out the transition."""
    pool.make_xybk(boost0, boost1, sender=GOVERNANCE)
    clock.advance(pool.config.transition_window)
