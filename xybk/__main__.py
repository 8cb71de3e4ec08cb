"""Walk-through of a pool's life: deposit, trade, boost, trade again."""

import logging

import numpy as np

from xybk import PoolConfig, PoolRegistry, Token
from xybk.clock import ManualClock
from xybk.invariant import quote_curve

E18 = 10 ** 18


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    clock = ManualClock()
    governance = "0x" + "0a" * 20
    wallet = "0x" + "0b" * 20
    registry = PoolRegistry("0x" + "f0" * 20, governance, PoolConfig(transition_window=50), clock)

    token_a = Token("AAA", "0x" + "aa" * 20)
    token_b = Token("BBB", "0x" + "bb" * 20)
    for token in (token_a, token_b):
        token.mint(wallet, 10_000 * E18)
        registry.change_token_access(token, True, sender=governance)
    pool = registry.create_pair(token_a, token_b)

    print("1. Seeding 10:10")
    pool.token0.transfer(wallet, pool.address, 10 * E18)
    pool.token1.transfer(wallet, pool.address, 10 * E18)
    pool.mint(wallet, sender=wallet)
    print(pool)
    print("-" * 30)

    print("2. Quotes on the constant-product curve:")
    sizes = np.array([1, 2, 5], dtype=object) * E18
    print(dict(zip(sizes // E18, quote_curve(sizes, pool.reserves.reserve0, pool.reserves.reserve1, True))))
    print("-" * 30)

    print("3. Boosting to (10, 10) and waiting out the transition:")
    pool.make_xybk(10, 10, sender=governance)
    clock.advance(pool.config.transition_window)
    print(pool)
    boost0, boost1 = pool.calc_boost()
    print(dict(zip(sizes // E18, quote_curve(sizes, pool.reserves.reserve0, pool.reserves.reserve1, True,
                                             boost0, boost1))))
    print("-" * 30)

    print("4. Swapping 1 AAA at boost 10:")
    amount_out = pool.get_amount_out(E18, True)
    pool.token0.transfer(wallet, pool.address, E18)
    pool.swap(0, amount_out, wallet, sender=wallet)
    print(f"Received {amount_out} units")
    print(pool)


if __name__ == "__main__":
    main()
