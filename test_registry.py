import unittest

from eth_utils import is_checksum_address, keccak, to_bytes

from pool_fixtures import GOVERNANCE, OTHER, REGISTRY, WALLET, make_registry
from xybk import ZERO_ADDRESS, PoolConfig, Token
from xybk.errors import (
    FORBIDDEN,
    IDENTICAL_ADDRESSES,
    NOT_WHITELISTED,
    PAIR_EXISTS,
    AccessViolation,
    PoolError,
)
from xybk.events import PairCreated
from xybk.registry import POOL_CODE_HASH, pool_address, sort_tokens


class TestPoolRegistry(unittest.TestCase):

    def setUp(self):
        self.registry = make_registry()
        self.token_a = Token("AAA", "0x" + "bb" * 20)
        self.token_b = Token("BBB", "0x" + "aa" * 20)
        for token in (self.token_a, self.token_b):
            self.registry.change_token_access(token, True, sender=GOVERNANCE)

    def test_sort_tokens(self):
        token0, token1 = sort_tokens(self.token_a, self.token_b)
        self.assertEqual((token0, token1), (self.token_b, self.token_a))
        with self.assertRaises(PoolError) as cm:
            sort_tokens(self.token_a, Token("AAA2", self.token_a.address.upper().replace("0X", "0x")))
        self.assertEqual(cm.exception.code, IDENTICAL_ADDRESSES)

    def test_deterministic_address(self):
        pool = self.registry.create_pair(self.token_a, self.token_b)
        salt = keccak(to_bytes(hexstr="0x" + "aa" * 20) + to_bytes(hexstr="0x" + "bb" * 20))
        digest = keccak(b"\xff" + to_bytes(hexstr=REGISTRY) + salt + POOL_CODE_HASH)
        self.assertEqual(pool.address.lower(), "0x" + digest[12:].hex())
        self.assertTrue(is_checksum_address(pool.address))
        self.assertEqual(pool.address, pool_address(REGISTRY, "0x" + "aa" * 20, "0x" + "bb" * 20))

    def test_create_pair(self):
        pool = self.registry.create_pair(self.token_a, self.token_b)
        self.assertIs(pool.token0, self.token_b)
        self.assertIs(pool.token1, self.token_a)
        self.assertIs(self.registry.get_pair(self.token_a, self.token_b), pool)
        self.assertIs(self.registry.get_pair(self.token_b, self.token_a), pool)
        self.assertEqual(self.registry.all_pairs_length(), 1)
        self.assertEqual(self.registry.events[-1],
                         PairCreated(self.token_b.address, self.token_a.address, pool.address, 1))
        self.assertIs(pool.registry, self.registry)

    def test_pair_exists_in_either_order(self):
        self.registry.create_pair(self.token_a, self.token_b)
        for pair in ((self.token_a, self.token_b), (self.token_b, self.token_a)):
            with self.assertRaises(PoolError) as cm:
                self.registry.create_pair(*pair)
            self.assertEqual(cm.exception.code, PAIR_EXISTS)
        self.assertEqual(self.registry.all_pairs_length(), 1)

    def test_whitelist(self):
        token_c = Token("CCC", "0x" + "cc" * 20)
        with self.assertRaises(PoolError) as cm:
            self.registry.create_pair(self.token_a, token_c)
        self.assertEqual(cm.exception.code, NOT_WHITELISTED)
        with self.assertRaises(AccessViolation):
            self.registry.change_token_access(token_c, True, sender=WALLET)
        self.registry.change_token_access(token_c, True, sender=GOVERNANCE)
        self.registry.create_pair(self.token_a, token_c)
        self.registry.change_token_access(self.token_b, False, sender=GOVERNANCE)
        with self.assertRaises(PoolError):
            self.registry.create_pair(self.token_b, token_c)

    def test_governance_handover(self):
        with self.assertRaises(AccessViolation) as cm:
            self.registry.propose_governance(OTHER, sender=WALLET)
        self.assertEqual(cm.exception.code, FORBIDDEN)
        self.registry.propose_governance(OTHER, sender=GOVERNANCE)
        self.assertEqual(self.registry.governance, GOVERNANCE)
        with self.assertRaises(AccessViolation):
            self.registry.accept_governance(sender=WALLET)
        self.registry.accept_governance(sender=OTHER)
        self.assertEqual(self.registry.governance, OTHER)
        self.assertEqual(self.registry.pending_governance, ZERO_ADDRESS)

        # Pools consult the registry, so the new setter takes over at once
        pool = self.registry.create_pair(self.token_a, self.token_b)
        with self.assertRaises(AccessViolation):
            pool.update_fee(10, sender=GOVERNANCE)
        pool.update_fee(10, sender=OTHER)

    def test_fee_recipient_handover(self):
        self.registry.propose_fee_to(OTHER, sender=GOVERNANCE)
        self.assertEqual(self.registry.fee_to, ZERO_ADDRESS)
        with self.assertRaises(AccessViolation):
            self.registry.accept_fee_to(sender=WALLET)
        self.registry.accept_fee_to(sender=OTHER)
        self.assertEqual(self.registry.fee_to, OTHER)

        self.registry.propose_fee_to(ZERO_ADDRESS, sender=GOVERNANCE)
        self.assertEqual(self.registry.fee_to, ZERO_ADDRESS)
        with self.assertRaises(AccessViolation):
            self.registry.accept_fee_to(sender=ZERO_ADDRESS)


class TestPoolConfig(unittest.TestCase):

    def test_defaults(self):
        config = PoolConfig()
        self.assertEqual((config.fee_bps, config.transition_window, config.protocol_fee_divisor), (30, 86400, 6))

    def test_validation(self):
        for bad in ({"fee_bps": 4}, {"fee_bps": 101}, {"transition_window": 0},
                    {"minimum_liquidity": 0}, {"max_boost": 0}, {"protocol_fee_divisor": 1}):
            with self.assertRaises(ValueError, msg=f"{bad} accepted"):
                PoolConfig(**bad)

    def test_overrides_are_validated(self):
        config = PoolConfig().with_overrides(fee_bps=50)
        self.assertEqual(config.fee_bps, 50)
        with self.assertRaises(ValueError):
            config.with_overrides(fee_bps=1)

    def test_registry_hands_config_to_pools(self):
        registry = make_registry(config=PoolConfig(fee_bps=50))
        token_a, token_b = Token("AAA", "0x" + "aa" * 20), Token("BBB", "0x" + "bb" * 20)
        for token in (token_a, token_b):
            registry.change_token_access(token, True, sender=GOVERNANCE)
        self.assertEqual(registry.create_pair(token_a, token_b).fee, 50)


if __name__ == "__main__":
    unittest.main()
