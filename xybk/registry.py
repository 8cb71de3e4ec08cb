"""
Pool registry: one pool per unordered asset pair, at a deterministic address.

The registry also holds the two privileged addresses every pool consults:
``governance`` (the parameter setter) and ``fee_to`` (the protocol-fee
recipient, zero when the protocol fee is off). Both move by a
propose/accept handshake so a privilege can only change hands with the
current holder's authorization and the new holder's acknowledgement.
"""

import logging

from eth_utils import keccak, to_bytes, to_checksum_address

from xybk.assets import ZERO_ADDRESS
from xybk.config import PoolConfig
from xybk.errors import (
    FORBIDDEN,
    IDENTICAL_ADDRESSES,
    NOT_WHITELISTED,
    PAIR_EXISTS,
    ZERO_ADDRESS as ZERO_ADDRESS_CODE,
    AccessViolation,
    PoolError,
)
from xybk.events import EventLog, PairCreated
from xybk.pool import XybkPool

logger = logging.getLogger(__name__)

POOL_CODE_HASH = keccak(text="XybkPool")


def sort_tokens(token_a, token_b) -> tuple:
    """Orders two assets by address, case-insensitively."""
    if token_a.address.lower() == token_b.address.lower():
        raise PoolError(IDENTICAL_ADDRESSES, f"both assets are {token_a.address}")
    token0, token1 = sorted((token_a, token_b), key=lambda t: t.address.lower())
    if token0.address.lower() == ZERO_ADDRESS:
        raise PoolError(ZERO_ADDRESS_CODE, "asset at the zero address")
    return token0, token1


def pool_address(registry_address: str, token0_address: str, token1_address: str) -> str:
    """
    Deterministic pool address for a sorted pair.

    ``keccak(0xff ++ registry ++ keccak(token0 ++ token1) ++ POOL_CODE_HASH)[12:]``
    """
    salt = keccak(to_bytes(hexstr=token0_address) + to_bytes(hexstr=token1_address))
    digest = keccak(b"\xff" + to_bytes(hexstr=registry_address) + salt + POOL_CODE_HASH)
    return to_checksum_address(digest[12:])


class PoolRegistry:
    """
    Deploys pools and keeps the privileged addresses.

    Attributes:
        address (str): The registry's own address, part of every pool address.
        governance (str): Current parameter setter.
        fee_to (str): Current protocol-fee recipient.
        pending_governance (str): Proposed parameter setter awaiting acceptance.
        pending_fee_to (str): Proposed fee recipient awaiting acceptance.
        config (PoolConfig): Parameters handed to every new pool.
        clock (callable): Time source handed to every new pool.
    """

    def __init__(self, address: str, governance: str, config: PoolConfig = None, clock=None):
        self.address = to_checksum_address(address)
        self.governance = governance
        self.fee_to = ZERO_ADDRESS
        self.pending_governance = ZERO_ADDRESS
        self.pending_fee_to = ZERO_ADDRESS
        self.config = config or PoolConfig()
        self.clock = clock
        self.pools = {}
        self.all_pairs = []
        self.whitelist = set()
        self.events = EventLog()

    def __repr__(self) -> str:
        return f"PoolRegistry({self.address}, pools={len(self.all_pairs)})"

    def _only_governance(self, sender: str) -> None:
        if sender != self.governance:
            raise AccessViolation(FORBIDDEN, f"{sender} is not the parameter setter")

    # --- Pools ---

    def all_pairs_length(self) -> int:
        return len(self.all_pairs)

    def get_pair(self, token_a, token_b):
        """Pool for the pair in either order, or None."""
        key = tuple(sorted((token_a.address.lower(), token_b.address.lower())))
        return self.pools.get(key)

    def change_token_access(self, token, allowed: bool, *, sender: str) -> None:
        self._only_governance(sender)
        if allowed:
            self.whitelist.add(token.address.lower())
        else:
            self.whitelist.discard(token.address.lower())
        logger.info("Token %s whitelisted=%s", token.address, allowed)

    def create_pair(self, token_a, token_b) -> XybkPool:
        """
        Deploys the pool for an unordered pair.

        Raises:
            PoolError: ``IF: IDENTICAL_ADDRESSES``, ``IF: ZERO_ADDRESS``,
                ``IF: NOT_WHITELISTED`` or ``IF: PAIR_EXISTS``.
        """
        token0, token1 = sort_tokens(token_a, token_b)
        for token in (token0, token1):
            if token.address.lower() not in self.whitelist:
                raise PoolError(NOT_WHITELISTED, f"{token.address} is not whitelisted")
        if self.get_pair(token0, token1) is not None:
            raise PoolError(PAIR_EXISTS, f"pool for {token0.address}/{token1.address} exists")

        address = pool_address(self.address, token0.address, token1.address)
        pool = XybkPool(address, token0, token1, self, self.config, self.clock)
        self.pools[(token0.address.lower(), token1.address.lower())] = pool
        self.all_pairs.append(pool)
        self.events.emit(PairCreated(token0.address, token1.address, address, len(self.all_pairs)))
        logger.info("Created pool %s for %s/%s", address, token0.address, token1.address)
        return pool

    # --- Transactions ---

    def checkpoint(self) -> tuple:
        """
        Captures every pool and every pooled asset.

        Pools take one on entry to each locked operation. Checkpoints nest:
        an operation started from a flash callback takes its own, and rolling
        it back leaves the enclosing operation's earlier work in place.
        """
        tokens = {}
        for pool in self.all_pairs:
            for token in (pool.token0, pool.token1):
                tokens.setdefault(id(token), (token, token.snapshot()))
        return (
            list(self.all_pairs),
            dict(self.pools),
            len(self.events),
            [(pool, pool.snapshot()) for pool in self.all_pairs],
            list(tokens.values()),
        )

    def rollback(self, checkpoint: tuple) -> None:
        """Restores the state captured by ``checkpoint``, discarding pools created since."""
        all_pairs, pools, n_events, pool_snapshots, token_snapshots = checkpoint
        self.all_pairs[:] = all_pairs
        self.pools = dict(pools)
        self.events.truncate(n_events)
        for pool, snapshot in pool_snapshots:
            pool.restore(snapshot)
        for token, snapshot in token_snapshots:
            token.restore(snapshot)
        logger.debug("Rolled back to %d pools", len(all_pairs))

    # --- Privileges ---

    def propose_governance(self, new_governance: str, *, sender: str) -> None:
        self._only_governance(sender)
        self.pending_governance = new_governance
        logger.info("Governance transfer to %s proposed", new_governance)

    def accept_governance(self, *, sender: str) -> None:
        if sender == ZERO_ADDRESS or sender != self.pending_governance:
            raise AccessViolation(FORBIDDEN, f"{sender} was not proposed as parameter setter")
        self.governance = sender
        self.pending_governance = ZERO_ADDRESS
        logger.info("Governance transferred to %s", sender)

    def propose_fee_to(self, new_fee_to: str, *, sender: str) -> None:
        """Proposes a fee recipient; proposing the zero address switches the fee off at once."""
        self._only_governance(sender)
        if new_fee_to == ZERO_ADDRESS:
            self.fee_to = ZERO_ADDRESS
            self.pending_fee_to = ZERO_ADDRESS
            logger.info("Protocol fee switched off")
            return
        self.pending_fee_to = new_fee_to
        logger.info("Fee recipient %s proposed", new_fee_to)

    def accept_fee_to(self, *, sender: str) -> None:
        if sender == ZERO_ADDRESS or sender != self.pending_fee_to:
            raise AccessViolation(FORBIDDEN, f"{sender} was not proposed as fee recipient")
        self.fee_to = sender
        self.pending_fee_to = ZERO_ADDRESS
        logger.info("Fee recipient set to %s", sender)
