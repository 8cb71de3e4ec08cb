"""
Reserve and claim-token bookkeeping.

``ReserveLedger`` holds what the pool last synchronized: reserves, the 32-bit
timestamp of that sync, the time-weighted price accumulators and the
protocol-fee snapshot ``k_last`` with the boost it is expressed under.
``ClaimToken`` is the fungible claim on those reserves, including
signature-based approvals.
"""

import copy
from dataclasses import dataclass

import numpy as np
from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import is_same_address

from xybk.assets import ZERO_ADDRESS
from xybk.errors import (
    EXPIRED,
    INSUFFICIENT_ALLOWANCE,
    INSUFFICIENT_BALANCE,
    INVALID_SIGNATURE,
    AccessViolation,
    LiquidityViolation,
)
from xybk.events import Approval, Transfer
from xybk.fixed_point import (
    UINT256_MAX,
    _verify_uint,
    add,
    block_timestamp,
    check_width,
    encode_uq112,
    sub,
    uqdiv,
    wrapping_add,
    wrapping_elapsed,
)

PERMIT_TYPES = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "Permit": [
        {"name": "owner", "type": "address"},
        {"name": "spender", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "nonce", "type": "uint256"},
        {"name": "deadline", "type": "uint256"},
    ],
}


@dataclass
class ReserveLedger:
    reserve0: int = 0
    reserve1: int = 0
    block_timestamp_last: np.uint32 = np.uint32(0)
    price0_cumulative_last: int = 0
    price1_cumulative_last: int = 0
    k_last: int = 0
    k_last_boost: tuple = (1, 1)

    def __repr__(self) -> str:
        return f"ReserveLedger(r0={self.reserve0}, r1={self.reserve1}, t={self.block_timestamp_last})"

    def update(self, balance0: int, balance1: int, now: int) -> None:
        """
        Synchronizes reserves to measured balances.

        The price accumulators advance once per distinct 32-bit timestamp, by
        the price that held since the previous sync, and wrap modulo 2**256.

        Raises:
            ArithmeticViolation: If either balance exceeds uint112.
        """
        balance0 = check_width(balance0, 112, "balance0")
        balance1 = check_width(balance1, 112, "balance1")
        timestamp = block_timestamp(now)
        elapsed = wrapping_elapsed(timestamp, self.block_timestamp_last)
        if elapsed > 0 and self.reserve0 != 0 and self.reserve1 != 0:
            self.price0_cumulative_last = wrapping_add(
                self.price0_cumulative_last,
                uqdiv(encode_uq112(self.reserve1), self.reserve0) * elapsed,
            )
            self.price1_cumulative_last = wrapping_add(
                self.price1_cumulative_last,
                uqdiv(encode_uq112(self.reserve0), self.reserve1) * elapsed,
            )
        self.reserve0 = balance0
        self.reserve1 = balance1
        self.block_timestamp_last = timestamp


class ClaimToken:
    """
    Claim-token ledger of a pool.

    The minimum liquidity locked on the first mint is credited to the zero
    address, so ``sum(balances.values()) == total_supply`` holds exactly.
    """

    def __init__(self, name: str, address: str, chain_id: int, events):
        self.name = name
        self.address = address
        self.chain_id = chain_id
        self.events = events
        self.total_supply = 0
        self.balances = {}
        self.allowances = {}
        self.nonces = {}

    def __repr__(self) -> str:
        return f"ClaimToken({self.name}, supply={self.total_supply}, holders={len(self.balances)})"

    # --- Views ---

    def balance_of(self, holder: str) -> int:
        return self.balances.get(holder, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    def nonce_of(self, owner: str) -> int:
        return self.nonces.get(owner, 0)

    # --- Ledger mutations ---

    def mint(self, to: str, value: int) -> None:
        self.total_supply = add(self.total_supply, value)
        self.balances[to] = add(self.balance_of(to), value)
        self.events.emit(Transfer(ZERO_ADDRESS, to, value))

    def burn(self, holder: str, value: int) -> None:
        if self.balance_of(holder) < value:
            raise LiquidityViolation(INSUFFICIENT_BALANCE, f"{holder} holds less than {value} claims")
        self.balances[holder] = sub(self.balance_of(holder), value)
        self.total_supply = sub(self.total_supply, value)
        self.events.emit(Transfer(holder, ZERO_ADDRESS, value))

    def _approve(self, owner: str, spender: str, value: int) -> None:
        self.allowances[(owner, spender)] = value
        self.events.emit(Approval(owner, spender, value))

    def _transfer(self, sender: str, to: str, value: int) -> None:
        if self.balance_of(sender) < value:
            raise LiquidityViolation(INSUFFICIENT_BALANCE, f"{sender} holds less than {value} claims")
        self.balances[sender] = sub(self.balance_of(sender), value)
        self.balances[to] = add(self.balance_of(to), value)
        self.events.emit(Transfer(sender, to, value))

    # --- ERC-20 surface ---

    def approve(self, owner: str, spender: str, value: int) -> bool:
        _verify_uint(value, "value")
        self._approve(owner, spender, check_width(value, 256, "value"))
        return True

    def transfer(self, sender: str, to: str, value: int) -> bool:
        _verify_uint(value, "value")
        self._transfer(sender, to, value)
        return True

    def transfer_from(self, spender: str, owner: str, to: str, value: int) -> bool:
        """Moves ``value`` on behalf of ``owner``; an allowance of 2**256-1 is never decreased."""
        _verify_uint(value, "value")
        allowed = self.allowance(owner, spender)
        if allowed != UINT256_MAX:
            if allowed < value:
                raise LiquidityViolation(INSUFFICIENT_ALLOWANCE, f"{spender} may move only {allowed}")
            self.allowances[(owner, spender)] = allowed - value
        self._transfer(owner, to, value)
        return True

    # --- Permit ---

    def permit_message(self, owner: str, spender: str, value: int, deadline: int, nonce: int = None):
        """
        EIP-712 message an owner signs to approve ``spender`` off-line.

        Returns:
            SignableMessage: Ready for ``Account.sign_message``.
        """
        return encode_typed_data(full_message={
            "types": PERMIT_TYPES,
            "primaryType": "Permit",
            "domain": {
                "name": self.name,
                "version": "1",
                "chainId": self.chain_id,
                "verifyingContract": self.address,
            },
            "message": {
                "owner": owner,
                "spender": spender,
                "value": value,
                "nonce": self.nonce_of(owner) if nonce is None else nonce,
                "deadline": deadline,
            },
        })

    def permit(self, owner: str, spender: str, value: int, deadline: int, signature: bytes, now: int) -> None:
        """
        Sets an allowance from an off-line signature and consumes the owner's nonce.

        Raises:
            AccessViolation: ``IF: EXPIRED`` past the deadline, ``IF: INVALID_SIGNATURE``
                when the signer is not ``owner``.
        """
        _verify_uint(value, "value")
        if deadline < now:
            raise AccessViolation(EXPIRED, f"permit deadline {deadline} passed at {now}")
        signable = self.permit_message(owner, spender, value, deadline)
        try:
            signer = Account.recover_message(signable, signature=signature)
        except Exception as e:
            raise AccessViolation(INVALID_SIGNATURE, f"unrecoverable signature: {e}") from e
        if not is_same_address(signer, owner):
            raise AccessViolation(INVALID_SIGNATURE, f"signed by {signer}, not {owner}")
        self.nonces[owner] = add(self.nonce_of(owner), 1)
        self._approve(owner, spender, value)

    # --- Rollback ---

    def snapshot(self) -> object:
        return copy.deepcopy((self.total_supply, self.balances, self.allowances, self.nonces))

    def restore(self, snapshot: object) -> None:
        self.total_supply, self.balances, self.allowances, self.nonces = copy.deepcopy(snapshot)
