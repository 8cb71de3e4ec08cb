"""Asset-ledger interface the pool transfers through, plus an in-memory token."""

from typing import Protocol

from xybk.errors import INSUFFICIENT_BALANCE, LiquidityViolation
from xybk.events import Transfer
from xybk.fixed_point import _verify_uint, add, sub

ZERO_ADDRESS = "0x" + "00" * 20


class AssetLedger(Protocol):
    """
    What the pool needs from an asset.

    ``snapshot``/``restore`` let the registry discard every transfer made during
    an operation that ends up failing.
    """

    address: str

    def balance_of(self, holder: str) -> int: ...

    def transfer(self, sender: str, to: str, amount: int) -> None: ...

    def snapshot(self) -> object: ...

    def restore(self, snapshot: object) -> None: ...


class Token:
    """
    A fungible asset keeping balances in memory.

    Attributes:
        symbol (str): Ticker, for display only.
        address (str): Hex address identifying the asset.
        total_supply (int): Units in existence.
        balances (dict): Holder address to balance.
        events (list): ``Transfer`` events in emission order.
    """

    def __init__(self, symbol: str, address: str):
        self.symbol = symbol
        self.address = address
        self.total_supply = 0
        self.balances = {}
        self.events = []

    def __repr__(self) -> str:
        return f"Token({self.symbol}, {self.address}, supply={self.total_supply})"

    def balance_of(self, holder: str) -> int:
        return self.balances.get(holder, 0)

    def mint(self, to: str, amount: int) -> None:
        _verify_uint(amount, "amount")
        self.total_supply = add(self.total_supply, amount)
        self.balances[to] = add(self.balance_of(to), amount)
        self.events.append(Transfer(ZERO_ADDRESS, to, amount))

    def transfer(self, sender: str, to: str, amount: int) -> None:
        _verify_uint(amount, "amount")
        if self.balance_of(sender) < amount:
            raise LiquidityViolation(INSUFFICIENT_BALANCE, f"{sender} holds less than {amount} {self.symbol}")
        self.balances[sender] = sub(self.balance_of(sender), amount)
        self.balances[to] = add(self.balance_of(to), amount)
        self.events.append(Transfer(sender, to, amount))

    def snapshot(self) -> object:
        return self.total_supply, dict(self.balances), len(self.events)

    def restore(self, snapshot: object) -> None:
        self.total_supply, balances, n_events = snapshot
        self.balances = dict(balances)
        del self.events[n_events:]
