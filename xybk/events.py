"""Observable events. Field order is part of the interface."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Transfer:
    sender: str
    to: str
    value: int


@dataclass(frozen=True)
class Approval:
    owner: str
    spender: str
    value: int


@dataclass(frozen=True)
class Sync:
    reserve0: int
    reserve1: int


@dataclass(frozen=True)
class Mint:
    sender: str
    amount0: int
    amount1: int


@dataclass(frozen=True)
class Burn:
    sender: str
    amount0: int
    amount1: int
    to: str


@dataclass(frozen=True)
class Swap:
    sender: str
    amount0_in: int
    amount1_in: int
    amount0_out: int
    amount1_out: int
    to: str


@dataclass(frozen=True)
class ChangeInvariant:
    is_boosted: bool
    boost0: int
    boost1: int


@dataclass(frozen=True)
class UpdatedBoost:
    old_boost0: int
    old_boost1: int
    new_boost0: int
    new_boost1: int
    start_time: int
    end_time: int


@dataclass(frozen=True)
class UpdatedTradeState:
    trade_state: int


@dataclass(frozen=True)
class UpdatedFee:
    fee: int


@dataclass(frozen=True)
class PairCreated:
    token0: str
    token1: str
    pool: str
    index: int


class EventLog(list):
    """Append-only list of emitted events with typed filtering."""

    def emit(self, event) -> None:
        self.append(event)

    def of_type(self, event_type) -> list:
        return [e for e in self if isinstance(e, event_type)]

    def truncate(self, length: int) -> None:
        del self[length:]
