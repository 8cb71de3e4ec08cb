"""
The xybk pool: a two-asset pool priced by a boostable constant-product curve.

Every state-changing entry point is one atomic unit of work. It runs under a
single reentrancy lock shared by all entry points, and if it raises, the
registry rolls back every pool and every pooled asset to where they stood
before the call, including work done in other pools from a flash callback.

Accounting is transfer-then-measure: the pool never trusts amounts passed in,
it reads its own asset balances and treats anything above the last reserves
as input.
"""

import copy
import enum
import functools
import logging

from xybk import invariant
from xybk.assets import ZERO_ADDRESS
from xybk.boost import IDENTITY_BOOST, BoostMode, BoostSchedule
from xybk.clock import wall_clock
from xybk.config import FEE_DENOMINATOR, MAX_FEE_BPS, MIN_FEE_BPS, PoolConfig
from xybk.errors import (
    BOOST_ALREADY_CHANGING,
    FORBIDDEN,
    INSUFFICIENT_INPUT_AMOUNT,
    INSUFFICIENT_LIQUIDITY,
    INSUFFICIENT_LIQUIDITY_BURNED,
    INSUFFICIENT_LIQUIDITY_MINTED,
    INSUFFICIENT_OUTPUT_AMOUNT,
    INVALID_BOOST,
    INVALID_FEE,
    INVALID_TO,
    INVALID_TRADE_STATE,
    IS_ALREADY_UNI,
    IS_ALREADY_XYBK,
    LOCKED,
    NOT_XYBK,
    TRADE_NOT_ALLOWED,
    AccessViolation,
    LiquidityViolation,
    PoolError,
    ReentrancyViolation,
    StateMachineViolation,
    TradeStateViolation,
)
from xybk.events import (
    Burn,
    ChangeInvariant,
    EventLog,
    Mint,
    Swap,
    Sync,
    UpdatedBoost,
    UpdatedFee,
    UpdatedTradeState,
)
from xybk.fixed_point import _verify_uint, add, div, isqrt, mul, sub
from xybk.ledger import ClaimToken, ReserveLedger

logger = logging.getLogger(__name__)


class TradeState(enum.IntEnum):
    SELL_ALL = 0
    SELL_TOKEN_0_ONLY = 1
    SELL_TOKEN_1_ONLY = 2
    SELL_NONE = 3


_SELLABLE = {
    TradeState.SELL_ALL: (True, True),
    TradeState.SELL_TOKEN_0_ONLY: (True, False),
    TradeState.SELL_TOKEN_1_ONLY: (False, True),
    TradeState.SELL_NONE: (False, False),
}


def lock(method):
    """Runs an entry point under the pool lock, rolling back on any failure."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if not self._unlocked:
            raise ReentrancyViolation(LOCKED, f"{method.__name__} re-entered")
        self._unlocked = False
        checkpoint = self.registry.checkpoint()
        try:
            return method(self, *args, **kwargs)
        except Exception as e:
            self.registry.rollback(checkpoint)
            code = e.code if isinstance(e, PoolError) else type(e).__name__
            logger.warning("%s on %s rolled back: %s", method.__name__, self.address, code)
            raise
        finally:
            self._unlocked = True

    return wrapper


def _address_of(account) -> str:
    address = getattr(account, "address", account)
    if not isinstance(address, str):
        raise TypeError(f"expected an address or an object with .address, got {type(account)}")
    return address


class XybkPool:
    """
    A pool over one sorted asset pair.

    Attributes:
        address (str): Deterministic pool address assigned by the registry.
        token0, token1 (AssetLedger): The pooled assets, sorted by address.
        registry: Source of the privileged ``governance`` and ``fee_to`` addresses.
        config (PoolConfig): Fee, transition window and other parameters.
        clock (callable): Returns the current time in seconds.
        claims (ClaimToken): The claim-token ledger.
        reserves (ReserveLedger): Last synchronized reserves and accumulators.
        boost (BoostSchedule): The current boost transition.
        is_boosted (bool): Set by ``make_xybk``, cleared by ``make_uni``.
        trade_state (TradeState): Circuit breaker on swap direction.
        fee (int): Swap fee in basis points.
        events (EventLog): Everything this pool has emitted.
    """

    def __init__(self, address: str, token0, token1, registry, config: PoolConfig = None, clock=None):
        self.address = address
        self.token0 = token0
        self.token1 = token1
        self.registry = registry
        self.config = config or PoolConfig()
        self.clock = clock or wall_clock

        self.events = EventLog()
        self.claims = ClaimToken(self.config.claim_name, address, self.config.chain_id, self.events)
        self.reserves = ReserveLedger()
        self.boost = BoostSchedule()
        self.is_boosted = False
        self.trade_state = TradeState.SELL_ALL
        self.fee = self.config.fee_bps
        self._unlocked = True

    def __repr__(self) -> str:
        return (
            f"XybkPool({self.address}, r0={self.reserves.reserve0}, r1={self.reserves.reserve1}, "
            f"supply={self.claims.total_supply}, boost={self.calc_boost()})"
        )

    # --- Views ---

    @property
    def minimum_liquidity(self) -> int:
        return self.config.minimum_liquidity

    @property
    def total_supply(self) -> int:
        return self.claims.total_supply

    @property
    def k_last(self) -> int:
        return self.reserves.k_last

    @property
    def price0_cumulative_last(self) -> int:
        return self.reserves.price0_cumulative_last

    @property
    def price1_cumulative_last(self) -> int:
        return self.reserves.price1_cumulative_last

    def get_reserves(self) -> tuple:
        return self.reserves.reserve0, self.reserves.reserve1, self.reserves.block_timestamp_last

    def balance_of(self, holder) -> int:
        return self.claims.balance_of(_address_of(holder))

    def allowance(self, owner, spender) -> int:
        return self.claims.allowance(_address_of(owner), _address_of(spender))

    def nonces(self, owner) -> int:
        return self.claims.nonce_of(_address_of(owner))

    def calc_boost(self) -> tuple[int, int]:
        """Effective boost right now."""
        return self.boost.effective(self.clock())

    def boost_mode(self) -> BoostMode:
        return self.boost.mode(self.clock())

    def curve_mode(self) -> invariant.CurveMode:
        return invariant.curve_mode(*self.calc_boost())

    def get_amount_out(self, amount_in: int, zero_for_one: bool) -> int:
        """Exact output a swap of ``amount_in`` would receive right now."""
        boost0, boost1 = self.calc_boost()
        return invariant.get_amount_out(amount_in, self.reserves.reserve0, self.reserves.reserve1,
                                        zero_for_one, boost0, boost1, self.fee)

    def get_amount_in(self, amount_out: int, zero_for_one: bool) -> int:
        """Smallest input that buys ``amount_out`` right now."""
        boost0, boost1 = self.calc_boost()
        return invariant.get_amount_in(amount_out, self.reserves.reserve0, self.reserves.reserve1,
                                       zero_for_one, boost0, boost1, self.fee)

    def permit_message(self, owner, spender, value: int, deadline: int):
        return self.claims.permit_message(_address_of(owner), _address_of(spender), value, deadline)

    # --- Atomicity ---

    def snapshot(self) -> tuple:
        """Pool-local state, for the registry's transaction checkpoints."""
        return (
            copy.deepcopy(self.reserves),
            copy.deepcopy(self.boost),
            self.is_boosted,
            self.trade_state,
            self.fee,
            self.claims.snapshot(),
            len(self.events),
        )

    def restore(self, snapshot: tuple) -> None:
        reserves, boost, self.is_boosted, self.trade_state, self.fee, claims, n_events = snapshot
        self.reserves = copy.deepcopy(reserves)
        self.boost = copy.deepcopy(boost)
        self.claims.restore(claims)
        self.events.truncate(n_events)

    # --- Internal bookkeeping ---

    def _balances(self) -> tuple[int, int]:
        return self.token0.balance_of(self.address), self.token1.balance_of(self.address)

    def _update(self, balance0: int, balance1: int) -> None:
        self._rebase_k_last()
        self.reserves.update(balance0, balance1, self.clock())
        self.events.emit(Sync(self.reserves.reserve0, self.reserves.reserve1))

    def _record_k_last(self) -> None:
        boost0, boost1 = self.calc_boost()
        reserve0, reserve1 = self.reserves.reserve0, self.reserves.reserve1
        if invariant.curve_mode(boost0, boost1) is invariant.CurveMode.UNI:
            self.reserves.k_last = mul(reserve0, reserve1)
        else:
            root = invariant.root_k(boost0, boost1, reserve0, reserve1)
            self.reserves.k_last = mul(root, root)
        self.reserves.k_last_boost = (boost0, boost1)

    def _rebase_k_last(self) -> None:
        """
        Re-expresses ``k_last`` under the current boost.

        Root-K at the last synchronized reserves is measured under both the
        boost ``k_last`` was taken at and the current one, and the snapshot is
        scaled by their ratio. Reshaping the curve leaves the fee-driven growth
        ratio unchanged, so a boost change alone never mints protocol fee.
        """
        boost = self.calc_boost()
        stored = self.reserves.k_last_boost
        reserve0, reserve1 = self.reserves.reserve0, self.reserves.reserve1
        if self.reserves.k_last != 0 and boost != stored and reserve0 > 0 and reserve1 > 0:
            old_root = invariant.root_k(*stored, reserve0, reserve1)
            if old_root > 0:
                new_root = invariant.root_k(*boost, reserve0, reserve1)
                root_last = div(mul(isqrt(self.reserves.k_last), new_root), old_root)
                self.reserves.k_last = mul(root_last, root_last)
                logger.debug("k_last rebased from boost %s to %s", stored, boost)
        self.reserves.k_last_boost = boost

    def _mint_fee(self, reserve0: int, reserve1: int) -> bool:
        """
        Mints the protocol's share of fee growth since the last liquidity event.

        With divisor ``d`` the protocol receives ``1/d`` of the growth in
        root-K, paid as newly minted claims so existing holders are diluted by
        exactly that share.
        """
        fee_to = self.registry.fee_to
        fee_on = fee_to != ZERO_ADDRESS
        self._rebase_k_last()
        k_last = self.reserves.k_last
        if fee_on:
            if k_last != 0:
                boost0, boost1 = self.calc_boost()
                root_k = invariant.root_k(boost0, boost1, reserve0, reserve1)
                root_k_last = isqrt(k_last)
                if root_k > root_k_last:
                    divisor = self.config.protocol_fee_divisor
                    numerator = mul(self.claims.total_supply, root_k - root_k_last)
                    denominator = add(mul(root_k, divisor - 1), root_k_last)
                    liquidity = div(numerator, denominator)
                    if liquidity > 0:
                        self.claims.mint(fee_to, liquidity)
                        logger.debug("Protocol fee: %d claims to %s", liquidity, fee_to)
        elif k_last != 0:
            self.reserves.k_last = 0
        return fee_on

    def _only_governance(self, sender) -> None:
        if _address_of(sender) != self.registry.governance:
            raise AccessViolation(FORBIDDEN, f"{sender} is not the parameter setter")

    def _check_trade_state(self, amount0_in: int, amount1_in: int) -> None:
        can_sell0, can_sell1 = _SELLABLE[self.trade_state]
        if (amount0_in > 0 and not can_sell0) or (amount1_in > 0 and not can_sell1):
            raise TradeStateViolation(TRADE_NOT_ALLOWED, f"trade state is {self.trade_state.name}")

    # --- Liquidity ---

    @lock
    def mint(self, to, *, sender) -> int:
        """
        Issues claims for whatever was deposited since the last sync.

        Returns:
            int: Claims minted to ``to``.

        Raises:
            LiquidityViolation: ``IF: INSUFFICIENT_LIQUIDITY_MINTED`` if nothing would be issued.
        """
        to = _address_of(to)
        reserve0, reserve1 = self.reserves.reserve0, self.reserves.reserve1
        balance0, balance1 = self._balances()
        amount0 = sub(balance0, reserve0)
        amount1 = sub(balance1, reserve1)

        fee_on = self._mint_fee(reserve0, reserve1)
        total_supply = self.claims.total_supply
        if total_supply == 0:
            liquidity = sub(isqrt(mul(amount0, amount1)), self.minimum_liquidity)
            self.claims.mint(ZERO_ADDRESS, self.minimum_liquidity)
        else:
            liquidity = min(div(mul(amount0, total_supply), reserve0),
                            div(mul(amount1, total_supply), reserve1))
        if liquidity <= 0:
            raise LiquidityViolation(INSUFFICIENT_LIQUIDITY_MINTED, f"deposit ({amount0}, {amount1}) mints nothing")
        self.claims.mint(to, liquidity)

        self._update(balance0, balance1)
        if fee_on:
            self._record_k_last()
        self.events.emit(Mint(_address_of(sender), amount0, amount1))
        logger.debug("Mint %d claims to %s for (%d, %d)", liquidity, to, amount0, amount1)
        return liquidity

    @lock
    def burn(self, to, *, sender) -> tuple[int, int]:
        """
        Redeems the claims held by the pool itself for a pro-rata share of both assets.

        Returns:
            tuple: ``(amount0, amount1)`` sent to ``to``.

        Raises:
            LiquidityViolation: ``IF: INSUFFICIENT_LIQUIDITY_BURNED`` if either side rounds to zero.
        """
        to = _address_of(to)
        reserve0, reserve1 = self.reserves.reserve0, self.reserves.reserve1
        balance0, balance1 = self._balances()
        liquidity = self.claims.balance_of(self.address)

        fee_on = self._mint_fee(reserve0, reserve1)
        total_supply = self.claims.total_supply
        amount0 = div(mul(liquidity, balance0), total_supply)
        amount1 = div(mul(liquidity, balance1), total_supply)
        if amount0 == 0 or amount1 == 0:
            raise LiquidityViolation(INSUFFICIENT_LIQUIDITY_BURNED, f"{liquidity} claims redeem nothing")

        self.claims.burn(self.address, liquidity)
        self.token0.transfer(self.address, to, amount0)
        self.token1.transfer(self.address, to, amount1)

        self._update(*self._balances())
        if fee_on:
            self._record_k_last()
        self.events.emit(Burn(_address_of(sender), amount0, amount1, to))
        logger.debug("Burn %d claims for (%d, %d) to %s", liquidity, amount0, amount1, to)
        return amount0, amount1

    # --- Trading ---

    @lock
    def swap(self, amount0_out: int, amount1_out: int, to, data: bytes = b"", *, sender) -> tuple[int, int]:
        """
        Sends the requested outputs, then checks the curve against what came in.

        Inputs may be pre-funded or paid from the ``xybk_call`` callback that
        ``to`` receives when ``data`` is non-empty (a flash swap).

        Returns:
            tuple: ``(amount0_in, amount1_in)`` as measured.

        Raises:
            LiquidityViolation: On zero or excessive outputs, a forbidden recipient, or no input.
            TradeStateViolation: If the circuit breaker forbids the selling side.
            InvariantViolation: ``IF: INSUFFICIENT_UNI_K`` or ``IF: INSUFFICIENT_XYBK_K``.
        """
        _verify_uint(amount0_out, "amount0_out")
        _verify_uint(amount1_out, "amount1_out")
        if amount0_out == 0 and amount1_out == 0:
            raise LiquidityViolation(INSUFFICIENT_OUTPUT_AMOUNT, "no output requested")
        reserve0, reserve1 = self.reserves.reserve0, self.reserves.reserve1
        if amount0_out >= reserve0 or amount1_out >= reserve1:
            raise LiquidityViolation(INSUFFICIENT_LIQUIDITY, f"outputs ({amount0_out}, {amount1_out}) exceed reserves")
        to_address = _address_of(to)
        if to_address in (self.token0.address, self.token1.address):
            raise LiquidityViolation(INVALID_TO, f"cannot send to asset {to_address}")

        if amount0_out > 0:
            self.token0.transfer(self.address, to_address, amount0_out)
        if amount1_out > 0:
            self.token1.transfer(self.address, to_address, amount1_out)
        if data:
            callback = getattr(to, "xybk_call", None)
            if callback is None:
                raise TypeError("flash swap recipient must implement xybk_call")
            callback(_address_of(sender), amount0_out, amount1_out, data)

        balance0, balance1 = self._balances()
        amount0_in = balance0 - (reserve0 - amount0_out) if balance0 > reserve0 - amount0_out else 0
        amount1_in = balance1 - (reserve1 - amount1_out) if balance1 > reserve1 - amount1_out else 0
        if amount0_in == 0 and amount1_in == 0:
            raise LiquidityViolation(INSUFFICIENT_INPUT_AMOUNT, "nothing was paid in")
        self._check_trade_state(amount0_in, amount1_in)

        boost0, boost1 = self.calc_boost()
        mode = invariant.check_k(
            boost0, boost1,
            mul(reserve0, FEE_DENOMINATOR), mul(reserve1, FEE_DENOMINATOR),
            invariant.adjusted_balance(balance0, amount0_in, self.fee),
            invariant.adjusted_balance(balance1, amount1_in, self.fee),
        )

        self._update(balance0, balance1)
        self.events.emit(Swap(_address_of(sender), amount0_in, amount1_in, amount0_out, amount1_out, to_address))
        logger.debug("Swap (%d, %d) -> (%d, %d) on %s curve, boost=%s",
                     amount0_in, amount1_in, amount0_out, amount1_out, mode.value, (boost0, boost1))
        return amount0_in, amount1_in

    @lock
    def skim(self, to) -> tuple[int, int]:
        """Sends balances above reserves to ``to`` without touching reserves."""
        to = _address_of(to)
        balance0, balance1 = self._balances()
        excess0 = sub(balance0, self.reserves.reserve0)
        excess1 = sub(balance1, self.reserves.reserve1)
        self.token0.transfer(self.address, to, excess0)
        self.token1.transfer(self.address, to, excess1)
        return excess0, excess1

    @lock
    def sync(self) -> None:
        """Forces reserves to match balances."""
        self._update(*self._balances())

    # --- Claim token ---

    @lock
    def transfer(self, to, value: int, *, sender) -> bool:
        return self.claims.transfer(_address_of(sender), _address_of(to), value)

    @lock
    def transfer_from(self, owner, to, value: int, *, sender) -> bool:
        return self.claims.transfer_from(_address_of(sender), _address_of(owner), _address_of(to), value)

    @lock
    def approve(self, spender, value: int, *, sender) -> bool:
        return self.claims.approve(_address_of(sender), _address_of(spender), value)

    @lock
    def permit(self, owner, spender, value: int, deadline: int, signature: bytes) -> None:
        self.claims.permit(_address_of(owner), _address_of(spender), value, deadline, signature, self.clock())

    # --- Parameter setter ---

    def _update_boost(self, boost0: int, boost1: int) -> None:
        now = self.clock()
        old0, old1 = self.boost.effective(now)
        self.boost.schedule(boost0, boost1, now, self.config.transition_window, self.config.max_boost)
        self.events.emit(UpdatedBoost(old0, old1, boost0, boost1, self.boost.start_time, self.boost.end_time))

    @lock
    def make_xybk(self, boost0: int, boost1: int, *, sender) -> None:
        """Switches to the boosted curve, ramping from the current boost to the target."""
        self._only_governance(sender)
        if self.is_boosted:
            raise StateMachineViolation(IS_ALREADY_XYBK, "pool is already boosted")
        self._update_boost(boost0, boost1)
        self.is_boosted = True
        self.events.emit(ChangeInvariant(True, boost0, boost1))
        logger.info("Pool %s boosted toward (%d, %d)", self.address, boost0, boost1)

    @lock
    def update_boost(self, boost0: int, boost1: int, *, sender) -> None:
        self._only_governance(sender)
        if not self.is_boosted:
            raise StateMachineViolation(NOT_XYBK, "pool is on the constant-product curve")
        self._update_boost(boost0, boost1)

    @lock
    def make_uni(self, *, sender) -> None:
        """
        Returns to the plain constant-product curve.

        Only allowed once a transition to ``(1, 1)`` has been scheduled and
        its window has fully elapsed, so the curve never collapses mid-ramp.
        """
        self._only_governance(sender)
        if not self.is_boosted:
            raise StateMachineViolation(IS_ALREADY_UNI, "pool is already constant-product")
        if self.boost.target != IDENTITY_BOOST:
            raise StateMachineViolation(INVALID_BOOST, f"boost is heading to {self.boost.target}, not (1, 1)")
        if self.boost.is_changing(self.clock()):
            raise StateMachineViolation(BOOST_ALREADY_CHANGING, f"boost settles at {self.boost.end_time}")
        self.is_boosted = False
        self.boost.reset()
        self.events.emit(ChangeInvariant(False, 1, 1))
        logger.info("Pool %s back on the constant-product curve", self.address)

    @lock
    def update_trade_state(self, trade_state: int, *, sender) -> None:
        self._only_governance(sender)
        try:
            trade_state = TradeState(trade_state)
        except ValueError as e:
            raise TradeStateViolation(INVALID_TRADE_STATE, f"unknown trade state {trade_state}") from e
        self.trade_state = trade_state
        self.events.emit(UpdatedTradeState(int(trade_state)))
        logger.warning("Pool %s trade state set to %s", self.address, trade_state.name)

    @lock
    def update_fee(self, fee: int, *, sender) -> None:
        self._only_governance(sender)
        if not MIN_FEE_BPS <= fee <= MAX_FEE_BPS:
            raise StateMachineViolation(INVALID_FEE, f"fee {fee} outside [{MIN_FEE_BPS}, {MAX_FEE_BPS}]")
        self.fee = fee
        self.events.emit(UpdatedFee(fee))
        logger.info("Pool %s fee set to %d bps", self.address, fee)
