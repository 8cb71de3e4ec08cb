"""Exception taxonomy for the xybk pool.

Every failure carries a stable ``code`` (``"IF: ..."``) so integrators can
branch on the condition rather than on the message text.
"""


class PoolError(ValueError):
    """Base class for every pool, registry and ledger failure."""

    code = "IF: ERROR"

    def __init__(self, code: str = None, message: str = None):
        if code is not None:
            self.code = code
        self.message = message or self.code
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r})"


class AccessViolation(PoolError):
    code = "IF: FORBIDDEN"


class InvariantViolation(PoolError):
    code = "IF: INSUFFICIENT_K"


class LiquidityViolation(PoolError):
    code = "IF: INSUFFICIENT_LIQUIDITY"


class StateMachineViolation(PoolError):
    code = "IF: INVALID_BOOST"


class TradeStateViolation(PoolError):
    code = "IF: TRADE_NOT_ALLOWED"


class ReentrancyViolation(PoolError):
    code = "IF: LOCKED"


class ArithmeticViolation(PoolError, OverflowError):
    code = "IF: OVERFLOW"


# Stable identifiers
FORBIDDEN = "IF: FORBIDDEN"
LOCKED = "IF: LOCKED"
OVERFLOW = "IF: OVERFLOW"
UNDERFLOW = "IF: UNDERFLOW"
DIVISION_BY_ZERO = "IF: DIVISION_BY_ZERO"
INSUFFICIENT_UNI_K = "IF: INSUFFICIENT_UNI_K"
INSUFFICIENT_XYBK_K = "IF: INSUFFICIENT_XYBK_K"
INSUFFICIENT_LIQUIDITY_MINTED = "IF: INSUFFICIENT_LIQUIDITY_MINTED"
INSUFFICIENT_LIQUIDITY_BURNED = "IF: INSUFFICIENT_LIQUIDITY_BURNED"
INSUFFICIENT_OUTPUT_AMOUNT = "IF: INSUFFICIENT_OUTPUT_AMOUNT"
INSUFFICIENT_INPUT_AMOUNT = "IF: INSUFFICIENT_INPUT_AMOUNT"
INSUFFICIENT_LIQUIDITY = "IF: INSUFFICIENT_LIQUIDITY"
INSUFFICIENT_BALANCE = "IF: INSUFFICIENT_BALANCE"
INSUFFICIENT_ALLOWANCE = "IF: INSUFFICIENT_ALLOWANCE"
INVALID_TO = "IF: INVALID_TO"
INVALID_BOOST = "IF: INVALID_BOOST"
INVALID_FEE = "IF: INVALID_FEE"
INVALID_TRADE_STATE = "IF: INVALID_TRADE_STATE"
BOOST_ALREADY_CHANGING = "IF: BOOST_ALREADY_CHANGING"
IS_ALREADY_XYBK = "IF: IS_ALREADY_XYBK"
IS_ALREADY_UNI = "IF: IS_ALREADY_UNI"
NOT_XYBK = "IF: NOT_XYBK"
TRADE_NOT_ALLOWED = "IF: TRADE_NOT_ALLOWED"
EXPIRED = "IF: EXPIRED"
INVALID_SIGNATURE = "IF: INVALID_SIGNATURE"
IDENTICAL_ADDRESSES = "IF: IDENTICAL_ADDRESSES"
ZERO_ADDRESS = "IF: ZERO_ADDRESS"
NOT_WHITELISTED = "IF: NOT_WHITELISTED"
PAIR_EXISTS = "IF: PAIR_EXISTS"
