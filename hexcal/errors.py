"""Exception types raised by hexcal."""


class HexcalError(Exception):
    """Base class for hexcal errors."""


class MalformedStake(HexcalError, ValueError):
    """A raw stake entry could not be decoded."""


class MalformedDailyRecord(HexcalError, ValueError):
    """A packed daily data value is structurally impossible."""


class DivisionUnavailable(HexcalError, ArithmeticError):
    """A ratio was requested for a day with no recorded shares."""


class PriceUnavailable(HexcalError):
    """A required price quote is missing."""


class LedgerCallFailed(HexcalError):
    """A ledger read failed. Never propagated past the gateway."""

    def __init__(self, method: str, cause: Exception = None):
        self.method = method
        self.cause = cause
        super().__init__(f"Ledger call {method} failed: {cause}")
