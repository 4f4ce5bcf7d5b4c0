"""Exception types raised by the repayment-schedule engine.

Incomplete terms (a zero principal or term) are not errors: the engine returns
an empty schedule for them. The exceptions below cover genuine contract
violations that would otherwise produce a silently wrong schedule.
"""


class LoanScheduleError(Exception):
    """Base class for all engine errors."""


class InvalidLoanTermsError(LoanScheduleError, ValueError):
    """Raised when loan terms contain values no schedule can be built from."""


class UnknownCalculationMethodError(LoanScheduleError, ValueError):
    """Raised when a calculation method name is not recognized."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Unknown calculation method: {value!r}")
        self.value = value


class UnknownLocaleError(LoanScheduleError, KeyError):
    """Raised when a display locale code is not registered."""

    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code

    def __str__(self) -> str:
        return f"Unknown display locale: {self.code!r}"
