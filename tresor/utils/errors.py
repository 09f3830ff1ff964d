"""Domain exceptions raised by the obligation and tontine services."""


class LedgerError(Exception):
    """Base exception for engine errors. Carries a human-readable message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LedgerValidationError(LedgerError):
    """Caller input is structurally invalid."""
    pass


class PolicyError(LedgerError):
    """Operation is well-formed but forbidden by a business rule."""
    pass


class InsufficientBalanceError(PolicyError):
    def __init__(self, message: str, check=None):
        super().__init__(message)
        self.check = check


class LockedMemberError(PolicyError):
    pass


class TerminalObligationError(PolicyError):
    pass


class NotFoundError(LedgerError):
    pass
