"""Errors raised by the validation engine.

Invalid cell values are never raised; they become ``Invalid`` outcomes and the
cell is cleared. Everything here aborts the call before anything is written.
"""


class PatronCleanError(Exception):
    """Base class for engine errors."""


class InvalidReferenceError(PatronCleanError):
    """Malformed or out-of-range column letter, cell address or A1 range."""


class InvalidChoiceError(PatronCleanError):
    """A confirmation answer that is not one of the offered options."""


class PendingOperationNotFound(PatronCleanError):
    """No suspended operation is stored under the given id."""


class TableNotFound(PatronCleanError):
    """No cached table is stored under the given id."""


class LookupFailure(PatronCleanError):
    """The MX lookup could not produce an answer (transport/HTTP/JSON error)."""


class DomainLookupError(PatronCleanError):
    """Raised when lookup failures are configured to reject the whole call."""

    def __init__(self, domain: str, cause: Exception):
        super().__init__(f"MX lookup for '{domain}' failed: {cause}")
        self.domain = domain
        self.cause = cause


class OperationCancelled(PatronCleanError):
    """The caller aborted a pass before its batch write."""


class StaleOperationError(PatronCleanError):
    """A suspended operation no longer matches the table it was recorded against."""
