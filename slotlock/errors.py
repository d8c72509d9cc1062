"""
Typed failures surfaced by the timelock engine.

Every error is reported verbatim to the caller; nothing is retried
internally. ``code`` carries the taxonomy name so hosts and the CLI can
report failures without depending on class identity.
"""

from __future__ import annotations


class TimelockError(Exception):
    """Base class for all engine failures."""

    code = "TimelockError"
    retriable = False

    def __init__(self, message: str = "", **context: object):
        super().__init__(message or self.code)
        self.context = context

    def to_dict(self) -> dict[str, object]:
        """Serialize for event payloads and JSON output."""
        return {
            "code": self.code,
            "message": str(self),
            "retriable": self.retriable,
            "context": {k: str(v) for k, v in self.context.items()},
        }


class Unauthorized(TimelockError):
    code = "Unauthorized"


class InvalidState(TimelockError):
    code = "InvalidState"


class NotReady(TimelockError):
    """Delay not yet elapsed. Expected under normal operation."""

    code = "NotReady"
    retriable = True


class AlreadyExecuted(TimelockError):
    code = "AlreadyExecuted"


class AccountMismatch(TimelockError):
    code = "AccountMismatch"


class BatchFull(TimelockError):
    code = "BatchFull"


class AlreadyInitialized(TimelockError):
    code = "AlreadyInitialized"


class AccountNotFound(TimelockError):
    code = "AccountNotFound"


class InvalidArgument(TimelockError):
    code = "InvalidArgument"


class InvocationFailed(TimelockError):
    """The dispatched call did not apply. Nothing was recorded."""

    code = "InvocationFailed"
    retriable = True


ERROR_TYPES: dict[str, type[TimelockError]] = {
    cls.code: cls
    for cls in (
        Unauthorized,
        InvalidState,
        NotReady,
        AlreadyExecuted,
        AccountMismatch,
        BatchFull,
        AlreadyInitialized,
        AccountNotFound,
        InvalidArgument,
        InvocationFailed,
    )
}
