from __future__ import annotations


class RemitGuardError(Exception):
    """Base class for errors raised by the detection engine."""


class InvalidArgument(RemitGuardError, ValueError):
    """Caller passed an input the engine refuses to evaluate.

    Raised before any counter store call. This is the only error public
    operations let escape: it signals a bug in the calling code, not an
    infrastructure condition.
    """


class StoreUnavailable(RemitGuardError):
    """The counter store could not be reached, timed out or rejected a call.

    Backends wrap their client-specific exceptions into this type so the
    guard and scorer can apply a single fail-open policy.
    """

    def __init__(self, operation: str, key: str | None = None, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.key = key
        self.cause = cause
        detail = f"counter store {operation} failed"
        if key is not None:
            detail += f" for key {key!r}"
        if cause is not None:
            detail += f": {cause}"
        super().__init__(detail)
