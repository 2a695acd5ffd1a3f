"""
FILE: core/errors.py
---------------------
Error taxonomy shared by every engine entry point.

  - InputValidationError : a precondition is not met (wrong group count,
                           sample too small, missing column, non-numeric value)
  - ComputationError     : degenerate input makes the maths undefined
                           (zero variance in a denominator, and so on)
  - OffloadTimeoutError  : the offloaded computation did not answer in time

Inapplicable assumption checks are NOT errors. They come back as
AssumptionResult objects with status "inapplicable".

Errors cross the process boundary as plain {"kind", "message"} payloads
and are rebuilt into the same class on the other side.
"""


class StatEngineError(Exception):
    """Base class for every structured engine failure."""

    kind: str = "engine"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, str]:
        return {"kind": self.kind, "message": self.message}


class InputValidationError(StatEngineError):
    kind = "validation"


class ComputationError(StatEngineError):
    kind = "computation"


class OffloadTimeoutError(StatEngineError):
    kind = "timeout"


_ERRORS_BY_KIND: dict[str, type[StatEngineError]] = {
    cls.kind: cls
    for cls in (StatEngineError, InputValidationError, ComputationError, OffloadTimeoutError)
}


def error_from_payload(payload: dict) -> StatEngineError:
    """Rebuilds an engine error from its {"kind", "message"} payload."""
    cls = _ERRORS_BY_KIND.get(payload.get("kind", ""), StatEngineError)
    return cls(str(payload.get("message", "")))
