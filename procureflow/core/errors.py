"""
Typed error taxonomy for stage invocations.

Every failure a stage handler can report is one of these. None of them leaves
workflow state partially written: handlers raise before committing.
"""
from typing import Any, Dict, Optional


class ProcurementError(Exception):
    """Base class; `code` is the result code exposed to callers."""

    code = "ProcurementError"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class InvalidInput(ProcurementError):
    """Malformed or empty arguments. Recoverable locally."""

    code = "InvalidInput"
    http_status = 422


class InvalidWeights(InvalidInput):
    """Bid scoring weights that do not sum to 100."""

    code = "InvalidWeights"


class PrecursorMissing(ProcurementError):
    """A stage was invoked before the stage that produces its input."""

    code = "PrecursorMissing"
    http_status = 409

    def __init__(self, stage: str, message: Optional[str] = None):
        super().__init__(message or f"Stage '{stage}' must complete first")
        self.stage = stage

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["stage"] = self.stage
        return data


class UpstreamError(ProcurementError):
    """The extraction or notification collaborator failed. Retryable."""

    code = "UpstreamError"
    http_status = 502


class UpstreamTimeout(UpstreamError):
    code = "UpstreamTimeout"
    http_status = 504


class PersistenceError(ProcurementError):
    """The workflow state store is unavailable."""

    code = "PersistenceError"
    http_status = 503
