import json
from typing import Any, Dict, Optional

PARSE_FAILURE = {"error": "Failed to parse response"}


class PipelineError(Exception):
    """Base error for the contact pipeline, carrying the step that failed."""

    step = "internal"
    status_code = 500

    def __init__(self, error: str, status_code: Optional[int] = None):
        super().__init__(error)
        self.error = error
        if status_code is not None:
            self.status_code = status_code

    def to_response(self) -> Dict[str, Any]:
        """Structured error body returned to the caller."""
        return {"step": self.step, "error": self.error}


class ConfigurationError(PipelineError):
    """Deployment is missing something we need (e.g. the vendor API key)."""

    step = "internal"
    status_code = 500


class ValidationError(PipelineError):
    """Request body is unusable. Never reaches the network."""

    step = "validate"
    status_code = 400


class UpstreamError(PipelineError):
    """A vendor call failed with a non-2xx status or a transport error."""

    status_code = 502

    def __init__(self, step: str, error: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(error, status_code)
        self.step = step
        self.payload = payload

    @classmethod
    def from_payload(cls, step: str, status_code: int, payload: Any) -> "UpstreamError":
        return cls(step, describe_payload(payload), status_code=status_code, payload=payload)

    def to_response(self) -> Dict[str, Any]:
        body = super().to_response()
        if self.payload is not None:
            body["details"] = self.payload
        return body


def describe_payload(payload: Any) -> str:
    """Pick a human readable message out of a vendor error body."""
    if isinstance(payload, dict):
        for key in ("message", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    if isinstance(payload, str) and payload:
        return payload
    if payload is None:
        return "Request failed"
    return json.dumps(payload, separators=(",", ":"), default=str)
