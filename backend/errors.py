# backend/errors.py

"""
Error taxonomy for the scan pipeline.

Every failure the service can produce is a ScanError subclass that knows
its HTTP status and JSON body, so the app boundary converts them with one
handler:

    ConfigurationError          500  {"error"}
    UnsupportedMediaType        400  {"error"}
    MissingText                 400  {"error"}
    TextTooLong                 413  {"error"}
    UpstreamError               502  {"error", "details"}
    MalformedUpstreamResponse   500  {"error", "raw"}
    SchemaViolation             500  {"error", "raw"}
"""

from __future__ import annotations

from typing import Any, Dict

_MISSING = object()


class ScanError(Exception):
    status_code = 500
    message = "Internal server error."
    retryable = False

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class ConfigurationError(ScanError):
    """Deployment problem (missing credential). Not the caller's fault."""

    status_code = 500
    message = "Missing OPENAI_API_KEY"


# ---------------------------------------------------------------------
# Caller errors (never forwarded upstream)
# ---------------------------------------------------------------------

class ValidationError(ScanError):
    status_code = 400
    message = "Invalid request."


class UnsupportedMediaType(ValidationError):
    message = "Expected application/json"


class MissingText(ValidationError):
    message = "Missing text"


class TextTooLong(ValidationError):
    status_code = 413
    message = "Text too long"


# ---------------------------------------------------------------------
# Upstream errors
# ---------------------------------------------------------------------

class UpstreamError(ScanError):
    status_code = 502
    message = "OpenAI request failed"
    retryable = True

    def __init__(self, details: str = "", status: int | None = None, message: str | None = None):
        super().__init__(message)
        self.details = details
        self.status = status

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "details": self.details}


class _RawPayloadError(ScanError):
    status_code = 500

    def __init__(self, raw: Any = _MISSING, message: str | None = None):
        super().__init__(message)
        self.raw = raw

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.raw is not _MISSING:
            body["raw"] = self.raw
        return body


class MalformedUpstreamResponse(_RawPayloadError):
    message = "Model did not return JSON"


class SchemaViolation(_RawPayloadError):
    message = "Model output did not match schema"

    def __init__(self, raw: Any = _MISSING, message: str | None = None, problems: list | None = None):
        super().__init__(raw, message)
        self.problems = problems or []
