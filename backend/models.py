# backend/models.py

"""
Request and result contract for the scam check.

One place owns three things that must stay in step:
  - validate_request(): what we accept from the caller
  - output_schema(): the JSON schema handed to the model as a generation constraint
  - validate_result(): the same shape, re-checked on whatever the model sends back
"""

from __future__ import annotations

import copy
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from backend.errors import MissingText, SchemaViolation, TextTooLong, UnsupportedMediaType

MAX_TEXT_CHARS = 15000
SCHEMA_NAME = "scam_check_result"
VERDICTS = ("scam", "likely_scam", "unsure", "likely_legit")

Verdict = Literal["scam", "likely_scam", "unsure", "likely_legit"]
InputType = Literal["text", "email"]


class AnalyzeRequest(BaseModel):
    inputType: InputType = Field("text", description="What kind of message was pasted.")
    text: str = Field(..., description="Trimmed message body; bounds enforced by validate_request().")


class Entities(BaseModel):
    model_config = ConfigDict(extra="forbid")

    phones: List[str]
    emails: List[str]
    urls: List[str]
    requested_action: str


class AnalysisResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    verdict: Verdict
    confidence: Annotated[int, Field(strict=True, ge=0, le=100)]
    summary: str
    why: Annotated[List[str], Field(min_length=3, max_length=10)]
    red_flags: Annotated[List[str], Field(max_length=15)]
    safe_next_steps: Annotated[List[str], Field(min_length=3, max_length=10)]
    entities: Entities


_STRING_LIST = {"type": "array", "items": {"type": "string"}}

_OUTPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "verdict": {"type": "string", "enum": list(VERDICTS)},
        "confidence": {"type": "integer", "minimum": 0, "maximum": 100},
        "summary": {"type": "string"},
        "why": {**_STRING_LIST, "minItems": 3, "maxItems": 10},
        # no minItems: a message can have zero red flags
        "red_flags": {**_STRING_LIST, "maxItems": 15},
        "safe_next_steps": {**_STRING_LIST, "minItems": 3, "maxItems": 10},
        "entities": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "phones": dict(_STRING_LIST),
                "emails": dict(_STRING_LIST),
                "urls": dict(_STRING_LIST),
                "requested_action": {"type": "string"},
            },
            "required": ["phones", "emails", "urls", "requested_action"],
        },
    },
    "required": [
        "verdict",
        "confidence",
        "summary",
        "why",
        "red_flags",
        "safe_next_steps",
        "entities",
    ],
}


def output_schema() -> Dict[str, Any]:
    """Return a fresh copy of the structured-output schema sent to the model."""
    return copy.deepcopy(_OUTPUT_SCHEMA)


# Whitespace and line terminators removed by a browser-side String.prototype.trim()
TRIM_CHARS = "\t\n\v\f\r " + "".join(
    chr(cp)
    for cp in (0x00A0, 0x1680, *range(0x2000, 0x200B), 0x2028, 0x2029, 0x202F, 0x205F, 0x3000, 0xFEFF)
)


def text_length(text: str) -> int:
    """Length in UTF-16 code units, the unit a browser form counts in."""
    return len(text.encode("utf-16-le", "surrogatepass")) // 2


def is_json_content_type(content_type: Optional[str]) -> bool:
    return "application/json" in (content_type or "").lower()


def validate_request(payload: Any, content_type: Optional[str]) -> AnalyzeRequest:
    """
    Check an inbound body against the input rules, in order:
    JSON media type, inputType coercion, trim, non-empty, length cap.
    """
    if not is_json_content_type(content_type):
        raise UnsupportedMediaType()

    body = payload if isinstance(payload, dict) else {}
    input_type = "email" if body.get("inputType") == "email" else "text"
    raw_text = body.get("text")
    text = raw_text.strip(TRIM_CHARS) if isinstance(raw_text, str) else ""

    if not text:
        raise MissingText()
    if text_length(text) > MAX_TEXT_CHARS:
        raise TextTooLong()

    return AnalyzeRequest(inputType=input_type, text=text)


def _describe(exc: PydanticValidationError) -> List[str]:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
        problems.append(f"{loc}: {err.get('msg')}")
    return problems


def validate_result(candidate: Any) -> AnalysisResult:
    """Re-validate model output. Anything short of the full shape is a SchemaViolation."""
    if not isinstance(candidate, dict):
        raise SchemaViolation(raw=candidate, problems=["<root>: expected a JSON object"])
    try:
        return AnalysisResult.model_validate(candidate)
    except PydanticValidationError as exc:
        raise SchemaViolation(raw=candidate, problems=_describe(exc)) from exc
