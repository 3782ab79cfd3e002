# backend/text_scanner.py

"""
LLM-backed scam check for pasted text messages and emails.

Public interface:

    TextScanner(settings, client=None).analyze(payload, content_type) -> AnalysisResult

A call either returns a fully schema-valid AnalysisResult or raises a
ScanError subclass (see backend.errors). There is no partial result and
no internal retry. Exactly one upstream request is made per accepted input.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from backend.ai.openai_client import OpenAIClient, loads_json
from backend.config import Settings
from backend.errors import ConfigurationError, MalformedUpstreamResponse, SchemaViolation
from backend.models import (
    SCHEMA_NAME,
    AnalysisResult,
    AnalyzeRequest,
    output_schema,
    text_length,
    validate_request,
    validate_result,
)

logger = logging.getLogger("scamcheck")

# ---------------------------------------------------------------------
# 1. PROMPT
# ---------------------------------------------------------------------

SYSTEM_MSG = "\n".join(
    [
        "You are a fraud and social engineering analyst.",
        "Classify the MESSAGE (not the company/brand it mentions or impersonates) as "
        "scam, likely_scam, unsure, or likely_legit.",
        "If evidence is insufficient, choose 'unsure'.",
        "Never instruct the user to click links, call numbers, or write to addresses found in the message.",
        "Always recommend verifying through official channels the user finds independently "
        "(the company's own app, a bookmarked website, the number on the back of their card).",
        "Return ONLY valid JSON matching the schema.",
    ]
)


def build_messages(req: AnalyzeRequest) -> List[Dict[str, str]]:
    user = f"Message type: {req.inputType}\nMessage text:\n{req.text}"
    return [
        {"role": "system", "content": SYSTEM_MSG},
        {"role": "user", "content": user},
    ]


def build_payload(req: AnalyzeRequest, model: str) -> Dict[str, Any]:
    return {
        "model": model,
        "input": build_messages(req),
        "text": {
            "format": {
                "type": "json_schema",
                "name": SCHEMA_NAME,
                "strict": True,
                "schema": output_schema(),
            }
        },
    }


# ---------------------------------------------------------------------
# 2. JSON extraction (structured item first, then text)
# ---------------------------------------------------------------------

def _extract_json_block(text: str) -> str | None:
    """Extract the outermost {...} span, for when the model wraps JSON in prose or fences."""
    match = re.search(r"\{[\s\S]*\}", text)
    if match:
        return match.group(0)
    return None


def _output_items(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    items = data.get("output")
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def _structured_item(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    for item in _output_items(data):
        if item.get("type") == "output_json" and isinstance(item.get("json"), dict):
            return item["json"]
    return None


def _output_text(data: Dict[str, Any]) -> str:
    """
    Collect the model's text output. The convenience `output_text` field
    wins; otherwise join the output_text parts of message items.
    """
    text = data.get("output_text")
    if isinstance(text, str) and text:
        return text

    parts: List[str] = []
    for item in _output_items(data):
        content = item.get("content")
        if not isinstance(content, list):
            continue
        for part in content:
            if isinstance(part, dict) and part.get("type") == "output_text" and isinstance(part.get("text"), str):
                parts.append(part["text"])
    return "".join(parts)


def _refusal(data: Dict[str, Any]) -> str | None:
    for item in _output_items(data):
        content = item.get("content")
        if not isinstance(content, list):
            continue
        for part in content:
            if isinstance(part, dict) and part.get("type") == "refusal":
                return str(part.get("refusal") or "")
    return None


def _parse_text(text: str) -> Any:
    try:
        return loads_json(text)
    except ValueError:
        pass
    block = _extract_json_block(text)
    if block is not None:
        try:
            return loads_json(block)
        except ValueError:
            pass
    raise MalformedUpstreamResponse(raw=text)


def extract_payload(data: Any) -> Any:
    """Pull the candidate result out of a Responses API envelope."""
    if not isinstance(data, dict):
        raise MalformedUpstreamResponse(raw=data, message="Unexpected response shape")

    structured = _structured_item(data)
    if structured is not None:
        return structured

    text = _output_text(data)
    if text:
        return _parse_text(text)

    refusal = _refusal(data)
    if refusal is not None:
        raise MalformedUpstreamResponse(raw=refusal, message="Model refused to analyze the message")

    raise MalformedUpstreamResponse(raw=data, message="Unexpected response shape")


# ---------------------------------------------------------------------
# 3. MAIN PUBLIC CLASS
# ---------------------------------------------------------------------

class TextScanner:
    def __init__(self, settings: Settings, client: Optional[OpenAIClient] = None):
        self.settings = settings
        self._client = client

    @property
    def client(self) -> OpenAIClient:
        if self._client is None:
            self._client = OpenAIClient.from_settings(self.settings)
        return self._client

    def analyze(self, payload: Any, content_type: Optional[str]) -> AnalysisResult:
        if not self.settings.configured:
            logger.error(json.dumps({"event": "config_error", "missing": "OPENAI_API_KEY"}))
            raise ConfigurationError()

        req = validate_request(payload, content_type)

        data = self.client.create_response(build_payload(req, self.settings.openai_model))

        try:
            candidate = extract_payload(data)
        except MalformedUpstreamResponse as exc:
            logger.warning(json.dumps({"event": "malformed_upstream", "reason": exc.message}))
            raise

        try:
            result = validate_result(candidate)
        except SchemaViolation as exc:
            logger.warning(json.dumps({"event": "schema_violation", "problems": exc.problems[:10]}))
            raise

        logger.info(
            json.dumps(
                {
                    "event": "analyze",
                    "input_type": req.inputType,
                    "text_length": text_length(req.text),
                    "verdict": result.verdict,
                    "confidence": result.confidence,
                }
            )
        )
        return result
