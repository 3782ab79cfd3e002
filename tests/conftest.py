"""Shared test fixtures for the scam check backend."""

from __future__ import annotations

import copy
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from backend.config import Settings, reset_settings
from backend.main import create_app
from backend.text_scanner import TextScanner

VALID_RESULT: Dict[str, Any] = {
    "verdict": "likely_scam",
    "confidence": 85,
    "summary": "Unsolicited prize notice pushing you to click a link.",
    "why": [
        "You did not enter any contest.",
        "It pressures you to click right away.",
        "No company or sender is identified.",
    ],
    "red_flags": ["prize you never entered", "vague call to click"],
    "safe_next_steps": [
        "Do not click anything in the message.",
        "Delete the message.",
        "If unsure, contact the company through its official website you look up yourself.",
    ],
    "entities": {
        "phones": [],
        "emails": [],
        "urls": [],
        "requested_action": "click a link to claim a prize",
    },
}


def valid_result() -> Dict[str, Any]:
    return copy.deepcopy(VALID_RESULT)


def structured_envelope(result: Any) -> Dict[str, Any]:
    return {"id": "resp_1", "output": [{"type": "output_json", "json": result}]}


class FakeClient:
    """Stands in for OpenAIClient; records payloads and replays a canned reply."""

    def __init__(self, reply: Any = None, error: Exception | None = None):
        self.reply = reply if reply is not None else structured_envelope(valid_result())
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def create_response(self, payload: Dict[str, Any]) -> Any:
        self.calls.append(payload)
        if self.error is not None:
            raise self.error
        return copy.deepcopy(self.reply)


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch):
    """Never read a real key or hit the real API."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-key-not-real")
    monkeypatch.delenv("SENTRY_DSN", raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> Settings:
    return Settings(openai_api_key="test-key-not-real", openai_model="test-model")


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def scanner(settings, fake_client) -> TextScanner:
    return TextScanner(settings, client=fake_client)


@pytest.fixture
def make_api():
    """Build a TestClient around a scanner wired to the given fake client."""

    def _make(client: FakeClient, settings: Settings | None = None) -> TestClient:
        settings = settings or Settings(openai_api_key="test-key-not-real", openai_model="test-model")
        app = create_app(settings=settings, scanner=TextScanner(settings, client=client))
        return TestClient(app)

    return _make


