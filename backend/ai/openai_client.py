# backend/ai/openai_client.py

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import requests

from backend.config import Settings
from backend.errors import MalformedUpstreamResponse, UpstreamError

logger = logging.getLogger("scamcheck")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite JSON number {name}")


def loads_json(text: str) -> Any:
    """json.loads that refuses NaN/Infinity, which a JSON response body could not carry back out."""
    return json.loads(text, parse_constant=_reject_constant)


class OpenAIClient:
    """
    Thin wrapper over the OpenAI Responses endpoint.

    One POST per call, bounded by `timeout`. Never retries: transport
    failures are raised as UpstreamError and the caller decides.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> OpenAIClient:
        return cls(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.openai_timeout,
        )

    def create_response(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = self.session.post(
                f"{self.base_url}/responses",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning(json.dumps({"event": "upstream_error", "status": None, "error": str(exc)}))
            raise UpstreamError(details=str(exc)) from exc

        if resp.status_code >= 400:
            logger.warning(json.dumps({"event": "upstream_error", "status": resp.status_code}))
            raise UpstreamError(details=resp.text, status=resp.status_code)

        try:
            return loads_json(resp.text)
        except ValueError as exc:
            logger.warning(json.dumps({"event": "malformed_upstream", "reason": "non-json body"}))
            raise MalformedUpstreamResponse(raw=resp.text, message="Unexpected response shape") from exc
