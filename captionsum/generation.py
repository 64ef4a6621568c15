from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

import requests

from captionsum.config import DEFAULT_GEMINI_API_BASE
from captionsum.errors import (
    AllModelsFailed,
    ModelNotFound,
    NoContentGenerated,
    ServiceError,
    UpstreamError,
)
from captionsum.fallback import CandidatesExhausted, try_in_order

logger = logging.getLogger(__name__)

Part = Dict[str, Any]


@dataclass(frozen=True)
class GenerationResult:
    text: str
    model: str


class Generator(Protocol):
    def generate(self, model: str, parts: Sequence[Part]) -> Dict[str, Any]: ...


# ---------- Gemini REST ----------
class GeminiClient:
    """POSTs to ``{base_url}/{model}:generateContent``; 404 -> ModelNotFound."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DEFAULT_GEMINI_API_BASE,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def generate(self, model: str, parts: Sequence[Part]) -> Dict[str, Any]:
        if not self.api_key:
            raise ServiceError("Missing GEMINI_API_KEY", status_code=500)
        url = f"{self.base_url}/{model}:generateContent"
        payload = {"contents": [{"role": "user", "parts": list(parts)}]}
        try:
            r = self.session.post(
                url,
                params={"key": self.api_key},
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise UpstreamError(f"Gemini {model} timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise UpstreamError(f"Gemini {model} request failed: {e}") from e

        if r.status_code == 404:
            raise ModelNotFound(model)
        if not r.ok:
            raise UpstreamError(
                f"Gemini {model} returned {r.status_code}: {_error_detail(r)}",
                upstream_status=r.status_code,
            )
        try:
            return r.json()
        except ValueError as e:
            raise UpstreamError(f"Gemini {model} returned invalid JSON") from e


def _error_detail(r: requests.Response) -> str:
    try:
        return r.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return r.text[:200]


def extract_text(j: Dict[str, Any]) -> Optional[str]:
    try:
        text = j["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) and text.strip() else None


# ---------- model fallback ----------
class GenerationInvoker:
    """
    Calls each model in order. Only not-found moves on to the next model;
    quota, auth or malformed-request errors stop right away so they are not
    hidden behind a fallback.
    """

    def __init__(self, client: Generator, models: Sequence[str]):
        if not models:
            raise ValueError("at least one model is required")
        self.client = client
        self.models: List[str] = list(models)

    def invoke(self, parts: Sequence[Part]) -> GenerationResult:
        def attempt(model: str) -> Dict[str, Any]:
            logger.info("Trying model: %s", model)
            return self.client.generate(model, parts)

        try:
            model, payload = try_in_order(
                self.models, attempt, is_soft=lambda exc: isinstance(exc, ModelNotFound)
            )
        except CandidatesExhausted as e:
            raise AllModelsFailed(
                f"All Gemini models failed ({', '.join(self.models)})"
            ) from e

        text = extract_text(payload)
        if text is None:
            raise NoContentGenerated(f"Model {model} returned no content.")
        logger.info("Successfully used model: %s", model)
        return GenerationResult(text=text.strip(), model=model)
