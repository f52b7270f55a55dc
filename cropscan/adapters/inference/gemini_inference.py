"""
Google Gemini text generation over the public REST API.
Requires GEMINI_API_KEY; model can be overridden with GEMINI_MODEL.

No SDK needed: plain httpx against generateContent. Safety filtering is done
server-side with the thresholds below; a blocked prompt or a candidate stopped
for SAFETY surfaces as ContentBlockedError, never as an empty success.
"""
import os
import httpx

from cropscan.adapters.inference.base import InferenceAdapter
from cropscan.orchestrator.errors import (
    ContentBlockedError, PermanentError, TimeoutFailure, TransientError, classify_status,
)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-pro")

SAFETY_SETTINGS = [
    {"category": c, "threshold": "BLOCK_MEDIUM_AND_ABOVE"}
    for c in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
]

GENERATION_CONFIG = {
    "temperature": 0.7,
    "topK": 40,
    "topP": 0.95,
    "candidateCount": 1,
    "maxOutputTokens": 2048,
}


class GeminiInference(InferenceAdapter):
    name = "gemini"

    def __init__(self, status_store, api_key: str | None = None, model: str = GEMINI_MODEL,
                 base_url: str = GEMINI_API_BASE, timeout: float = 60.0,
                 client: httpx.AsyncClient | None = None):
        self.status = status_store
        self._api_key = api_key if api_key is not None else os.getenv("GEMINI_API_KEY", "")
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self.ready = bool(self._api_key)
        if self.ready:
            self.status.log(f"gemini_inference: ready (model={self.model})")
        else:
            self.status.log("gemini_inference: GEMINI_API_KEY not set")

    async def generate(self, prompt: str, consent: bool) -> str:
        self.check_request(prompt, consent)
        if not self.ready:
            raise PermanentError("Invalid API key")

        url = f"{self.base_url}/{self.model}:generateContent"
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "safetySettings": SAFETY_SETTINGS,
            "generationConfig": GENERATION_CONFIG,
        }
        data = await self._post(url, payload)
        return self._extract_text(data)

    async def _post(self, url: str, payload: dict) -> dict:
        params = {"key": self._api_key}
        try:
            if self._client is not None:
                resp = await self._client.post(url, json=payload, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.post(url, json=payload, params=params)
        except httpx.TimeoutException as e:
            raise TimeoutFailure(f"gemini timeout: {e}") from e
        except httpx.TransportError as e:
            raise TransientError(f"gemini network error: {e}") from e

        if not resp.is_success:
            self.status.log(f"gemini_inference: HTTP {resp.status_code}: {resp.text[:300]}")
            raise classify_status(resp.status_code, resp.text[:200])
        return resp.json()

    def _extract_text(self, data: dict) -> str:
        reason = (data.get("promptFeedback") or {}).get("blockReason")
        if reason:
            self.status.log(f"gemini_inference: prompt blocked ({reason})")
            raise ContentBlockedError(reason)

        candidates = data.get("candidates") or []
        if not candidates:
            raise TransientError("No content generated")
        first = candidates[0]
        if first.get("finishReason") == "SAFETY":
            raise ContentBlockedError("SAFETY")

        parts = (first.get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts).strip()
        if not text:
            self.status.log("gemini_inference: empty response received")
            raise TransientError("No content generated")
        self.status.log(f"gemini_inference: generated {text[:50]!r}…")
        return text
