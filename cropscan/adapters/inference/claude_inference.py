"""
Anthropic Claude text generation backend.

Requires ANTHROPIC_API_KEY in environment (.env or system env). Model can be
overridden with CLAUDE_MODEL. SDK exceptions are mapped onto the pipeline
taxonomy so the retry executor can tell throttling from a bad request.
"""
import os

import anthropic

from cropscan.adapters.inference.base import InferenceAdapter
from cropscan.orchestrator.errors import (
    ContentBlockedError, PermanentError, TimeoutFailure, TransientError, classify_status,
)

CLAUDE_MODEL = os.getenv("CLAUDE_MODEL", "claude-haiku-4-5-20251001")
MAX_TOKENS = 2048


class ClaudeInference(InferenceAdapter):
    """
    Same prompt as the Gemini backend, answered by Claude.
    Not ready without ANTHROPIC_API_KEY; the service then falls back to mock.
    """

    name = "claude"

    def __init__(self, status_store, api_key: str | None = None, model: str = CLAUDE_MODEL,
                 timeout: float = 60.0, client=None):
        self.status = status_store
        self.model = model
        self._client = client
        self.ready = client is not None
        if client is None:
            key = api_key if api_key is not None else os.getenv("ANTHROPIC_API_KEY")
            if not key:
                self.status.log("claude_inference: ANTHROPIC_API_KEY not set")
            else:
                self._client = anthropic.AsyncAnthropic(api_key=key, timeout=timeout, max_retries=0)
                self.ready = True
        if self.ready:
            self.status.log(f"claude_inference: ready ({self.model})")

    async def generate(self, prompt: str, consent: bool) -> str:
        self.check_request(prompt, consent)
        if not self.ready or self._client is None:
            raise PermanentError("Claude client not configured")

        try:
            message = await self._client.messages.create(
                model=self.model,
                max_tokens=MAX_TOKENS,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APITimeoutError as e:
            raise TimeoutFailure(f"claude timeout: {e}") from e
        except anthropic.APIConnectionError as e:
            raise TransientError(f"claude network error: {e}") from e
        except anthropic.APIStatusError as e:
            self.status.log(f"claude_inference: HTTP {e.status_code}: {e.message[:200]}")
            raise classify_status(e.status_code, e.message[:200]) from e

        if message.stop_reason == "refusal":
            raise ContentBlockedError("refusal")

        text = "".join(
            block.text for block in message.content if getattr(block, "type", "") == "text"
        ).strip()
        if not text:
            raise TransientError("No content generated")
        self.status.log(f"claude_inference: generated {text[:50]!r}…")
        return text
