"""
DocuMind - Generative Text Service
Thin httpx client for the Gemini REST API.

Two call shapes:
- `generate(prompt, search=...)` - one-shot completion, optionally grounded
  with Google Search (used by the intelligence scheduler)
- `stream(messages, system=...)` - server-sent-event streaming completion
  (used by chat and daily summaries)

Transport and API failures surface as ExternalServiceError. Parsing what the
model said is the caller's job.
"""

import json
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx

from app.core.config import Settings, get_settings
from app.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)


@dataclass
class ChatTurn:
    """One conversational turn handed to the model."""
    role: str   # user, assistant
    text: str


def _to_contents(messages: list[ChatTurn]) -> list[dict]:
    # Gemini names the assistant role "model"
    return [
        {
            "role": "model" if m.role == "assistant" else "user",
            "parts": [{"text": m.text}],
        }
        for m in messages
    ]


def _candidate_text(payload: dict) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = payload.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts)


class GenerativeTextService:
    """
    Gemini client.
    One-shot generation uses `gemini_model`, streaming chat uses `gemini_chat_model`.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.api_key = self.settings.gemini_api_key

    @property
    def is_available(self) -> bool:
        """Check if an API key is configured."""
        return bool(self.api_key)

    def _url(self, model: str, method: str) -> str:
        return f"{self.settings.gemini_base_url.rstrip('/')}/v1beta/models/{model}:{method}"

    def _headers(self) -> dict:
        return {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

    def _body(self, messages: list[ChatTurn], system: Optional[str], search: bool) -> dict:
        body: dict = {
            "contents": _to_contents(messages),
            "generationConfig": {"maxOutputTokens": self.settings.ai_max_output_tokens},
        }
        if system:
            body["systemInstruction"] = {"parts": [{"text": system}]}
        if search:
            body["tools"] = [{"google_search": {}}]
        return body

    def _require_key(self) -> None:
        if not self.is_available:
            raise ExternalServiceError("Generative AI service is not configured (GEMINI_API_KEY)")

    async def generate(self, prompt: str, search: bool = False, model: Optional[str] = None) -> str:
        """
        One-shot completion.

        Args:
            prompt: User prompt
            search: Ground the answer with Google Search results
            model: Override the default generation model

        Returns:
            The raw model text
        """
        self._require_key()
        model = model or self.settings.gemini_model
        body = self._body([ChatTurn(role="user", text=prompt)], None, search)

        try:
            async with httpx.AsyncClient(timeout=self.settings.ai_timeout_seconds) as client:
                response = await client.post(
                    self._url(model, "generateContent"),
                    headers=self._headers(),
                    json=body,
                )
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Gemini request failed: {e}") from e

        if response.status_code != 200:
            logger.error("Gemini API error: %s - %s", response.status_code, response.text[:500])
            raise ExternalServiceError(
                f"Gemini API error: {response.status_code}",
                details={"status": response.status_code},
            )

        text = _candidate_text(response.json())
        logger.info("Gemini %s returned %s chars (search=%s)", model, len(text), search)
        return text

    async def stream(
        self,
        messages: list[ChatTurn],
        system: Optional[str] = None,
        model: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """
        Streaming completion; yields text chunks as the model produces them.
        """
        self._require_key()
        model = model or self.settings.gemini_chat_model
        body = self._body(messages, system, search=False)

        try:
            async with httpx.AsyncClient(timeout=self.settings.ai_timeout_seconds) as client:
                async with client.stream(
                    "POST",
                    self._url(model, "streamGenerateContent"),
                    params={"alt": "sse"},
                    headers=self._headers(),
                    json=body,
                ) as response:
                    if response.status_code != 200:
                        error_text = (await response.aread()).decode("utf-8", errors="replace")
                        logger.error("Gemini stream error: %s - %s", response.status_code, error_text[:500])
                        raise ExternalServiceError(
                            f"Gemini API error: {response.status_code}",
                            details={"status": response.status_code},
                        )

                    async for line in response.aiter_lines():
                        if not line.startswith("data:"):
                            continue
                        data = line[len("data:"):].strip()
                        if not data:
                            continue
                        try:
                            chunk = _candidate_text(json.loads(data))
                        except json.JSONDecodeError:
                            logger.warning("Skipping malformed stream chunk: %s", data[:200])
                            continue
                        if chunk:
                            yield chunk
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Gemini stream failed: {e}") from e


_ai_service: Optional[GenerativeTextService] = None


def get_ai_service() -> GenerativeTextService:
    """Get the shared service instance (FastAPI dependency, overridden in tests)."""
    global _ai_service
    if _ai_service is None:
        _ai_service = GenerativeTextService()
    return _ai_service
