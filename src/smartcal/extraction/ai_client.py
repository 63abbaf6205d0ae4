"""Chat-completion collaborators for AI-assisted extraction.

The extractor only needs ``send_message(prompt) -> str``. ``OllamaChatClient``
is the bundled implementation; any object with the same coroutine works.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from smartcal.config import Settings, get_settings

logger = logging.getLogger(__name__)


class ChatClientProtocol(Protocol):
    """Anything that can answer a single prompt."""

    async def send_message(self, prompt: str) -> str:
        """Send *prompt* and return the model's full reply text."""
        ...


class OllamaChatClient:
    """One-shot, non-streaming chat completions against a local Ollama server."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    async def send_message(self, prompt: str) -> str:
        """Chat via Ollama. HTTP and connection errors propagate to the caller."""
        async with httpx.AsyncClient(timeout=self.settings.ai_timeout) as client:
            response = await client.post(
                f"{self.settings.ollama_host}/api/chat",
                json={
                    "model": self.settings.ollama_model,
                    "messages": [{"role": "user", "content": prompt}],
                    "stream": False,
                },
            )
            response.raise_for_status()
            data = response.json()

        content = data.get("message", {}).get("content", "")
        logger.debug("Ollama replied with %d chars", len(content))
        return content
