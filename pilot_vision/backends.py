"""Vision-capable model clients exposing ``analyze(png_bytes, prompt) -> str``."""
from __future__ import annotations

import base64
import logging
import os
from typing import Any, Dict, Optional, Protocol

import requests
from anthropic import Anthropic

from pilot_os.config import VisionConfig

Logger = logging.Logger


class AnalysisError(RuntimeError):
    """Raised when a vision request cannot produce any response text."""


class VisionBackend(Protocol):
    provider: str

    def analyze(self, png_bytes: bytes, prompt: str) -> str:
        ...


class OpenRouterVisionClient:
    """Chat-completions client for OpenRouter (or any OpenAI-compatible endpoint)."""

    provider = "openrouter"

    def __init__(self, config: VisionConfig, logger: Optional[Logger] = None) -> None:
        self._config = config
        self._logger = logger or logging.getLogger(__name__)
        self._headers: Optional[Dict[str, str]] = None

    def analyze(self, png_bytes: bytes, prompt: str) -> str:
        self._ensure_api_configured()
        encoded = base64.b64encode(png_bytes).decode("utf-8")
        request_body = {
            "model": self._config.model,
            "max_tokens": self._config.max_tokens,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/png;base64,{encoded}"},
                        },
                    ],
                }
            ],
        }

        self._logger.debug("Calling OpenRouter vision model %s", self._config.model)
        try:
            response = requests.post(
                self._config.endpoint,
                headers=self._headers,
                json=request_body,
                timeout=self._config.request_timeout_s,
            )
            response.raise_for_status()
            response_data = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise AnalysisError(f"OpenRouter request failed: {exc}") from exc

        content = self._extract_response_content(response_data)
        if content is None:
            raise AnalysisError("OpenRouter returned an empty response")
        return content

    def _ensure_api_configured(self) -> None:
        """Build the request headers once, from OPENROUTER_API_KEY."""

        if self._headers is not None:
            return

        api_key = os.environ.get("OPENROUTER_API_KEY")
        if not api_key:
            raise AnalysisError("OPENROUTER_API_KEY environment variable not set.")

        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "X-Title": "Quiz Pilot",
            "Content-Type": "application/json",
        }

    def _extract_response_content(self, response: Dict[str, Any]) -> Optional[str]:
        """Return the first choice's message text, or None when the schema is off."""

        try:
            choices = response.get("choices")
            if not choices:
                return None
            content = choices[0]["message"].get("content")
            if not content:
                return None
            return str(content).strip()
        except (AttributeError, IndexError, KeyError, TypeError) as exc:
            self._logger.error("Unexpected OpenRouter response schema: %s", exc)
            return None


class AnthropicVisionClient:
    """Messages API client with a base64 image block."""

    provider = "anthropic"

    def __init__(
        self,
        config: VisionConfig,
        logger: Optional[Logger] = None,
        client: Optional[Any] = None,
    ) -> None:
        self._config = config
        self._logger = logger or logging.getLogger(__name__)
        self._client = client

    def analyze(self, png_bytes: bytes, prompt: str) -> str:
        self._init_api()
        encoded = base64.b64encode(png_bytes).decode("utf-8")
        try:
            response = self._client.messages.create(
                model=self._config.model,
                max_tokens=self._config.max_tokens,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": "image/png",
                                    "data": encoded,
                                },
                            },
                            {"type": "text", "text": prompt},
                        ],
                    }
                ],
            )
        except Exception as exc:
            raise AnalysisError(f"Anthropic request failed: {exc}") from exc

        text = "".join(
            getattr(block, "text", "") for block in response.content if getattr(block, "type", None) == "text"
        ).strip()
        if not text:
            raise AnalysisError("Anthropic returned an empty response")
        return text

    def _init_api(self) -> None:
        if self._client is not None:
            return
        api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise AnalysisError("ANTHROPIC_API_KEY environment variable not set")
        self._client = Anthropic(api_key=api_key, timeout=self._config.request_timeout_s)
        self._logger.info("Initialized Anthropic API with model: %s", self._config.model)


def build_backend(config: VisionConfig, logger: Optional[Logger] = None) -> VisionBackend:
    """Instantiate the backend named by ``config.provider``."""

    provider = config.provider.lower()
    if provider == "openrouter":
        return OpenRouterVisionClient(config, logger=logger)
    if provider == "anthropic":
        return AnthropicVisionClient(config, logger=logger)
    raise ValueError(f"Unknown vision provider: {config.provider}")


__all__ = [
    "AnalysisError",
    "AnthropicVisionClient",
    "OpenRouterVisionClient",
    "VisionBackend",
    "build_backend",
]
