"""Client for the hosted chat-completions API (OpenRouter by default)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


# -----------------------------
# Errors
# -----------------------------

class ConfigurationError(RuntimeError):
    """Raised when the upstream credential is missing."""


class UpstreamError(RuntimeError):
    """Raised for a non-2xx reply or an unexpected response shape."""

    def __init__(self, message: str, *, status_code: int = 500, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


# -----------------------------
# Types & defaults
# -----------------------------

@dataclass
class GenerationConfig:
    model: str = "meta-llama/llama-3.1-8b-instruct"
    max_tokens: int = 500
    temperature: float = 0.7


@dataclass
class CompletionResult:
    content: str
    usage: Dict[str, Any] = field(default_factory=dict)


# -----------------------------
# OpenRouter client
# -----------------------------

class OpenRouterClient:
    """Thin async wrapper around ``POST <base_url>/chat/completions``."""

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: str = "https://openrouter.ai/api/v1",
        generation: Optional[GenerationConfig] = None,
        referer: str = "http://localhost:3000",
        title: str = "Delegate AI Assistant",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Parameters
        ----------
        api_key : str | None
            Bearer credential. ``None`` keeps the client constructible so the
            server can start; every call then fails with ConfigurationError.
        transport : httpx.AsyncBaseTransport | None
            Optional transport (tests pass an ``httpx.MockTransport``).
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.generation = generation or GenerationConfig()
        self.referer = referer
        self.title = title
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "HTTP-Referer": self.referer,
            "X-Title": self.title,
        }

    def build_body(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        return {
            "model": self.generation.model,
            "messages": messages,
            "max_tokens": self.generation.max_tokens,
            "temperature": self.generation.temperature,
        }

    async def complete(self, messages: List[Dict[str, str]]) -> CompletionResult:
        """Send one chat-completion request. Exactly one attempt is made."""
        if not self.configured:
            raise ConfigurationError("OpenRouter API key not configured")

        # No timeout: the call runs until the upstream answers or the socket fails.
        async with httpx.AsyncClient(transport=self._transport, timeout=None) as client:
            resp = await client.post(
                f"{self.base_url}/chat/completions",
                headers=self._headers(),
                json=self.build_body(messages),
            )

        if not resp.is_success:
            raise UpstreamError(
                "Failed to get response", status_code=resp.status_code, body=resp.text
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamError("Invalid response format", body=resp.text) from e
        return parse_completion(data, raw=resp.text)


def parse_completion(data: Any, *, raw: str = "") -> CompletionResult:
    """Extract ``choices[0].message.content`` and ``usage`` from a reply."""
    choices = data.get("choices") if isinstance(data, dict) else None
    if not choices or not isinstance(choices, list) or not isinstance(choices[0], dict):
        raise UpstreamError("Invalid response format", body=raw)
    message = choices[0].get("message")
    if not isinstance(message, dict):
        raise UpstreamError("Invalid response format", body=raw)
    usage = data.get("usage") or {}
    return CompletionResult(content=message.get("content") or "", usage=usage)


# -----------------------------
# Convenience factory
# -----------------------------

def create_from_config(
    cfg: Dict[str, Any], *, transport: Optional[httpx.AsyncBaseTransport] = None
) -> OpenRouterClient:
    """Create an OpenRouterClient from a config dict (e.g., loaded YAML)."""
    up = (cfg or {}).get("upstream", {}) if isinstance(cfg, dict) else {}
    generation = GenerationConfig(
        model=str(up.get("model", GenerationConfig.model)),
        max_tokens=int(up.get("max_tokens", GenerationConfig.max_tokens)),
        temperature=float(up.get("temperature", GenerationConfig.temperature)),
    )
    return OpenRouterClient(
        up.get("api_key") or None,
        base_url=str(up.get("base_url", "https://openrouter.ai/api/v1")),
        generation=generation,
        referer=str(up.get("referer", "http://localhost:3000")),
        title=str(up.get("title", "Delegate AI Assistant")),
        transport=transport,
    )
