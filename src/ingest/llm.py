"""Local LLM client for translation and generative news.

Calls the ollama HTTP API.  Unlike a best-effort enhancer, failures are
raised as typed errors so the translator's retry policy can tell a
transient outage from an exhausted quota.

Configuration via environment variables (see ``OllamaClient.from_env``):
  OLLAMA_URL      base URL (default: http://localhost:11434)
  OLLAMA_API_KEY  API key for authenticated proxy (optional)
  OLLAMA_MODEL    model name (default: qwen2.5:7b-instruct)
  OLLAMA_TIMEOUT  request timeout in seconds (default: 120)
"""

from __future__ import annotations

import logging
import os

import requests

from ingest.errors import TransientTranslationError, TranslationError, TranslationQuotaError

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:11434"
DEFAULT_MODEL = "qwen2.5:7b-instruct"
DEFAULT_TIMEOUT = 120


class OllamaClient:
    """Handle on one ollama endpoint, built once and passed to its users."""

    def __init__(
        self,
        base_url: str = DEFAULT_URL,
        model: str = DEFAULT_MODEL,
        api_key: str = "",
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_env(cls) -> OllamaClient:
        return cls(
            base_url=os.environ.get("OLLAMA_URL", DEFAULT_URL),
            model=os.environ.get("OLLAMA_MODEL", DEFAULT_MODEL),
            api_key=os.environ.get("OLLAMA_API_KEY", ""),
            timeout=int(os.environ.get("OLLAMA_TIMEOUT", str(DEFAULT_TIMEOUT))),
        )

    def generate(self, prompt: str) -> str:
        """Send a prompt to ``/api/generate`` and return the response text.

        Raises:
            TranslationQuotaError: The endpoint answered 429.
            TransientTranslationError: Network failure, timeout, 5xx, or an
                unreadable response body.
            TranslationError: Any other rejected request.
        """
        url = f"{self.base_url}/api/generate"
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key

        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
        }

        try:
            resp = requests.post(
                url,
                json=payload,
                headers=headers,
                timeout=self.timeout,
                verify=not self.base_url.startswith("https://localhost"),
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            raise TransientTranslationError(f"Ollama unreachable: {exc}") from exc

        if resp.status_code == 429:
            raise TranslationQuotaError("Ollama rate limit reached")
        if resp.status_code >= 500:
            raise TransientTranslationError(f"Ollama server error {resp.status_code}")
        if resp.status_code >= 400:
            raise TranslationError(f"Ollama rejected the request: {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise TransientTranslationError(f"Ollama returned invalid JSON: {exc}") from exc

        text = (data.get("response") or "").strip()
        logger.debug("Ollama %s: %d chars in, %d chars out", self.model, len(prompt), len(text))
        return text
