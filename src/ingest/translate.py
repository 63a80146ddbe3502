"""Translation into Korean with LLM primary and MyMemory fallback.

Uses a local LLM (via ollama) as the primary translator, falling back
to the free MyMemory API when the LLM is unavailable or returns the
input unchanged.

Retry semantics (``Translator.translate``):

  * text already in Korean          → returned untouched, no provider call
  * transient provider error        → retried up to ``max_retries`` times
  * quota exhaustion                → no retry; original text, failed=True
  * result identical to the input   → retried up to ``max_retries`` times

A translation is recorded as failed iff the final output still equals
the input.  Short inputs that are legitimately identical in both
languages (names, acronyms) are therefore reported as failures.

MyMemory quota: ~5000 chars/day anonymous, higher with email/key.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import re
from typing import Any, Protocol, Sequence

import requests

from ingest.errors import (
    ConfigurationError,
    TransientTranslationError,
    TranslationError,
    TranslationQuotaError,
)
from ingest.llm import OllamaClient
from ingest.news_types import NewsCategory, NormalizedItem, TranslationOutcome
from ingest.retry import RetryPolicy, retry_call

logger = logging.getLogger(__name__)

_HANGUL_RE = re.compile(r"[\uAC00-\uD7A3\u1100-\u11FF\u3130-\u318F]")
TARGET_RATIO = 0.3

_PREAMBLE_PATTERNS = [
    r"^\s*(?:번역|번역문|번역 결과|한국어 번역)\s*[:：]\s*",
    r"^\s*(?:translation|korean translation|translated text)\s*[:：]\s*",
]
_WRAPPING_QUOTES = ('"', "'", "“", "”", "「", "」")


def is_target_language(text: str | None) -> bool:
    """Detect whether *text* is already Korean.

    True when at least 30% of the non-whitespace characters are Hangul,
    or when any Hangul character is present at all.  Blank text counts
    as Korean (nothing to translate).
    """
    if not text:
        return True
    total = len(re.sub(r"\s", "", text))
    if total == 0:
        return True
    hangul = len(_HANGUL_RE.findall(text))
    return hangul / total >= TARGET_RATIO or hangul > 0


def _strip_translation_preamble(text: str) -> str:
    """Remove labels and wrapping quotes an LLM adds around its answer."""
    result = text.strip()
    for pattern in _PREAMBLE_PATTERNS:
        result = re.sub(pattern, "", result, flags=re.IGNORECASE).strip()
    if len(result) >= 2 and result[0] in _WRAPPING_QUOTES and result[-1] in _WRAPPING_QUOTES:
        result = result[1:-1].strip()
    return result


def _unchanged(result: str | None, original: str) -> bool:
    return not result or result.strip() == original.strip()


# ---------------------------------------------------------------------------
# Providers (blocking; driven through asyncio.to_thread)
# ---------------------------------------------------------------------------
class TranslationProvider(Protocol):
    name: str

    def translate(self, text: str) -> str: ...


class OllamaTranslator:
    """Translate via a local LLM."""

    name = "ollama"

    def __init__(self, client: OllamaClient) -> None:
        self.client = client

    def translate(self, text: str) -> str:
        prompt = (
            "다음 텍스트를 자연스러운 한국어로 번역해주세요. "
            "원문의 의미와 뉘앙스를 정확히 전달해야 합니다. "
            "번역만 출력하고 다른 설명은 하지 마세요.\n\n"
            f"원문:\n{text}"
        )
        result = _strip_translation_preamble(self.client.generate(prompt))
        return result or text


_MYMEMORY_URL = "https://api.mymemory.translated.net/get"


class MyMemoryTranslator:
    """Translate a single text via the MyMemory API."""

    name = "mymemory"

    def __init__(self, source_lang: str = "en", email: str = "", timeout: int = 15) -> None:
        self.langpair = f"{source_lang}|ko"
        self.email = email
        self.timeout = timeout

    def translate(self, text: str) -> str:
        params: dict[str, Any] = {"langpair": self.langpair, "q": text}
        if self.email:
            params["de"] = self.email
        try:
            resp = requests.get(_MYMEMORY_URL, params=params, timeout=self.timeout)
        except (requests.Timeout, requests.ConnectionError) as exc:
            raise TransientTranslationError(f"MyMemory unreachable: {exc}") from exc

        if resp.status_code == 429:
            raise TranslationQuotaError("MyMemory rate limit reached")
        if resp.status_code >= 500:
            raise TransientTranslationError(f"MyMemory server error {resp.status_code}")
        if resp.status_code >= 400:
            raise TranslationError(f"MyMemory rejected the request: {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise TransientTranslationError(f"MyMemory returned invalid JSON: {exc}") from exc

        # Check quota
        if data.get("quotaFinished"):
            raise TranslationQuotaError("MyMemory daily quota exhausted")

        translated = (data.get("responseData") or {}).get("translatedText") or ""
        return translated.strip() or text


class ChainTranslator:
    """Try providers in order until one returns a changed text.

    A provider that raises or answers with the input unchanged hands the
    text on to the next one.  When every provider fails the chain raises
    the most retryable error it saw: a transient error if any provider
    had one, otherwise the quota error.  When at least one provider
    answered (even unchanged) the input is returned as-is.
    """

    name = "chain"

    def __init__(self, providers: Sequence[TranslationProvider]) -> None:
        if not providers:
            raise ValueError("ChainTranslator needs at least one provider")
        self.providers = list(providers)

    def translate(self, text: str) -> str:
        answered = False
        transient: TranslationError | None = None
        terminal: TranslationError | None = None

        for provider in self.providers:
            try:
                result = provider.translate(text)
            except TransientTranslationError as exc:
                logger.debug("%s translation failed, trying next provider: %s", provider.name, exc)
                transient = exc
                continue
            except TranslationError as exc:
                logger.debug("%s translation unavailable: %s", provider.name, exc)
                terminal = exc
                continue
            answered = True
            if not _unchanged(result, text):
                return result
            logger.debug("%s returned the input unchanged: %.40s", provider.name, text)

        if answered:
            return text
        if transient is not None:
            raise transient
        raise terminal or TranslationError("No translation provider succeeded")


def build_provider(names: Sequence[str], client: OllamaClient | None = None) -> TranslationProvider:
    """Build the provider chain named in config (e.g. ``["ollama", "mymemory"]``)."""
    providers: list[TranslationProvider] = []
    for name in names:
        if name == "ollama":
            providers.append(OllamaTranslator(client or OllamaClient.from_env()))
        elif name == "mymemory":
            providers.append(MyMemoryTranslator())
        else:
            logger.warning("Unknown translation provider '%s', skipping", name)
    if not providers:
        raise ConfigurationError(f"No usable translation provider in {list(names)}")
    if len(providers) == 1:
        return providers[0]
    return ChainTranslator(providers)


# ---------------------------------------------------------------------------
# Async translator with retry policy
# ---------------------------------------------------------------------------
class Translator:
    """Korean translator with bounded retries around one provider."""

    def __init__(self, provider: TranslationProvider, policy: RetryPolicy | None = None) -> None:
        self.provider = provider
        self.policy = policy or RetryPolicy()

    async def _call_provider(self, text: str) -> str:
        return await retry_call(
            lambda: asyncio.to_thread(self.provider.translate, text),
            self.policy,
            retry_on=(TransientTranslationError,),
            give_up_on=(TranslationQuotaError,),
            label=f"translate[{self.provider.name}]",
        )

    async def translate(self, text: str) -> TranslationOutcome:
        """Translate *text* into Korean.

        Returns:
            TranslationOutcome whose ``failed`` flag is set when the text
            coming back is still the original.
        """
        if is_target_language(text):
            return TranslationOutcome(text)

        try:
            result = await retry_call(
                lambda: self._call_provider(text),
                self.policy,
                retry_on_result=lambda r: _unchanged(r, text),
                label=f"translate[{self.provider.name}] unchanged",
            )
        except TranslationQuotaError as exc:
            logger.warning("Translation quota exhausted, keeping original: %s", exc)
            return TranslationOutcome(text, failed=True, quota_exhausted=True)
        except TranslationError as exc:
            logger.warning("Translation failed after retries (%.40s...): %s", text, exc)
            return TranslationOutcome(text, failed=True)

        if _unchanged(result, text):
            logger.warning("Translation returned the input unchanged: %.50s", text)
            return TranslationOutcome(text, failed=True)
        return TranslationOutcome(result)


async def translate_item_if_needed(item: NormalizedItem, translator: Translator) -> NormalizedItem:
    """Translate an item's title and body into Korean where required.

    The title is translated when it is not Korean.  For Thai news a
    non-Korean body gets a Korean ``translated_body`` unless one already
    exists, and a Korean body clears ``translated_body``.  Other
    categories translate the body when no ``translated_body`` is present,
    and re-translate when the provided one is not Korean.

    Returns:
        A copy of *item*; ``translation_failed`` is set when any required
        translation came back unchanged.
    """
    title = item.title
    translated_body = item.translated_body
    failed = False

    if not is_target_language(title):
        logger.debug("Translating title: %.50s", title)
        outcome = await translator.translate(title)
        title = outcome.text
        failed = failed or outcome.failed
        if outcome.quota_exhausted:
            return dataclasses.replace(item, title=title, translation_failed=True)

    needs_body = False
    if item.category is NewsCategory.THAI:
        if not is_target_language(item.body):
            needs_body = not translated_body or not is_target_language(translated_body)
        else:
            translated_body = None
    elif not translated_body or not translated_body.strip():
        translated_body = None
        needs_body = not is_target_language(item.body)
    elif not is_target_language(translated_body):
        logger.debug("Provided translation is not Korean, re-translating: %.50s", translated_body)
        needs_body = True

    if needs_body:
        logger.debug("Translating body: %.50s", item.body)
        outcome = await translator.translate(item.body)
        if outcome.failed:
            translated_body = None
            failed = True
        else:
            translated_body = outcome.text

    return dataclasses.replace(
        item,
        title=title,
        translated_body=translated_body,
        translation_failed=failed,
    )


async def retry_failed_translations(store: Any, translator: Translator, limit: int = 10) -> dict[str, int]:
    """Re-translate persisted items flagged ``translation_failed``.

    A separate maintenance job; collection runs never start it.

    Args:
        store: NewsStore providing ``find_failed_translations`` and
            ``update_translation``.
        translator: Translator to use.
        limit: Maximum number of items to process.

    Returns:
        Dict with ``success``, ``failed`` and ``total`` counts.
    """
    rows = await asyncio.to_thread(store.find_failed_translations, limit)
    success = 0
    failed = 0

    for row in rows:
        item_id = str(row.get("id"))
        try:
            item = NormalizedItem.from_record(row)
        except (KeyError, ValueError) as exc:
            logger.warning("Skipping unreadable record %s: %s", item_id, exc)
            failed += 1
            continue

        result = await translate_item_if_needed(item, translator)
        try:
            await asyncio.to_thread(
                store.update_translation,
                item_id,
                result.title,
                result.translated_body,
                result.translation_failed,
            )
        except Exception as exc:
            logger.error("Failed to update translation for %s: %s", item_id, exc)
            failed += 1
            continue

        if result.translation_failed:
            failed += 1
        else:
            success += 1

    logger.info("Retried translations: %d ok, %d failed, %d total", success, failed, len(rows))
    return {"success": success, "failed": failed, "total": len(rows)}
