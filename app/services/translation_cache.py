"""In-memory memoization of text translations.

One ``TranslationCache`` is created per application (see ``app.main``) and
handed to whatever needs translated text. Entries are keyed by the exact
``(text, source_lang, target_lang)`` triple, kept in insertion order and never
evicted; the cache lives exactly as long as its owner.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterator, Optional, Tuple

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str, str]
Translator = Callable[[str, str, str], Awaitable[str]]


class TranslationCache:
    """Memoize a translator so each triple is translated at most once.

    A miss calls ``translator`` and stores its result. Failures propagate to
    the caller and are never stored, so the next identical call tries again.
    By default concurrent misses on the same key each call the translator;
    with ``coalesce_requests`` they share a single pending call instead.
    """

    def __init__(self, translator: Translator, *, coalesce_requests: bool = False) -> None:
        self._translator = translator
        self._coalesce_requests = coalesce_requests
        self._entries: Dict[CacheKey, str] = {}
        self._pending: Dict[CacheKey, "asyncio.Future[str]"] = {}
        self._in_flight = 0
        self._hits = 0
        self._misses = 0
        self.error: Optional[str] = None

    @staticmethod
    def make_key(text: str, source_lang: str, target_lang: str) -> CacheKey:
        return (text, source_lang, target_lang)

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[CacheKey]:
        return iter(self._entries)

    def get_cached(self, text: str, source_lang: str, target_lang: str) -> Optional[str]:
        """Return a stored translation without calling the translator."""
        return self._entries.get(self.make_key(text, source_lang, target_lang))

    def update_cache(self, text: str, source_lang: str, target_lang: str, translation: str) -> None:
        """Store a translation obtained elsewhere (e.g. an admin correction)."""
        self._entries[self.make_key(text, source_lang, target_lang)] = translation

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        self.error = None

    def stats(self) -> Dict[str, object]:
        return {
            "entries": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "in_flight": self._in_flight,
            "last_error": self.error,
        }

    async def get_translation(self, text: str, source_lang: str, target_lang: str) -> str:
        key = self.make_key(text, source_lang, target_lang)
        if key in self._entries:
            self._hits += 1
            return self._entries[key]

        self._misses += 1
        if self._coalesce_requests:
            pending = self._pending.get(key)
            if pending is not None:
                return await asyncio.shield(pending)
            return await self._translate_shared(key)
        return await self._translate(key)

    async def _translate(self, key: CacheKey) -> str:
        text, source_lang, target_lang = key
        self._in_flight += 1
        self.error = None
        try:
            translated = await self._translator(text, source_lang, target_lang)
        except Exception as exc:
            self.error = str(exc) or "Translation failed"
            logger.warning("Translation %s -> %s failed: %s", source_lang, target_lang, self.error)
            raise
        finally:
            self._in_flight -= 1
        self._entries[key] = translated
        return translated

    async def _translate_shared(self, key: CacheKey) -> str:
        future: "asyncio.Future[str]" = asyncio.get_running_loop().create_future()
        self._pending[key] = future
        try:
            translated = await self._translate(key)
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so a failure nobody else awaited is not reported as unhandled.
            future.exception()
            raise
        else:
            future.set_result(translated)
            return translated
        finally:
            self._pending.pop(key, None)
            if not future.done():
                future.cancel()


__all__ = ["CacheKey", "TranslationCache", "Translator"]
