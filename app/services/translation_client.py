"""Translation collaborators that can back a ``TranslationCache``."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from httpx import HTTPError as HttpxError
from supabase import Client, FunctionsError

from app.config.i18n import TRANSLATION_BACKEND
from app.config.supabase_client import TRANSLATE_FUNCTION_NAME, get_supabase_client
from app.services.translation_cache import Translator
from app.services.translation_service import (
    TranslationNotConfiguredError,
    TranslationServiceError,
    lookup_local_translation,
    translate_text,
    validate_language_pair,
)

logger = logging.getLogger(__name__)


class EdgeFunctionTranslator:
    """Translate text by invoking the hosted ``deepseek-translate`` function."""

    def __init__(
        self,
        client: Optional[Client] = None,
        *,
        function_name: str = TRANSLATE_FUNCTION_NAME,
        mode: str = "name",
    ) -> None:
        self._client = client
        self.function_name = function_name
        self.mode = mode

    async def __call__(self, text: str, source_lang: str, target_lang: str) -> str:
        if not text or not text.strip():
            return text or ""
        if source_lang == target_lang:
            return text
        local = lookup_local_translation(text, source_lang, target_lang)
        if local:
            return local
        validate_language_pair(source_lang, target_lang)

        payload = {
            "name": text,
            "sourceLang": source_lang,
            "targetLang": target_lang,
            "mode": self.mode,
        }
        data = await asyncio.to_thread(self._invoke, payload)
        translated = data.get("translatedName")
        if data.get("success") and isinstance(translated, str) and translated.strip():
            return translated
        raise TranslationServiceError(data.get("error") or "AI translation failed")

    def _invoke(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        client = self._client or get_supabase_client()
        if client is None:
            raise TranslationNotConfiguredError("Supabase is not configured")
        try:
            response = client.functions.invoke(
                self.function_name,
                invoke_options={"body": payload, "responseType": "json"},
            )
        except (FunctionsError, HttpxError) as exc:
            logger.error("Translation function %s failed: %s", self.function_name, exc)
            raise TranslationServiceError(f"Translation service error: {exc}") from exc

        if isinstance(response, (bytes, bytearray, str)):
            try:
                response = json.loads(response)
            except json.JSONDecodeError as exc:
                raise TranslationServiceError("Invalid response from translation service") from exc
        if not isinstance(response, dict):
            raise TranslationServiceError("Invalid response from translation service")
        return response


def build_translator(backend: str = TRANSLATION_BACKEND) -> Translator:
    """Return the collaborator selected by configuration."""

    if backend == "edge":
        return EdgeFunctionTranslator()
    if backend != "deepseek":
        logger.warning("Unknown TRANSLATION_BACKEND %r, using deepseek", backend)
    return translate_text


__all__ = ["EdgeFunctionTranslator", "build_translator"]
