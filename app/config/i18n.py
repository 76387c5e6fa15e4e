"""Language settings shared by the translation services."""

from __future__ import annotations

import os
from typing import Literal, Tuple

from dotenv import load_dotenv

load_dotenv()

LanguageCode = Literal["en", "de"]

SUPPORTED_LANGUAGES: Tuple[str, ...] = ("en", "de")
LANGUAGE_LABELS = {"en": "English", "de": "German"}


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


def _env_language(name: str, default: str) -> str:
    value = os.getenv(name, default).strip().lower()[:2]
    return value if value in SUPPORTED_LANGUAGES else default


CONTENT_SOURCE_LANGUAGE = _env_language("CONTENT_SOURCE_LANGUAGE", "en")
DEFAULT_LANGUAGE = _env_language("DEFAULT_LANGUAGE", "de")
TRANSLATION_BACKEND = os.getenv("TRANSLATION_BACKEND", "deepseek").strip().lower()
TRANSLATION_COALESCE_REQUESTS = _env_flag("TRANSLATION_COALESCE_REQUESTS")


def other_language(language: str) -> str:
    """Return the counterpart of a supported language code."""
    return "de" if language == "en" else "en"


__all__ = [
    "CONTENT_SOURCE_LANGUAGE",
    "DEFAULT_LANGUAGE",
    "LANGUAGE_LABELS",
    "LanguageCode",
    "SUPPORTED_LANGUAGES",
    "TRANSLATION_BACKEND",
    "TRANSLATION_COALESCE_REQUESTS",
    "other_language",
]
