import asyncio
import json
from types import SimpleNamespace
from typing import Any, Dict, List

import httpx
import pytest

from app.services.translation_client import EdgeFunctionTranslator, build_translator
from app.services.translation_service import (
    TranslationServiceError,
    UnsupportedLanguageError,
    translate_text,
)


class FakeFunctions:
    def __init__(self, response: Any = None, error: Exception = None):
        self.response = response
        self.error = error
        self.invocations: List[Dict[str, Any]] = []

    def invoke(self, function_name: str, invoke_options: Dict[str, Any]) -> Any:
        self.invocations.append({"function": function_name, **invoke_options})
        if self.error is not None:
            raise self.error
        return self.response


def _translator(response: Any = None, error: Exception = None):
    functions = FakeFunctions(response, error)
    client = SimpleNamespace(functions=functions)
    return EdgeFunctionTranslator(client, function_name="deepseek-translate"), functions


def test_edge_function_payload_and_json_response() -> None:
    translator, functions = _translator(
        {"success": True, "translatedName": "Green Curry Paste", "confidence": 0.85}
    )

    result = asyncio.run(translator("Grüne Currypaste", "de", "en"))

    assert result == "Green Curry Paste"
    assert functions.invocations == [
        {
            "function": "deepseek-translate",
            "body": {
                "name": "Grüne Currypaste",
                "sourceLang": "de",
                "targetLang": "en",
                "mode": "name",
            },
            "responseType": "json",
        }
    ]


def test_edge_function_accepts_raw_json_bytes() -> None:
    body = json.dumps({"success": True, "translatedName": "Kräutermischung"}).encode("utf-8")
    translator, _ = _translator(body)

    assert asyncio.run(translator("Herb Mix", "en", "de")) == "Kräutermischung"


def test_unsuccessful_function_reply_raises() -> None:
    translator, _ = _translator({"success": False, "error": "DeepSeek API error: 429"})

    with pytest.raises(TranslationServiceError, match="429"):
        asyncio.run(translator("Herb Mix", "en", "de"))


def test_blank_translation_is_treated_as_failure() -> None:
    translator, _ = _translator({"success": True, "translatedName": "   "})

    with pytest.raises(TranslationServiceError):
        asyncio.run(translator("Herb Mix", "en", "de"))


def test_transport_errors_are_wrapped() -> None:
    translator, _ = _translator(error=httpx.ConnectError("connection refused"))

    with pytest.raises(TranslationServiceError, match="connection refused"):
        asyncio.run(translator("Herb Mix", "en", "de"))


def test_dictionary_terms_and_same_language_skip_the_function() -> None:
    translator, functions = _translator({"success": True, "translatedName": "unused"})

    assert asyncio.run(translator("Zwiebel", "de", "en")) == "onion"
    assert asyncio.run(translator("Zwiebel", "de", "de")) == "Zwiebel"
    assert asyncio.run(translator("", "de", "en")) == ""
    assert functions.invocations == []


def test_unsupported_languages_are_rejected_before_invoking() -> None:
    translator, functions = _translator({"success": True, "translatedName": "unused"})

    with pytest.raises(UnsupportedLanguageError):
        asyncio.run(translator("Herb Mix", "en", "fr"))
    assert functions.invocations == []


def test_build_translator_selects_backend() -> None:
    assert isinstance(build_translator("edge"), EdgeFunctionTranslator)
    assert build_translator("deepseek") is translate_text
    assert build_translator("something-else") is translate_text
