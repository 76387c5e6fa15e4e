import base64
import json
from typing import List, Tuple

import pytest
from fastapi.testclient import TestClient

from app.api.routes import translate as translate_routes
from app.main import create_app
from app.schemas import NameTranslation, TranslatedIngredientData
from app.security.guards import reset_rate_limits
from app.services.translation_service import TranslationServiceError, UnsupportedLanguageError


def make_token(role: str) -> str:
    payload = base64.urlsafe_b64encode(json.dumps({"role": role}).encode("utf-8")).decode("ascii")
    return f"header.{payload.rstrip('=')}.signature"


class FakeTranslator:
    def __init__(self):
        self.calls: List[Tuple[str, str, str]] = []
        self.error: Exception = None

    async def __call__(self, text: str, source_lang: str, target_lang: str) -> str:
        self.calls.append((text, source_lang, target_lang))
        if self.error is not None:
            raise self.error
        return {"Guten Morgen": "Good morning"}.get(text, f"[{target_lang}] {text}")


@pytest.fixture(name="translator")
def translator_fixture() -> FakeTranslator:
    return FakeTranslator()


@pytest.fixture(name="api_client")
def client_fixture(translator: FakeTranslator):
    reset_rate_limits()
    with TestClient(create_app(translator=translator)) as client:
        yield client
    reset_rate_limits()


def test_text_translation_is_cached_between_requests(api_client: TestClient, translator: FakeTranslator) -> None:
    body = {"text": "Guten Morgen", "sourceLang": "DE", "targetLang": "en"}

    first = api_client.post("/api/translate/text", json=body)
    second = api_client.post("/api/translate/text", json=body)

    assert first.status_code == 200
    assert first.json() == {"translatedText": "Good morning"}
    assert second.json() == first.json()
    assert translator.calls == [("Guten Morgen", "de", "en")]

    stats = api_client.get("/api/translate/cache").json()
    assert stats["entries"] == 1
    assert stats["hits"] == 1
    assert stats["misses"] == 1


def test_text_translation_failure_maps_to_bad_gateway(api_client: TestClient, translator: FakeTranslator) -> None:
    translator.error = TranslationServiceError("DeepSeek API error: 500")

    response = api_client.post(
        "/api/translate/text", json={"text": "Spätzle", "sourceLang": "de", "targetLang": "en"}
    )

    assert response.status_code == 502
    assert api_client.get("/api/translate/cache").json()["last_error"] == "DeepSeek API error: 500"


def test_unsupported_language_maps_to_bad_request(api_client: TestClient, translator: FakeTranslator) -> None:
    translator.error = UnsupportedLanguageError("Unsupported language pair: de -> fr")

    response = api_client.post(
        "/api/translate/text", json={"text": "Spätzle", "sourceLang": "de", "targetLang": "fr"}
    )

    assert response.status_code == 400


def test_identical_text_languages_are_rejected_without_caching(
    api_client: TestClient, translator: FakeTranslator
) -> None:
    response = api_client.post(
        "/api/translate/text", json={"text": "Guten Morgen", "sourceLang": "de", "targetLang": "DE"}
    )

    assert response.status_code == 400
    assert translator.calls == []
    stats = api_client.get("/api/translate/cache").json()
    assert stats["entries"] == 0
    assert stats["misses"] == 0


def test_clearing_cache_requires_admin_token(api_client: TestClient) -> None:
    api_client.post("/api/translate/text", json={"text": "Salz", "sourceLang": "de", "targetLang": "en"})

    assert api_client.delete("/api/translate/cache").status_code == 401
    anon = api_client.delete("/api/translate/cache", headers={"Authorization": f"Bearer {make_token('anon')}"})
    assert anon.status_code == 403

    response = api_client.delete(
        "/api/translate/cache", headers={"Authorization": f"Bearer {make_token('authenticated')}"}
    )
    assert response.status_code == 200
    assert response.json()["entries"] == 0


@pytest.fixture(name="deepseek_ready")
def deepseek_ready_fixture(monkeypatch):
    monkeypatch.setattr(translate_routes, "is_deepseek_configured", lambda: True)


def test_name_mode_returns_translation(api_client: TestClient, deepseek_ready, monkeypatch) -> None:
    async def fake_translate_name(name: str, source_lang: str, target_lang: str) -> NameTranslation:
        return NameTranslation(translated_name="Potato", confidence=0.85, original_name=name)

    monkeypatch.setattr(translate_routes, "translate_name", fake_translate_name)

    response = api_client.post(
        "/api/translate", json={"name": "Kartoffel", "sourceLang": "de", "targetLang": "en", "mode": "name"}
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "translatedName": "Potato",
        "confidence": 0.85,
        "originalName": "Kartoffel",
    }


def test_name_mode_failure_returns_source_name(api_client: TestClient, deepseek_ready, monkeypatch) -> None:
    async def failing(name: str, source_lang: str, target_lang: str) -> NameTranslation:
        raise TranslationServiceError("No translation received")

    monkeypatch.setattr(translate_routes, "translate_prep_name", failing)

    response = api_client.post(
        "/api/translate",
        json={"name": "Herb Mix", "sourceLang": "en", "targetLang": "de", "mode": "prep_name"},
    )

    payload = response.json()
    assert response.status_code == 200
    assert payload["success"] is False
    assert payload["translatedName"] == "Herb Mix"
    assert payload["confidence"] == pytest.approx(0.1)


def test_single_mode_falls_back_on_failure(api_client: TestClient, deepseek_ready, monkeypatch) -> None:
    async def failing(ingredient, source_lang: str, target_lang: str):
        raise TranslationServiceError("Failed to parse translation response")

    monkeypatch.setattr(translate_routes, "translate_ingredient", failing)

    response = api_client.post(
        "/api/translate",
        json={"ingredient": {"name": "Lauch"}, "sourceLang": "de", "targetLang": "en", "mode": "single"},
    )

    payload = response.json()
    assert payload["success"] is False
    assert payload["fallback"] is True
    assert payload["translation"]["name_en"] == "Lauch"
    assert payload["translation"]["confidence"] == pytest.approx(0.2)


def test_batch_mode_reports_summary(api_client: TestClient, deepseek_ready, monkeypatch) -> None:
    async def fake_translate_ingredient(ingredient, source_lang: str, target_lang: str):
        if ingredient.name == "Bärlauch":
            raise TranslationServiceError("No translation received")
        return TranslatedIngredientData(name=ingredient.name, name_en=ingredient.name.upper(), confidence=0.9)

    monkeypatch.setattr(translate_routes, "translate_ingredient", fake_translate_ingredient)

    response = api_client.post(
        "/api/translate",
        json={
            "ingredients": [{"name": "Lauch"}, {"name": "Bärlauch"}],
            "sourceLang": "de",
            "targetLang": "en",
            "mode": "batch",
        },
    )

    payload = response.json()
    assert response.status_code == 200
    assert [item["confidence"] for item in payload["results"]] == [0.9, 0.1]
    assert payload["summary"]["total"] == 2
    assert payload["summary"]["successful"] == 1


def test_identical_languages_are_rejected(api_client: TestClient, deepseek_ready) -> None:
    response = api_client.post(
        "/api/translate", json={"name": "Salz", "sourceLang": "de", "targetLang": "de", "mode": "name"}
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Source and target languages cannot be the same"


def test_mode_without_payload_is_rejected(api_client: TestClient, deepseek_ready) -> None:
    response = api_client.post("/api/translate", json={"sourceLang": "de", "targetLang": "en", "mode": "prep"})

    assert response.status_code == 400


def test_missing_api_key_is_reported(api_client: TestClient, monkeypatch) -> None:
    monkeypatch.setattr(translate_routes, "is_deepseek_configured", lambda: False)

    response = api_client.post(
        "/api/translate", json={"name": "Salz", "sourceLang": "de", "targetLang": "en", "mode": "name"}
    )

    assert response.status_code == 500
    assert response.json()["detail"] == "DeepSeek API key not configured"
