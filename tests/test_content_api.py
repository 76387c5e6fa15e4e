import base64
import json
from typing import Any, Dict, List, Tuple
from uuid import UUID, uuid4

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from app.api.routes import content as content_routes
from app.api.routes.translate import get_admin_token
from app.main import create_app
from app.schemas import TranslatedPrepData
from app.services.content_service import SupabaseContentDAO
from app.services.translation_service import TranslationServiceError


def make_token(role: str) -> str:
    payload = base64.urlsafe_b64encode(json.dumps({"role": role}).encode("utf-8")).decode("ascii")
    return f"header.{payload.rstrip('=')}.signature"


class BracketTranslator:
    def __init__(self):
        self.calls: List[Tuple[str, str, str]] = []

    async def __call__(self, text: str, source_lang: str, target_lang: str) -> str:
        self.calls.append((text, source_lang, target_lang))
        return f"[{target_lang}] {text}"


class FakeContentDAO(SupabaseContentDAO):
    def __init__(self):
        super().__init__("test-token")
        self.menu_item_id = uuid4()
        self.prep_id = uuid4()
        self.updates: List[Tuple[UUID, Dict[str, Any]]] = []

    async def fetch_menu_items(self):
        return [
            {
                "id": str(self.menu_item_id),
                "name": "Pancakes",
                "description": "Fluffy",
                "ingredients": "flour, milk",
                "dietary_tags": ["vegetarian"],
                "image_url": None,
                "regular_price": 6.5,
                "student_price": 4.9,
                "is_featured": True,
            }
        ]

    async def fetch_preps(self):
        return [await self.fetch_prep(self.prep_id)]

    async def fetch_prep(self, prep_id: UUID):
        return {
            "id": str(self.prep_id),
            "name": "Tomato Sauce",
            "name_de": "Tomatensauce",
            "description": "House sauce",
            "instructions": "Simmer",
            "notes": "Keep chilled",
            "batch_yield": "2 litres",
        }

    async def update_prep_translations(self, prep_id: UUID, columns: Dict[str, Any]):
        self.updates.append((prep_id, columns))
        return columns


@pytest.fixture(name="translator")
def translator_fixture() -> BracketTranslator:
    return BracketTranslator()


@pytest.fixture(name="fake_dao")
def fake_dao_fixture() -> FakeContentDAO:
    return FakeContentDAO()


@pytest.fixture(name="api_client")
def client_fixture(translator: BracketTranslator, fake_dao: FakeContentDAO):
    application = create_app(translator=translator)

    async def override_dao():
        return fake_dao

    async def override_admin_dao(_token: str = Depends(get_admin_token)):
        return fake_dao

    application.dependency_overrides[content_routes.get_content_dao] = override_dao
    application.dependency_overrides[content_routes.get_admin_content_dao] = override_admin_dao

    with TestClient(application) as client:
        yield client

    application.dependency_overrides.clear()


def test_menu_items_are_localized(api_client: TestClient, translator: BracketTranslator) -> None:
    response = api_client.get("/api/menu-items", params={"lang": "de"})

    assert response.status_code == 200
    [item] = response.json()
    assert item["language"] == "de"
    assert item["name"] == "[de] Pancakes"
    assert item["ingredients"] == ["[de] flour", "[de] milk"]
    assert item["dietary_tags"] == ["[de] vegetarian"]
    assert item["student_price"] == pytest.approx(4.9)
    assert item["is_featured"] is True
    assert sorted(text for text, _, _ in translator.calls) == [
        "Fluffy",
        "Pancakes",
        "flour",
        "milk",
        "vegetarian",
    ]


def test_menu_items_in_source_language_skip_translation(
    api_client: TestClient, translator: BracketTranslator
) -> None:
    response = api_client.get("/api/menu-items", params={"lang": "en"})

    assert response.status_code == 200
    assert response.json()[0]["name"] == "Pancakes"
    assert translator.calls == []


def test_unknown_language_is_rejected(api_client: TestClient) -> None:
    assert api_client.get("/api/menu-items", params={"lang": "fr"}).status_code == 422


def test_preps_use_stored_columns_and_translate_the_rest(
    api_client: TestClient, translator: BracketTranslator
) -> None:
    response = api_client.get("/api/preps", params={"lang": "de"})

    [prep] = response.json()
    assert prep["name"] == "Tomatensauce"
    assert prep["instructions"] == "[de] Simmer"
    assert prep["has_stored_translation"] is True
    assert prep["notes"] == "Keep chilled"
    assert ("Tomato Sauce", "en", "de") not in translator.calls


def test_prep_translation_is_stored_and_cached(
    api_client: TestClient, fake_dao: FakeContentDAO, translator: BracketTranslator, monkeypatch
) -> None:
    async def fake_translate_prep(prep, source_lang: str, target_lang: str) -> TranslatedPrepData:
        return TranslatedPrepData(
            name=prep.name,
            name_de="Hausgemachte Tomatensauce",
            name_en=prep.name,
            instructions_de="Köcheln",
            instructions_en=prep.instructions,
            confidence=0.92,
        )

    monkeypatch.setattr(content_routes, "translate_prep", fake_translate_prep)

    response = api_client.post(
        f"/api/preps/{fake_dao.prep_id}/translate",
        params={"source_lang": "en", "target_lang": "de"},
        headers={"Authorization": f"Bearer {make_token('authenticated')}"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["confidence"] == pytest.approx(0.92)
    assert payload["stored_columns"] == {
        "name_de": "Hausgemachte Tomatensauce",
        "name_en": "Tomato Sauce",
        "instructions_de": "Köcheln",
        "instructions_en": "Simmer",
    }
    assert fake_dao.updates == [(fake_dao.prep_id, payload["stored_columns"])]

    cache = api_client.app.state.translation_cache
    assert cache.get_cached("Tomato Sauce", "en", "de") == "Hausgemachte Tomatensauce"


def test_prep_translation_failure_maps_to_bad_gateway(
    api_client: TestClient, fake_dao: FakeContentDAO, monkeypatch
) -> None:
    async def failing(prep, source_lang: str, target_lang: str) -> TranslatedPrepData:
        raise TranslationServiceError("Failed to parse translation response")

    monkeypatch.setattr(content_routes, "translate_prep", failing)

    response = api_client.post(
        f"/api/preps/{fake_dao.prep_id}/translate",
        headers={"Authorization": f"Bearer {make_token('service_role')}"},
    )

    assert response.status_code == 502
    assert fake_dao.updates == []


def test_prep_translation_requires_authentication(api_client: TestClient, fake_dao: FakeContentDAO) -> None:
    response = api_client.post(f"/api/preps/{fake_dao.prep_id}/translate")

    assert response.status_code == 401


def test_prep_name_is_cached_only_for_the_content_source_language(
    api_client: TestClient, fake_dao: FakeContentDAO, monkeypatch
) -> None:
    async def fake_translate_prep(prep, source_lang: str, target_lang: str) -> TranslatedPrepData:
        return TranslatedPrepData(name=prep.name, name_de=prep.name, name_en="Tomato sauce", confidence=0.7)

    monkeypatch.setattr(content_routes, "translate_prep", fake_translate_prep)

    response = api_client.post(
        f"/api/preps/{fake_dao.prep_id}/translate",
        params={"source_lang": "de", "target_lang": "en"},
        headers={"Authorization": f"Bearer {make_token('authenticated')}"},
    )

    assert response.status_code == 200
    assert len(fake_dao.updates) == 1
    assert len(api_client.app.state.translation_cache) == 0
