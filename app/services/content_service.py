"""Supabase access for the bilingual menu and prep content."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import HTTPException
from httpx import HTTPError as HttpxError
from postgrest import APIError as PostgrestAPIError

from app.config.supabase_client import SUPABASE_ANON_KEY, SUPABASE_SERVICE_ROLE_KEY
from app.schemas import TranslatedPrepData
from app.services.postgrest_client import create_postgrest_client, raise_postgrest_error

logger = logging.getLogger(__name__)

MENU_ITEM_COLUMNS = (
    "id,name,description,ingredients,dietary_tags,image_url,"
    "regular_price,student_price,is_featured,display_order"
)
PREP_COLUMNS = (
    "id,name,name_de,name_en,description,description_de,description_en,"
    "instructions,instructions_de,instructions_en,notes,batch_yield,"
    "batch_yield_amount,batch_yield_unit"
)
PREP_TRANSLATION_COLUMNS = (
    "name_de",
    "name_en",
    "description_de",
    "description_en",
    "instructions_de",
    "instructions_en",
)


def prep_translation_columns(translation: TranslatedPrepData) -> Dict[str, Any]:
    """Return the non-empty language columns to store for a prep."""

    values = translation.model_dump(include=set(PREP_TRANSLATION_COLUMNS))
    return {column: value for column, value in values.items() if value}


class SupabaseContentDAO:
    """Read public content and store prep translations through PostgREST."""

    def __init__(self, access_token: Optional[str] = None, *, api_key: Optional[str] = None):
        self.access_token = access_token or SUPABASE_ANON_KEY or SUPABASE_SERVICE_ROLE_KEY
        self.api_key = api_key

    def _client(self, *, prefer: Optional[str] = None):
        if not self.access_token:
            raise HTTPException(status_code=503, detail="Content lookup unavailable.")
        return create_postgrest_client(self.access_token, prefer=prefer, api_key=self.api_key)

    async def fetch_menu_items(self) -> List[Dict[str, Any]]:
        """Return the available menu items in display order."""

        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("menu_items")
                    .select(MENU_ITEM_COLUMNS)
                    .eq("is_available", True)
                    .order("display_order")
                    .execute()
                )
                return response.data or []

        try:
            return await asyncio.to_thread(_request)
        except PostgrestAPIError as exc:  # pragma: no cover - network interaction
            raise_postgrest_error(exc, context="fetch menu items")
        except HttpxError as exc:  # pragma: no cover - network interaction
            logger.error("Supabase unreachable during menu lookup: %s", exc)
            raise HTTPException(status_code=503, detail="Supabase is temporarily unreachable.") from exc

    async def fetch_preps(self) -> List[Dict[str, Any]]:
        """Return the active preps ordered by name."""

        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("preps")
                    .select(PREP_COLUMNS)
                    .eq("is_active", True)
                    .order("name")
                    .execute()
                )
                return response.data or []

        try:
            return await asyncio.to_thread(_request)
        except PostgrestAPIError as exc:  # pragma: no cover - network interaction
            raise_postgrest_error(exc, context="fetch preps")
        except HttpxError as exc:  # pragma: no cover - network interaction
            logger.error("Supabase unreachable during prep lookup: %s", exc)
            raise HTTPException(status_code=503, detail="Supabase is temporarily unreachable.") from exc

    async def fetch_prep(self, prep_id: UUID) -> Dict[str, Any]:
        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("preps")
                    .select(PREP_COLUMNS)
                    .eq("id", str(prep_id))
                    .limit(1)
                    .execute()
                )
                return response.data or []

        try:
            rows = await asyncio.to_thread(_request)
        except PostgrestAPIError as exc:  # pragma: no cover - network interaction
            raise_postgrest_error(exc, context="fetch prep")
        except HttpxError as exc:  # pragma: no cover - network interaction
            raise HTTPException(status_code=503, detail="Supabase is temporarily unreachable.") from exc

        if not rows:
            raise HTTPException(status_code=404, detail="Prep not found.")
        return rows[0]

    async def update_prep_translations(self, prep_id: UUID, columns: Dict[str, Any]) -> Dict[str, Any]:
        """Persist translated language columns for a prep."""

        if not columns:
            return {}

        def _request() -> List[Dict[str, Any]]:
            with self._client(prefer="return=representation") as client:
                response = (
                    client.table("preps")
                    .update(columns)
                    .eq("id", str(prep_id))
                    .execute()
                )
                return response.data or []

        try:
            rows = await asyncio.to_thread(_request)
        except PostgrestAPIError as exc:  # pragma: no cover - network interaction
            raise_postgrest_error(exc, context="update prep translations")
        except HttpxError as exc:  # pragma: no cover - network interaction
            raise HTTPException(status_code=503, detail="Supabase is temporarily unreachable.") from exc

        if not rows:
            raise HTTPException(status_code=404, detail="Prep not found.")
        logger.info("Stored %d translated column(s) for prep %s", len(columns), prep_id)
        return rows[0]


__all__ = ["SupabaseContentDAO", "prep_translation_columns"]
