"""Localized public content and admin prep translation."""

from __future__ import annotations

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.config.i18n import CONTENT_SOURCE_LANGUAGE, DEFAULT_LANGUAGE
from app.schemas import LanguageCode, LocalizedMenuItem, LocalizedPrep, PrepData, PrepTranslationResult
from app.api.routes.translate import get_admin_token, get_translation_cache, raise_translation_error
from app.services.content_service import SupabaseContentDAO, prep_translation_columns
from app.services.content_translation import ReactivePrepTranslation, ReactiveRecipeTranslation
from app.services.translation_cache import TranslationCache
from app.services.translation_service import TranslationServiceError, translate_prep

router = APIRouter()
logger = logging.getLogger(__name__)


async def get_content_dao() -> SupabaseContentDAO:
    return SupabaseContentDAO()


async def get_admin_content_dao(token: str = Depends(get_admin_token)) -> SupabaseContentDAO:
    return SupabaseContentDAO(token)


@router.get("/menu-items", response_model=List[LocalizedMenuItem])
async def list_menu_items(
    lang: LanguageCode = Query(default=DEFAULT_LANGUAGE),
    dao: SupabaseContentDAO = Depends(get_content_dao),
    cache: TranslationCache = Depends(get_translation_cache),
) -> List[LocalizedMenuItem]:
    rows = await dao.fetch_menu_items()
    localized: List[LocalizedMenuItem] = []
    for row in rows:
        view = await ReactiveRecipeTranslation.localize(row, cache, lang)
        if view.error:
            logger.warning("Menu item %s shown untranslated: %s", row.get("id"), view.error)
        display = view.display()
        localized.append(
            LocalizedMenuItem(
                id=row.get("id"),
                language=lang,
                name=display["name"],
                description=display["description"],
                ingredients=display["ingredients"],
                dietary_tags=display["dietary_tags"],
                image_url=row.get("image_url"),
                regular_price=row.get("regular_price"),
                student_price=row.get("student_price"),
                is_featured=bool(row.get("is_featured")),
            )
        )
    return localized


@router.get("/preps", response_model=List[LocalizedPrep])
async def list_preps(
    lang: LanguageCode = Query(default=DEFAULT_LANGUAGE),
    dao: SupabaseContentDAO = Depends(get_content_dao),
    cache: TranslationCache = Depends(get_translation_cache),
) -> List[LocalizedPrep]:
    rows = await dao.fetch_preps()
    localized: List[LocalizedPrep] = []
    for row in rows:
        view = ReactivePrepTranslation(row, cache, language=lang)
        stored = view.has_translation_for_language(lang)
        if view.missing_fields(lang):
            await view.translate_content(lang)
        if view.error:
            logger.warning("Prep %s shown untranslated: %s", row.get("id"), view.error)
        display = view.display()
        localized.append(
            LocalizedPrep(
                id=row.get("id"),
                language=lang,
                name=display["name"],
                description=display["description"],
                instructions=display["instructions"],
                notes=row.get("notes"),
                batch_yield=row.get("batch_yield"),
                has_stored_translation=stored,
            )
        )
    return localized


@router.post("/preps/{prep_id}/translate", response_model=PrepTranslationResult)
async def translate_and_store_prep(
    prep_id: UUID,
    source_lang: LanguageCode = Query(default=CONTENT_SOURCE_LANGUAGE),
    target_lang: LanguageCode = Query(default=DEFAULT_LANGUAGE),
    dao: SupabaseContentDAO = Depends(get_admin_content_dao),
    cache: TranslationCache = Depends(get_translation_cache),
) -> PrepTranslationResult:
    """Translate a prep with the AI provider and store the language columns."""

    prep = PrepData.model_validate(await dao.fetch_prep(prep_id))
    try:
        translation = await translate_prep(prep, source_lang, target_lang)
    except TranslationServiceError as exc:
        raise_translation_error(exc)

    columns = prep_translation_columns(translation)
    await dao.update_prep_translations(prep_id, columns)

    translated_name = getattr(translation, f"name_{target_lang}")
    # Listings look up primary fields under CONTENT_SOURCE_LANGUAGE.
    if prep.name and translated_name and source_lang == CONTENT_SOURCE_LANGUAGE:
        cache.update_cache(prep.name, source_lang, target_lang, translated_name)

    return PrepTranslationResult(
        prep_id=prep_id,
        source_lang=source_lang,
        target_lang=target_lang,
        confidence=translation.confidence,
        translation=translation,
        stored_columns=columns,
    )


__all__ = ["router", "get_admin_content_dao", "get_content_dao"]
