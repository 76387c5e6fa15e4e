"""Translation endpoints: cached text translation and entity translation modes."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from app.config.deepseek_client import is_deepseek_configured
from app.schemas import CacheStatsResponse, TranslateTextRequest, TranslateTextResponse, TranslationRequest
from app.security.guards import limit_translation_requests
from app.services.auth_utils import extract_bearer_token, require_admin_role
from app.services.translation_cache import TranslationCache
from app.services.translation_service import (
    FAILED_BATCH_ITEM_CONFIDENCE,
    TranslationNotConfiguredError,
    TranslationServiceError,
    UnsupportedLanguageError,
    fallback_ingredient_translation,
    fallback_prep_translation,
    summarize_batch,
    translate_batch,
    translate_ingredient,
    translate_name,
    translate_prep,
    translate_prep_name,
    validate_language_pair,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def get_translation_cache(request: Request) -> TranslationCache:
    """Return the cache owned by the running application."""

    cache = getattr(request.app.state, "translation_cache", None)
    if cache is None:
        raise HTTPException(status_code=503, detail="Translation cache is not initialised.")
    return cache


async def get_admin_token(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> str:
    token = extract_bearer_token(authorization)
    require_admin_role(token)
    return token


def raise_translation_error(exc: TranslationServiceError) -> None:
    """Map service failures to HTTP errors."""

    if isinstance(exc, UnsupportedLanguageError):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if isinstance(exc, TranslationNotConfiguredError):
        raise HTTPException(status_code=503, detail="Translation service is not configured.") from exc
    logger.error("Translation failed: %s", exc)
    raise HTTPException(status_code=502, detail="Translation service error.") from exc


@router.post(
    "/translate/text",
    response_model=TranslateTextResponse,
    dependencies=[Depends(limit_translation_requests)],
)
async def translate_text_endpoint(
    payload: TranslateTextRequest,
    cache: TranslationCache = Depends(get_translation_cache),
) -> TranslateTextResponse:
    try:
        validate_language_pair(payload.source_lang, payload.target_lang)
        translated = await cache.get_translation(payload.text, payload.source_lang, payload.target_lang)
    except TranslationServiceError as exc:
        raise_translation_error(exc)
    return TranslateTextResponse(translated_text=translated)


@router.post("/translate", dependencies=[Depends(limit_translation_requests)])
async def translate_endpoint(payload: TranslationRequest) -> Dict[str, Any]:
    """Translate a name, an ingredient, a prep or a batch of them."""

    if payload.source_lang == payload.target_lang:
        raise HTTPException(status_code=400, detail="Source and target languages cannot be the same")
    if not is_deepseek_configured():
        raise HTTPException(status_code=500, detail="DeepSeek API key not configured")

    source_lang, target_lang = payload.source_lang, payload.target_lang
    mode = payload.mode

    if mode in ("name", "prep_name") and payload.name:
        translate = translate_name if mode == "name" else translate_prep_name
        try:
            result = await translate(payload.name, source_lang, target_lang)
        except TranslationServiceError as exc:
            logger.warning("Name translation failed: %s", exc)
            return {
                "success": False,
                "error": str(exc),
                "translatedName": payload.name,
                "confidence": FAILED_BATCH_ITEM_CONFIDENCE,
                "originalName": payload.name,
            }
        return {"success": True, **result.model_dump(by_alias=True)}

    if mode == "single" and payload.ingredient:
        try:
            ingredient = await translate_ingredient(payload.ingredient, source_lang, target_lang)
        except TranslationServiceError as exc:
            logger.warning("Ingredient translation failed: %s", exc)
            return {
                "success": False,
                "error": str(exc),
                "translation": fallback_ingredient_translation(payload.ingredient).model_dump(),
                "fallback": True,
            }
        return {"success": True, "translation": ingredient.model_dump()}

    if mode == "prep" and payload.prep:
        try:
            prep = await translate_prep(payload.prep, source_lang, target_lang)
        except TranslationServiceError as exc:
            logger.warning("Prep translation failed: %s", exc)
            return {
                "success": False,
                "error": str(exc),
                "translation": fallback_prep_translation(payload.prep).model_dump(),
                "fallback": True,
            }
        return {"success": True, "translation": prep.model_dump()}

    if mode == "batch" and payload.ingredients is not None:
        results = await translate_batch(
            payload.ingredients,
            translate_ingredient,
            lambda item: fallback_ingredient_translation(item, confidence=FAILED_BATCH_ITEM_CONFIDENCE),
            source_lang,
            target_lang,
        )
    elif mode == "prep_batch" and payload.preps is not None:
        results = await translate_batch(
            payload.preps,
            translate_prep,
            lambda item: fallback_prep_translation(item, confidence=FAILED_BATCH_ITEM_CONFIDENCE),
            source_lang,
            target_lang,
        )
    else:
        raise HTTPException(status_code=400, detail="Invalid request parameters")

    return {
        "success": True,
        "results": [result.model_dump() for result in results],
        "summary": summarize_batch([result.confidence for result in results]),
    }


@router.get("/translate/cache", response_model=CacheStatsResponse)
def translation_cache_stats(cache: TranslationCache = Depends(get_translation_cache)) -> CacheStatsResponse:
    return CacheStatsResponse(**cache.stats())


@router.delete("/translate/cache", response_model=CacheStatsResponse)
def clear_translation_cache(
    _token: str = Depends(get_admin_token),
    cache: TranslationCache = Depends(get_translation_cache),
) -> CacheStatsResponse:
    cleared = len(cache)
    cache.clear()
    logger.info("Translation cache cleared (%d entries)", cleared)
    return CacheStatsResponse(**cache.stats())


__all__ = ["router", "get_admin_token", "get_translation_cache", "raise_translation_error"]
