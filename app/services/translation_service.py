"""Culinary machine translation backed by DeepSeek chat completions."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from openai import APIError

from app.config.deepseek_client import DEEPSEEK_MODEL, get_deepseek_client, is_deepseek_configured
from app.config.i18n import LANGUAGE_LABELS, SUPPORTED_LANGUAGES
from app.schemas import (
    IngredientData,
    NameTranslation,
    PrepData,
    RecipeData,
    TranslatedIngredientData,
    TranslatedPrepData,
    TranslatedRecipeData,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

CODE_FENCE_PATTERN = re.compile(r"```(json)?(.*?)```", re.DOTALL | re.IGNORECASE)

NAME_MAX_TOKENS = 50
PREP_NAME_MAX_TOKENS = 100
DOCUMENT_MAX_TOKENS = 2000
TRANSLATION_TEMPERATURE = 0.1
DEFAULT_DOCUMENT_CONFIDENCE = 0.8
FALLBACK_CONFIDENCE = 0.2
FAILED_BATCH_ITEM_CONFIDENCE = 0.1
BATCH_SIZE = 5
BATCH_DELAY_SECONDS = 0.6

LOCAL_TRANSLATIONS: Dict[Tuple[str, str], Dict[str, str]] = {
    ("de", "en"): {
        "kartoffel": "potato",
        "zwiebel": "onion",
        "knoblauch": "garlic",
        "tomate": "tomato",
        "tomaten": "tomatoes",
        "karotte": "carrot",
        "karotten": "carrots",
        "spinat": "spinach",
        "salat": "lettuce",
        "gurke": "cucumber",
        "gurken": "cucumbers",
        "paprika": "bell pepper",
        "zucchini": "zucchini",
        "aubergine": "eggplant",
        "brokkoli": "broccoli",
        "blumenkohl": "cauliflower",
        "avocado": "avocado",
        "milch": "milk",
        "butter": "butter",
        "käse": "cheese",
        "joghurt": "yogurt",
        "sahne": "cream",
        "hähnchen": "chicken",
        "rind": "beef",
        "schwein": "pork",
        "lachs": "salmon",
        "thunfisch": "tuna",
        "reis": "rice",
        "nudeln": "pasta",
        "brot": "bread",
        "mehl": "flour",
        "olivenöl": "olive oil",
        "salz": "salt",
        "pfeffer": "pepper",
        "basilikum": "basil",
        "petersilie": "parsley",
    },
}
LOCAL_TRANSLATIONS[("en", "de")] = {
    english: german for german, english in LOCAL_TRANSLATIONS[("de", "en")].items()
}

NAME_SYSTEM_PROMPT = (
    "You are a professional culinary translator specializing in ingredient names. "
    "Translate the ingredient name from {source} to {target} using proper culinary terminology. "
    "Return ONLY the translated name, nothing else.\n\n"
    "Examples:\n"
    "- Kartoffel → Potato\n"
    "- Zwiebel → Onion\n"
    "- Olive oil → Olivenöl\n"
    "- Chicken breast → Hähnchenbrust\n"
    "- Käse → Cheese\n"
    "- Lachs → Salmon"
)

PREP_NAME_SYSTEM_PROMPT = (
    "You are a professional culinary translator specializing in prep and preparation names. "
    "Translate the prep/preparation name from {source} to {target} using proper culinary terminology. "
    "Return ONLY the translated name, nothing else.\n\n"
    "Examples for prep names:\n"
    "- Grüne Curry Paste → Green Curry Paste\n"
    "- Tomato Sauce → Tomatensauce\n"
    "- Garlic Oil → Knoblauchöl\n"
    "- Herb Mix → Kräutermischung\n"
    "- Stock → Brühe"
)

INGREDIENT_SYSTEM_PROMPT = (
    "You are a professional culinary translator specializing in German and English ingredient "
    "translations for restaurant management systems. Translate names with proper culinary "
    "terminology, preserve dietary property meanings and keep allergen information complete.\n"
    "Return ONLY a valid JSON object with all fields translated to {target}. "
    "If a field is empty or null, return an empty string for that field.\n"
    "Expected JSON structure: {{\"name\": str, \"name_de\": str, \"name_en\": str, "
    "\"description\": str, \"description_de\": str, \"description_en\": str, "
    "\"dietary_properties\": [str], \"allergens\": [str], \"category\": str, "
    "\"supplier_info\": str, \"notes\": str, \"confidence\": float}}.\n"
    "The confidence is between 0.0 and 1.0 depending on how certain you are."
)

PREP_SYSTEM_PROMPT = (
    "You are a professional culinary translator specializing in food preparation data. "
    "Translate ALL text fields from {source} to {target}, maintaining culinary accuracy. "
    "Fill name, description and instructions in both languages, translate notes and batch_yield, "
    "and add a confidence score (0.1-1.0).\n"
    "Expected JSON structure: {{\"name\": str, \"name_de\": str, \"name_en\": str, "
    "\"description\": str, \"description_de\": str, \"description_en\": str, "
    "\"instructions\": str, \"instructions_de\": str, \"instructions_en\": str, "
    "\"notes\": str, \"batch_yield\": str, \"confidence\": float}}"
)

RECIPE_SYSTEM_PROMPT = (
    "You are a professional culinary translator. Always respond with valid JSON only."
)

RECIPE_USER_PROMPT = (
    "Translate the following recipe data from {source} to {target}.\n\n"
    "Recipe data to translate:\n{payload}\n\n"
    "Keep the structure exactly the same but translate all text content. Translate each "
    "ingredient of the list and use standard culinary terms for dietary tags. If a field is "
    "empty or null, keep it as null.\n"
    "Expected JSON structure: {{\"name\": str, \"description\": str, \"ingredients\": [str], "
    "\"dietary_tags\": [str], \"category\": str}}"
)


class TranslationServiceError(RuntimeError):
    """Raised when the translation collaborator cannot produce a translation."""


class UnsupportedLanguageError(TranslationServiceError):
    """Raised for language pairs the service does not handle."""


class TranslationNotConfiguredError(TranslationServiceError):
    """Raised when no DeepSeek API key is available."""


def validate_language_pair(source_lang: str, target_lang: str) -> None:
    if source_lang == target_lang:
        raise UnsupportedLanguageError("Source and target languages cannot be the same")
    if source_lang not in SUPPORTED_LANGUAGES or target_lang not in SUPPORTED_LANGUAGES:
        raise UnsupportedLanguageError(f"Unsupported language pair: {source_lang} -> {target_lang}")


def lookup_local_translation(text: str, source_lang: str, target_lang: str) -> Optional[str]:
    """Return the dictionary translation of a common ingredient term, if known."""

    if not text or not source_lang or not target_lang:
        return None
    dictionary = LOCAL_TRANSLATIONS.get((source_lang, target_lang))
    if not dictionary:
        return None
    return dictionary.get(text.strip().lower())


def estimate_name_confidence(original: str, translated: str) -> float:
    confidence = 0.85
    length_ratio = len(translated) / max(len(original), 1)
    if length_ratio < 0.3 or length_ratio > 3.0:
        confidence -= 0.2
    if translated == original:
        confidence = 0.3
    if len(translated) < 2:
        confidence = 0.2
    return _clamp_confidence(confidence)


def _clamp_confidence(value: float) -> float:
    return max(0.1, min(1.0, value))


def _language_label(code: str) -> str:
    return LANGUAGE_LABELS.get(code, code)


def _request_completion(system_prompt: str, user_content: str, *, max_tokens: int) -> str:
    completion = get_deepseek_client().chat.completions.create(
        model=DEEPSEEK_MODEL,
        temperature=TRANSLATION_TEMPERATURE,
        max_tokens=max_tokens,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_content},
        ],
    )
    if completion.choices:
        return completion.choices[0].message.content or ""
    return ""


async def _complete(system_prompt: str, user_content: str, *, max_tokens: int) -> str:
    if not is_deepseek_configured():
        raise TranslationNotConfiguredError("DeepSeek API key not configured")
    try:
        content = await asyncio.to_thread(
            _request_completion, system_prompt, user_content, max_tokens=max_tokens
        )
    except APIError as exc:
        logger.error("DeepSeek request failed: %s", exc)
        raise TranslationServiceError(f"DeepSeek API error: {exc}") from exc
    content = (content or "").strip()
    if not content:
        raise TranslationServiceError("No translation received")
    return content


def parse_translation_json(raw_text: str) -> Dict[str, Any]:
    """Extract the JSON object from a model reply, tolerating code fences."""

    text = (raw_text or "").strip()
    match = CODE_FENCE_PATTERN.search(text)
    if match:
        text = match.group(2).strip()
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise TranslationServiceError("Failed to parse translation response")
    try:
        payload = json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        raise TranslationServiceError("Failed to parse translation response") from exc
    if not isinstance(payload, dict):
        raise TranslationServiceError("Failed to parse translation response")
    return payload


def _first_text(*values: Any) -> str:
    for value in values:
        if isinstance(value, str) and value:
            return value
    return ""


def _confidence_from(payload: Dict[str, Any]) -> float:
    value = payload.get("confidence")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _clamp_confidence(float(value))
    return DEFAULT_DOCUMENT_CONFIDENCE


async def _translate_short_name(
    name: str, source_lang: str, target_lang: str, *, prompt: str, max_tokens: int
) -> NameTranslation:
    validate_language_pair(source_lang, target_lang)
    cleaned = name.strip()
    system_prompt = prompt.format(
        source=_language_label(source_lang), target=_language_label(target_lang)
    )
    translated = await _complete(system_prompt, cleaned, max_tokens=max_tokens)
    confidence = estimate_name_confidence(cleaned, translated)
    logger.info(
        "Name translated %s -> %s (%s -> %s, %d%% confidence)",
        cleaned,
        translated,
        source_lang,
        target_lang,
        round(confidence * 100),
    )
    return NameTranslation(translated_name=translated, confidence=confidence, original_name=name)


async def translate_name(name: str, source_lang: str, target_lang: str) -> NameTranslation:
    return await _translate_short_name(
        name, source_lang, target_lang, prompt=NAME_SYSTEM_PROMPT, max_tokens=NAME_MAX_TOKENS
    )


async def translate_prep_name(name: str, source_lang: str, target_lang: str) -> NameTranslation:
    return await _translate_short_name(
        name,
        source_lang,
        target_lang,
        prompt=PREP_NAME_SYSTEM_PROMPT,
        max_tokens=PREP_NAME_MAX_TOKENS,
    )


async def translate_text(text: str, source_lang: str, target_lang: str) -> str:
    """Translate a short text, preferring the local culinary dictionary.

    Blank text and identical languages are returned unchanged. Failures raise
    ``TranslationServiceError`` so callers never mistake the source text for a
    translation.
    """

    if not text or not text.strip():
        return text or ""
    if source_lang == target_lang:
        return text
    local = lookup_local_translation(text, source_lang, target_lang)
    if local:
        logger.debug("Local dictionary translation %s -> %s", text, local)
        return local
    result = await translate_name(text, source_lang, target_lang)
    return result.translated_name


def fallback_ingredient_translation(
    ingredient: IngredientData, *, confidence: float = FALLBACK_CONFIDENCE
) -> TranslatedIngredientData:
    return TranslatedIngredientData(
        name=ingredient.name or "",
        name_de=_first_text(ingredient.name_de, ingredient.name),
        name_en=_first_text(ingredient.name_en, ingredient.name),
        description=ingredient.description or "",
        description_de=_first_text(ingredient.description_de, ingredient.description),
        description_en=_first_text(ingredient.description_en, ingredient.description),
        dietary_properties=list(ingredient.dietary_properties),
        allergens=list(ingredient.allergens),
        category=ingredient.category or "",
        supplier_info=ingredient.supplier_info or "",
        notes=ingredient.notes or "",
        confidence=confidence,
    )


def fallback_prep_translation(
    prep: PrepData, *, confidence: float = FALLBACK_CONFIDENCE
) -> TranslatedPrepData:
    return TranslatedPrepData(
        name=prep.name or "",
        name_de=_first_text(prep.name_de, prep.name),
        name_en=_first_text(prep.name_en, prep.name),
        description=prep.description or "",
        description_de=_first_text(prep.description_de, prep.description),
        description_en=_first_text(prep.description_en, prep.description),
        instructions=prep.instructions or "",
        instructions_de=_first_text(prep.instructions_de, prep.instructions),
        instructions_en=_first_text(prep.instructions_en, prep.instructions),
        notes=prep.notes or "",
        batch_yield=prep.batch_yield or "",
        confidence=confidence,
    )


async def translate_ingredient(
    ingredient: IngredientData, source_lang: str, target_lang: str
) -> TranslatedIngredientData:
    validate_language_pair(source_lang, target_lang)
    system_prompt = INGREDIENT_SYSTEM_PROMPT.format(target=_language_label(target_lang))
    user_content = (
        f"Translate this ingredient data from {source_lang} to {target_lang}:\n\n"
        f"{ingredient.model_dump_json(indent=2)}"
    )
    payload = parse_translation_json(
        await _complete(system_prompt, user_content, max_tokens=DOCUMENT_MAX_TOKENS)
    )
    dietary = payload.get("dietary_properties")
    allergens = payload.get("allergens")
    translation = TranslatedIngredientData(
        name=_first_text(payload.get("name"), ingredient.name),
        name_de=_first_text(payload.get("name_de"), ingredient.name_de, ingredient.name),
        name_en=_first_text(payload.get("name_en"), ingredient.name_en, ingredient.name),
        description=_first_text(payload.get("description"), ingredient.description),
        description_de=_first_text(
            payload.get("description_de"), ingredient.description_de, ingredient.description
        ),
        description_en=_first_text(
            payload.get("description_en"), ingredient.description_en, ingredient.description
        ),
        dietary_properties=dietary if isinstance(dietary, list) else list(ingredient.dietary_properties),
        allergens=allergens if isinstance(allergens, list) else list(ingredient.allergens),
        category=_first_text(payload.get("category"), ingredient.category),
        supplier_info=_first_text(payload.get("supplier_info"), ingredient.supplier_info),
        notes=_first_text(payload.get("notes"), ingredient.notes),
        confidence=_confidence_from(payload),
    )
    logger.info(
        "Ingredient translated: %s (%d%% confidence)",
        ingredient.name,
        round(translation.confidence * 100),
    )
    return translation


async def translate_prep(prep: PrepData, source_lang: str, target_lang: str) -> TranslatedPrepData:
    validate_language_pair(source_lang, target_lang)
    system_prompt = PREP_SYSTEM_PROMPT.format(
        source=_language_label(source_lang), target=_language_label(target_lang)
    )
    user_content = (
        f"Translate this prep data from {source_lang} to {target_lang}:\n\n"
        f"{prep.model_dump_json(indent=2, exclude={'id'})}"
    )
    payload = parse_translation_json(
        await _complete(system_prompt, user_content, max_tokens=DOCUMENT_MAX_TOKENS)
    )
    translation = TranslatedPrepData(
        name=_first_text(payload.get("name"), prep.name),
        name_de=_first_text(payload.get("name_de"), prep.name_de, prep.name),
        name_en=_first_text(payload.get("name_en"), prep.name_en, prep.name),
        description=_first_text(payload.get("description"), prep.description),
        description_de=_first_text(payload.get("description_de"), prep.description_de, prep.description),
        description_en=_first_text(payload.get("description_en"), prep.description_en, prep.description),
        instructions=_first_text(payload.get("instructions"), prep.instructions),
        instructions_de=_first_text(
            payload.get("instructions_de"), prep.instructions_de, prep.instructions
        ),
        instructions_en=_first_text(
            payload.get("instructions_en"), prep.instructions_en, prep.instructions
        ),
        notes=_first_text(payload.get("notes"), prep.notes),
        batch_yield=_first_text(payload.get("batch_yield"), prep.batch_yield),
        confidence=_confidence_from(payload),
    )
    logger.info("Prep translated: %s (%d%% confidence)", prep.name, round(translation.confidence * 100))
    return translation


async def translate_recipe(
    recipe: RecipeData, source_lang: str, target_lang: str
) -> TranslatedRecipeData:
    """Translate a recipe and return only the target-language fields."""

    validate_language_pair(source_lang, target_lang)
    user_content = RECIPE_USER_PROMPT.format(
        source=_language_label(source_lang),
        target=_language_label(target_lang),
        payload=recipe.model_dump_json(indent=2),
    )
    payload = parse_translation_json(
        await _complete(RECIPE_SYSTEM_PROMPT, user_content, max_tokens=DOCUMENT_MAX_TOKENS)
    )
    def _text_or_none(value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    def _list_or_none(value: Any) -> Optional[List[str]]:
        if not isinstance(value, list):
            return None
        return [str(entry) for entry in value if entry is not None]

    suffix = target_lang
    return TranslatedRecipeData.model_validate(
        {
            f"name_{suffix}": _text_or_none(payload.get("name")),
            f"description_{suffix}": _text_or_none(payload.get("description")),
            f"ingredients_{suffix}": _list_or_none(payload.get("ingredients")),
            f"dietary_tags_{suffix}": _list_or_none(payload.get("dietary_tags")),
        }
    )


def summarize_batch(confidences: Sequence[float]) -> Dict[str, Any]:
    total = len(confidences)
    successful = sum(1 for value in confidences if value > 0.5)
    average = sum(confidences) / total if total else 0.0
    return {"total": total, "successful": successful, "averageConfidence": average}


async def translate_batch(
    items: Sequence[T],
    translate_one: Callable[[T, str, str], Awaitable[R]],
    fallback: Callable[[T], R],
    source_lang: str,
    target_lang: str,
    *,
    batch_size: int = BATCH_SIZE,
    delay_seconds: float = BATCH_DELAY_SECONDS,
) -> List[R]:
    """Translate items in chunks; a failing item yields its fallback."""

    validate_language_pair(source_lang, target_lang)
    results: List[R] = []
    for start in range(0, len(items), batch_size):
        chunk = items[start : start + batch_size]
        for item in chunk:
            try:
                results.append(await translate_one(item, source_lang, target_lang))
            except TranslationNotConfiguredError:
                raise
            except TranslationServiceError as exc:
                logger.warning("Batch item translation failed, using fallback: %s", exc)
                results.append(fallback(item))
        if start + batch_size < len(items) and delay_seconds > 0:
            await asyncio.sleep(delay_seconds)
    logger.info("Batch translation complete: %d item(s) %s -> %s", len(results), source_lang, target_lang)
    return results


__all__ = [
    "TranslationNotConfiguredError",
    "TranslationServiceError",
    "UnsupportedLanguageError",
    "estimate_name_confidence",
    "fallback_ingredient_translation",
    "fallback_prep_translation",
    "lookup_local_translation",
    "parse_translation_json",
    "summarize_batch",
    "translate_batch",
    "translate_ingredient",
    "translate_name",
    "translate_prep",
    "translate_prep_name",
    "translate_recipe",
    "translate_text",
    "validate_language_pair",
]
