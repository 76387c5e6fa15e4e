"""Language-aware views over bilingual recipes and preps.

A reactive translation wraps one entity (a prep or a menu item) and the
application's ``TranslationCache``. Display text is picked synchronously from
the field matching the active language; switching language fills the missing
``<field>_<lang>`` values through the cache and notifies subscribers once the
translations are merged.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel

from app.config.i18n import CONTENT_SOURCE_LANGUAGE, DEFAULT_LANGUAGE, other_language
from app.schemas import RecipeData, TranslatedRecipeData
from app.services.translation_cache import TranslationCache

logger = logging.getLogger(__name__)

Entity = Dict[str, Any]
EntityInput = Union[Mapping[str, Any], BaseModel]
Listener = Callable[[Entity], None]


def _has_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _has_items(value: Any) -> bool:
    return isinstance(value, list) and any(_has_text(item) for item in value)


def split_list_field(value: Any) -> List[str]:
    """Normalize a list column that may be stored as comma separated text."""

    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(item) for item in value if item is not None]


def _as_dict(entity: EntityInput) -> Entity:
    if isinstance(entity, BaseModel):
        return entity.model_dump()
    return dict(entity)


class ReactiveContentTranslation:
    """Base class; subclasses declare which fields are bilingual."""

    text_fields: Tuple[str, ...] = ()
    list_fields: Tuple[str, ...] = ()

    def __init__(
        self,
        entity: EntityInput,
        cache: TranslationCache,
        *,
        language: str = DEFAULT_LANGUAGE,
        source_language: str = CONTENT_SOURCE_LANGUAGE,
        translate_on_language_change: bool = True,
    ) -> None:
        self._cache = cache
        self._language = language
        self.source_language = source_language
        self.translate_on_language_change = translate_on_language_change
        self._listeners: List[Listener] = []
        self._pending = 0
        self._revision = 0
        self._last_translation_language: Optional[str] = None
        self.error: Optional[str] = None
        self._entity: Entity = {}
        self.translated: Entity = {}
        self._load(entity)

    def _normalize(self, entity: Entity) -> Entity:
        for field in self.list_fields:
            if field in entity:
                entity[field] = split_list_field(entity[field])
        return entity

    def _load(self, entity: EntityInput) -> None:
        self._entity = self._normalize(_as_dict(entity))
        self.translated = dict(self._entity)

    @property
    def language(self) -> str:
        return self._language

    @property
    def is_translating(self) -> bool:
        return self._pending > 0

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback run after translations are merged."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        snapshot = dict(self.translated)
        for listener in list(self._listeners):
            listener(snapshot)

    def update_entity(self, entity: EntityInput) -> None:
        """Replace the source entity; merged translations are discarded."""

        self._revision += 1
        self._last_translation_language = None
        self._load(entity)
        self._notify()

    def get_display_text(self, field: str) -> str:
        localized = self.translated.get(f"{field}_{self._language}")
        if _has_text(localized):
            return localized
        for candidate in (
            self.translated.get(field),
            self.translated.get(f"{field}_de"),
            self.translated.get(f"{field}_en"),
        ):
            if _has_text(candidate):
                return candidate
        return ""

    def get_display_list(self, field: str) -> List[str]:
        localized = self.translated.get(f"{field}_{self._language}")
        if _has_items(localized):
            return list(localized)
        for candidate in (
            self.translated.get(field),
            self.translated.get(f"{field}_de"),
            self.translated.get(f"{field}_en"),
        ):
            if _has_items(candidate):
                return list(candidate)
        return []

    def has_translation_for_language(self, language: str) -> bool:
        return any(_has_text(self.translated.get(f"{field}_{language}")) for field in self.text_fields)

    def missing_fields(self, language: str) -> List[str]:
        """Fields with source content but no value for ``language`` yet."""

        missing = []
        for field in self.text_fields:
            if not _has_text(self.translated.get(f"{field}_{language}")) and self._text_source(field, language):
                missing.append(field)
        for field in self.list_fields:
            if not _has_items(self.translated.get(f"{field}_{language}")) and self._list_source(field, language):
                missing.append(field)
        return missing

    def _text_source(self, field: str, language: str) -> Optional[Tuple[str, str]]:
        primary = self.translated.get(field)
        if _has_text(primary):
            return primary, self.source_language
        counterpart = other_language(language)
        value = self.translated.get(f"{field}_{counterpart}")
        if _has_text(value):
            return value, counterpart
        return None

    def _list_source(self, field: str, language: str) -> Optional[Tuple[List[str], str]]:
        primary = self.translated.get(field)
        if _has_items(primary):
            return list(primary), self.source_language
        counterpart = other_language(language)
        value = self.translated.get(f"{field}_{counterpart}")
        if _has_items(value):
            return list(value), counterpart
        return None

    async def _translate_value(self, text: str, source_lang: str, language: str) -> str:
        if source_lang == language:
            return text
        return await self._cache.get_translation(text, source_lang, language)

    async def _collect_translations(self, language: str) -> Entity:
        updates: Entity = {}
        for field in self.missing_fields(language):
            target_key = f"{field}_{language}"
            if field in self.list_fields:
                items, source_lang = self._list_source(field, language)
                updates[target_key] = [
                    await self._translate_value(item, source_lang, language)
                    for item in items
                    if _has_text(item)
                ]
            else:
                text, source_lang = self._text_source(field, language)
                updates[target_key] = await self._translate_value(text, source_lang, language)
        return updates

    async def translate_content(self, language: str) -> Optional[Entity]:
        """Fill every missing field for ``language``.

        Returns the merged entity, or ``None`` when translation failed (see
        ``error``) or the entity was replaced while the request was running.
        """

        revision = self._revision
        self._pending += 1
        self.error = None
        try:
            updates = await self._collect_translations(language)
        except Exception as exc:
            self.error = str(exc) or "Translation failed"
            logger.warning("Content translation to %s failed: %s", language, self.error)
            return None
        finally:
            self._pending -= 1

        if revision != self._revision:
            logger.debug("Discarding %s translation for a replaced entity", language)
            return None

        self.translated.update(updates)
        self._last_translation_language = language
        if updates:
            self._notify()
        return dict(self.translated)

    async def set_language(self, language: str) -> Entity:
        """Switch the active language, translating when content is missing."""

        self._language = language
        if (
            self.translate_on_language_change
            and self._last_translation_language != language
            and not self.has_translation_for_language(language)
        ):
            await self.translate_content(language)
        return dict(self.translated)

    def display(self) -> Entity:
        values: Entity = {field: self.get_display_text(field) for field in self.text_fields}
        values.update({field: self.get_display_list(field) for field in self.list_fields})
        return values

    @classmethod
    async def localize(
        cls,
        entity: EntityInput,
        cache: TranslationCache,
        language: str,
        *,
        source_language: str = CONTENT_SOURCE_LANGUAGE,
    ) -> "ReactiveContentTranslation":
        """Build a view in ``language`` with every missing field translated."""

        view = cls(entity, cache, language=language, source_language=source_language)
        if view.missing_fields(language):
            await view.translate_content(language)
        return view


class ReactivePrepTranslation(ReactiveContentTranslation):
    text_fields = ("name", "description", "instructions")


class ReactiveRecipeTranslation(ReactiveContentTranslation):
    text_fields = ("name", "description")
    list_fields = ("ingredients", "dietary_tags")


def merge_recipe_with_translations(
    original: Union[RecipeData, Mapping[str, Any]],
    translations: Union[TranslatedRecipeData, Mapping[str, Any]],
    original_lang: str,
) -> Entity:
    """Combine a recipe with its translation, filling the source-language slots."""

    recipe = original if isinstance(original, RecipeData) else RecipeData.model_validate(original)
    translated = (
        translations.model_dump(exclude_none=True)
        if isinstance(translations, TranslatedRecipeData)
        else {key: value for key, value in translations.items() if value is not None}
    )
    merged: Entity = recipe.model_dump()
    merged.update(translated)
    suffix = "en" if original_lang == "en" else "de"
    merged[f"name_{suffix}"] = recipe.name
    merged[f"description_{suffix}"] = recipe.description
    merged[f"ingredients_{suffix}"] = list(recipe.ingredients)
    merged[f"dietary_tags_{suffix}"] = list(recipe.dietary_tags)
    return merged


def extract_recipe_from_form(form: Mapping[str, Any]) -> RecipeData:
    def _pick(*keys: str) -> Any:
        for key in keys:
            value = form.get(key)
            if value:
                return value
        return None

    return RecipeData(
        name=_pick("name", "name_en", "name_de"),
        description=_pick("description", "description_en", "description_de"),
        ingredients=_pick("ingredients", "ingredients_en", "ingredients_de") or [],
        dietary_tags=_pick("dietary_tags", "dietary_tags_en", "dietary_tags_de") or [],
        category=form.get("category"),
    )


__all__ = [
    "ReactiveContentTranslation",
    "ReactivePrepTranslation",
    "ReactiveRecipeTranslation",
    "extract_recipe_from_form",
    "merge_recipe_with_translations",
    "split_list_field",
]
