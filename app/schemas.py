from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

LanguageCode = Literal["en", "de"]
TranslationMode = Literal["single", "batch", "name", "prep", "prep_batch", "prep_name"]


class CamelModel(BaseModel):
    """Accept both the camelCase wire names and the snake_case field names."""

    model_config = ConfigDict(populate_by_name=True)


class TranslateTextRequest(CamelModel):
    text: str
    source_lang: str = Field(alias="sourceLang")
    target_lang: str = Field(alias="targetLang")

    @field_validator("source_lang", "target_lang")
    @classmethod
    def _normalize_language(cls, value: str) -> str:
        return value.strip().lower()


class TranslateTextResponse(CamelModel):
    translated_text: str = Field(serialization_alias="translatedText")


class IngredientData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    name_de: Optional[str] = None
    name_en: Optional[str] = None
    description: Optional[str] = None
    description_de: Optional[str] = None
    description_en: Optional[str] = None
    dietary_properties: List[str] = Field(default_factory=list)
    allergens: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    supplier_info: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("dietary_properties", "allergens", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class TranslatedIngredientData(BaseModel):
    name: str = ""
    name_de: str = ""
    name_en: str = ""
    description: str = ""
    description_de: str = ""
    description_en: str = ""
    dietary_properties: List[str] = Field(default_factory=list)
    allergens: List[str] = Field(default_factory=list)
    category: str = ""
    supplier_info: str = ""
    notes: str = ""
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)


class PrepData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[UUID] = None
    name: str
    name_de: Optional[str] = None
    name_en: Optional[str] = None
    description: Optional[str] = None
    description_de: Optional[str] = None
    description_en: Optional[str] = None
    instructions: Optional[str] = None
    instructions_de: Optional[str] = None
    instructions_en: Optional[str] = None
    notes: Optional[str] = None
    batch_yield: Optional[str] = None
    batch_yield_amount: Optional[float] = None
    batch_yield_unit: Optional[str] = None


class TranslatedPrepData(BaseModel):
    name: str = ""
    name_de: str = ""
    name_en: str = ""
    description: str = ""
    description_de: str = ""
    description_en: str = ""
    instructions: str = ""
    instructions_de: str = ""
    instructions_en: str = ""
    notes: str = ""
    batch_yield: str = ""
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)


class RecipeData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    description: Optional[str] = None
    ingredients: List[str] = Field(default_factory=list)
    dietary_tags: List[str] = Field(default_factory=list)
    category: Optional[str] = None

    @field_validator("ingredients", "dietary_tags", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return list(value)


class TranslatedRecipeData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name_en: Optional[str] = None
    name_de: Optional[str] = None
    description_en: Optional[str] = None
    description_de: Optional[str] = None
    ingredients_en: Optional[List[str]] = None
    ingredients_de: Optional[List[str]] = None
    dietary_tags_en: Optional[List[str]] = None
    dietary_tags_de: Optional[List[str]] = None


class NameTranslation(CamelModel):
    translated_name: str = Field(serialization_alias="translatedName")
    confidence: float
    original_name: str = Field(serialization_alias="originalName")


class TranslationRequest(CamelModel):
    """Payload accepted by the mode-dispatching translate endpoint."""

    source_lang: LanguageCode = Field(alias="sourceLang")
    target_lang: LanguageCode = Field(alias="targetLang")
    mode: TranslationMode
    name: Optional[str] = None
    ingredient: Optional[IngredientData] = None
    ingredients: Optional[List[IngredientData]] = None
    prep: Optional[PrepData] = None
    preps: Optional[List[PrepData]] = None


class LocalizedPrep(BaseModel):
    id: Optional[UUID] = None
    language: LanguageCode
    name: str
    description: str = ""
    instructions: str = ""
    notes: Optional[str] = None
    batch_yield: Optional[str] = None
    has_stored_translation: bool = False


class LocalizedMenuItem(BaseModel):
    id: Optional[UUID] = None
    language: LanguageCode
    name: str
    description: str = ""
    ingredients: List[str] = Field(default_factory=list)
    dietary_tags: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    regular_price: Optional[float] = None
    student_price: Optional[float] = None
    is_featured: bool = False


class CacheStatsResponse(BaseModel):
    entries: int
    hits: int
    misses: int
    in_flight: int
    last_error: Optional[str] = None


class PrepTranslationResult(BaseModel):
    prep_id: UUID
    source_lang: LanguageCode
    target_lang: LanguageCode
    confidence: float
    translation: TranslatedPrepData
    stored_columns: Dict[str, Any] = Field(default_factory=dict)
