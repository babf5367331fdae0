from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Sentinels filled in once, when the model reply is ingested
UNKNOWN_NAME = "Unknown Product"
UNKNOWN_BRAND = "Unknown Brand"
UNKNOWN_CATEGORY = ""
UNKNOWN_DESCRIPTION = "No description available"

DEFAULT_DISCLAIMER = (
    "This information was generated by AI and may contain errors or inaccuracies. "
    "Always verify it against the product packaging and official sources. "
    "This is an experimental tool and should not be your only source of information."
)
DEFAULT_DETAILS_TITLE = "Product Details"
DEFAULT_NUTRITION_TITLE = "Nutrition Facts"

StatusType = Literal["success", "info", "warning"]
Source = Literal["catalog", "AI"]


def _text(value: Any, default: str) -> str:
    if value is None:
        return default
    s = str(value).strip()
    return s or default


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _status_type(value: Any) -> StatusType:
    low = str(value or "").strip().lower()
    if low in ("success", "info", "warning"):
        return low  # type: ignore[return-value]
    return "info"


def _source(value: Any) -> Source:
    """The model sometimes names the database itself ("OpenFoodFacts")."""
    low = str(value or "").strip().lower().replace(" ", "")
    if low in ("catalog", "openfoodfacts"):
        return "catalog"
    return "AI"


def _links(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return None
    links = [str(v).strip() for v in value if v is not None and str(v).strip()]
    return links or None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


# ---------- AI guess ----------

class ProductGuess(BaseModel):
    name: str = UNKNOWN_NAME
    brand: str = UNKNOWN_BRAND
    category: str = UNKNOWN_CATEGORY
    description: str = UNKNOWN_DESCRIPTION

    def search_terms(self) -> List[str]:
        """Brand and name as the model guessed them, without sentinels."""
        terms = []
        for value, sentinel in ((self.brand, UNKNOWN_BRAND), (self.name, UNKNOWN_NAME)):
            value = (value or "").strip()
            if value and value != sentinel:
                terms.append(value)
        return terms

    def is_empty(self) -> bool:
        return not self.search_terms() and self.description == UNKNOWN_DESCRIPTION


class StatusContent(BaseModel):
    message: str = ""
    type: StatusType = "info"


class ActionSteps(BaseModel):
    brand_url: Optional[str] = None
    shopping_links: Optional[List[str]] = None
    additional_info: Optional[str] = None


class Disclaimer(BaseModel):
    message: str = DEFAULT_DISCLAIMER
    source: Source = "AI"
    action_steps: ActionSteps = Field(default_factory=ActionSteps)


class UIContent(BaseModel):
    status: StatusContent = Field(default_factory=StatusContent)
    details_title: str = DEFAULT_DETAILS_TITLE
    nutrition_title: str = DEFAULT_NUTRITION_TITLE
    disclaimer: Disclaimer = Field(default_factory=Disclaimer)


class AIAnalysis(BaseModel):
    product: ProductGuess = Field(default_factory=ProductGuess)
    ui_content: UIContent = Field(default_factory=UIContent)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AIAnalysis":
        """
        Normalize a loosely-typed model reply into a fully populated analysis.

        Every missing or blank field gets its sentinel here so nothing
        downstream has to re-check for presence.
        """
        product = _as_dict(payload.get("product"))
        ui = _as_dict(payload.get("ui_content"))
        status = _as_dict(ui.get("status"))
        disclaimer = _as_dict(ui.get("disclaimer"))
        steps = _as_dict(disclaimer.get("action_steps"))

        return cls(
            product=ProductGuess(
                name=_text(product.get("name"), UNKNOWN_NAME),
                brand=_text(product.get("brand"), UNKNOWN_BRAND),
                category=_text(product.get("category"), UNKNOWN_CATEGORY),
                description=_text(product.get("description"), UNKNOWN_DESCRIPTION),
            ),
            ui_content=UIContent(
                status=StatusContent(
                    message=_text(status.get("message"), ""),
                    type=_status_type(status.get("type")),
                ),
                details_title=_text(ui.get("details_title"), DEFAULT_DETAILS_TITLE),
                nutrition_title=_text(ui.get("nutrition_title"), DEFAULT_NUTRITION_TITLE),
                disclaimer=Disclaimer(
                    message=_text(disclaimer.get("message"), DEFAULT_DISCLAIMER),
                    source=_source(disclaimer.get("source")),
                    action_steps=ActionSteps(
                        brand_url=_optional_text(steps.get("brand_url")),
                        shopping_links=_links(steps.get("shopping_links")),
                        additional_info=_optional_text(steps.get("additional_info")),
                    ),
                ),
            ),
        )


# ---------- merged result ----------

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Nutrients(_CamelModel):
    calories: Optional[float] = None
    proteins: Optional[float] = None
    carbohydrates: Optional[float] = None
    fat: Optional[float] = None
    fiber: Optional[float] = None
    sugars: Optional[float] = None
    saturated_fat: Optional[float] = None
    calories_per_serving: Optional[float] = None
    proteins_per_serving: Optional[float] = None
    carbohydrates_per_serving: Optional[float] = None
    fat_per_serving: Optional[float] = None

    def has_values(self) -> bool:
        return any(v is not None for v in self.model_dump().values())


class NormalizedProduct(_CamelModel):
    name: str
    brand: str
    quantity: Optional[str] = None
    categories: Optional[str] = None
    nutrition_grade: Optional[str] = None
    ingredients: Optional[str] = None
    nutrients: Optional[Nutrients] = None
    image_url: Optional[str] = None
    stores: Optional[str] = None
    packaging: Optional[str] = None
    description: str = UNKNOWN_DESCRIPTION
    source: Source = "AI"


class AnalyzeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_data: NormalizedProduct = Field(alias="productData")
    ui_content: UIContent


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
