from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


def _clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


class CatalogProduct(BaseModel):
    """
    One Open Food Facts record, normalized on ingest.

    Read-only passthrough: only the fields the merge step reads are kept.
    Empty strings are treated as missing.
    """
    model_config = ConfigDict(frozen=True)

    product_name: Optional[str] = None
    brands: Optional[str] = None
    quantity: Optional[str] = None
    categories: Optional[str] = None
    nutrition_grade: Optional[str] = None
    ingredients_text: Optional[str] = None
    image_url: Optional[str] = None
    stores: Optional[str] = None
    packaging: Optional[str] = None
    description: Optional[str] = None
    nutriments: Optional[Dict[str, Any]] = None

    @classmethod
    def from_off(cls, raw: Dict[str, Any]) -> "CatalogProduct":
        nutriments = raw.get("nutriments")
        return cls(
            product_name=_clean_str(raw.get("product_name")),
            brands=_clean_str(raw.get("brands")),
            quantity=_clean_str(raw.get("quantity")),
            categories=_clean_str(raw.get("categories")),
            nutrition_grade=_clean_str(raw.get("nutrition_grades") or raw.get("nutrition_grade_fr")),
            ingredients_text=_clean_str(raw.get("ingredients_text")),
            image_url=_clean_str(raw.get("image_url") or raw.get("image_front_url")),
            stores=_clean_str(raw.get("stores")),
            packaging=_clean_str(raw.get("packaging")),
            description=_clean_str(raw.get("generic_name") or raw.get("description")),
            nutriments=nutriments if isinstance(nutriments, dict) else None,
        )
