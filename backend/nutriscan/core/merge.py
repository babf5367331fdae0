from typing import Any, Dict, Optional

from nutriscan.schemas.analyze import (
    UNKNOWN_BRAND,
    UNKNOWN_DESCRIPTION,
    UNKNOWN_NAME,
    AIAnalysis,
    NormalizedProduct,
    Nutrients,
)
from nutriscan.schemas.catalog import CatalogProduct

# Nutrients field -> Open Food Facts nutriments key
NUTRIENT_KEYS: Dict[str, str] = {
    "calories": "energy-kcal_100g",
    "proteins": "proteins_100g",
    "carbohydrates": "carbohydrates_100g",
    "fat": "fat_100g",
    "fiber": "fiber_100g",
    "sugars": "sugars_100g",
    "saturated_fat": "saturated-fat_100g",
    "calories_per_serving": "energy-kcal_serving",
    "proteins_per_serving": "proteins_serving",
    "carbohydrates_per_serving": "carbohydrates_serving",
    "fat_per_serving": "fat_serving",
}


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def extract_nutrients(catalog: CatalogProduct) -> Nutrients:
    """Read the per-100g and per-serving figures we display from `nutriments`."""
    nutriments = catalog.nutriments or {}
    return Nutrients(**{field: _number(nutriments.get(key)) for field, key in NUTRIENT_KEYS.items()})


def placeholder_product() -> NormalizedProduct:
    return NormalizedProduct(
        name=UNKNOWN_NAME,
        brand=UNKNOWN_BRAND,
        description=UNKNOWN_DESCRIPTION,
        source="AI",
        nutrients=None,
    )


def merge_product_data(
    catalog: Optional[CatalogProduct],
    analysis: Optional[AIAnalysis],
) -> NormalizedProduct:
    """
    Combine a catalog record with the AI guess.

    Catalog wins field by field; the AI guess only fills what the catalog
    lacks. Nutrition figures come from the catalog alone. No I/O.
    """
    if catalog is None and (analysis is None or analysis.product.is_empty()):
        return placeholder_product()

    guess = analysis.product if analysis is not None else AIAnalysis().product

    if catalog is None:
        return NormalizedProduct(
            name=guess.name,
            brand=guess.brand,
            categories=guess.category or None,
            description=guess.description,
            nutrients=None,
            source="AI",
        )

    return NormalizedProduct(
        name=catalog.product_name or guess.name,
        brand=catalog.brands or guess.brand,
        quantity=catalog.quantity,
        categories=catalog.categories or guess.category or None,
        nutrition_grade=catalog.nutrition_grade,
        ingredients=catalog.ingredients_text,
        nutrients=extract_nutrients(catalog) if catalog.nutriments is not None else None,
        image_url=catalog.image_url,
        stores=catalog.stores,
        packaging=catalog.packaging,
        description=catalog.description or guess.description,
        source="catalog",
    )


def has_nutrition(product: NormalizedProduct) -> bool:
    return product.nutrients is not None and product.nutrients.has_values()
