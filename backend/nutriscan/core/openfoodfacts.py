import logging
from typing import Any, Dict, Iterator, List

import httpx

from nutriscan.core.config import settings
from nutriscan.schemas.catalog import CatalogProduct

logger = logging.getLogger(__name__)

SEARCH_PATH = "/cgi/search.pl"

# Only what the merge step reads; keeps responses small
SEARCH_FIELDS = ",".join(
    [
        "product_name",
        "brands",
        "quantity",
        "categories",
        "nutrition_grades",
        "nutrition_grade_fr",
        "ingredients_text",
        "image_url",
        "image_front_url",
        "stores",
        "packaging",
        "generic_name",
        "nutriments",
    ]
)

MAX_ATTEMPTS = 3


def fallback_queries(query: str, attempts: int = MAX_ATTEMPTS) -> Iterator[str]:
    """
    Lazily yield the search ladder: full query, first two words, first word.

    Guessed brand+name strings are often too specific for a token search,
    so each step is broader. A step identical to an earlier one is skipped.
    """
    words = query.split()
    ladder = [" ".join(words), " ".join(words[:2]), " ".join(words[:1])]

    seen = set()
    for q in ladder[:attempts]:
        if not q or q in seen:
            continue
        seen.add(q)
        yield q


async def product_search(q: str, page_size: int = 0) -> Dict[str, Any]:
    """
    Calls the Open Food Facts full-text search and returns the raw JSON response.
    Raises ValueError on transport or HTTP errors.
    """
    params: Dict[str, Any] = {
        "search_terms": q,
        "search_simple": 1,
        "action": "process",
        "json": 1,
        "page_size": page_size or settings.OFF_PAGE_SIZE,
        "fields": SEARCH_FIELDS,
    }
    url = settings.OFF_BASE_URL.rstrip("/") + SEARCH_PATH

    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
        r = await client.get(url, params=params, headers={"User-Agent": settings.OFF_USER_AGENT})
        try:
            r.raise_for_status()
        except httpx.HTTPStatusError:
            raise ValueError(f"Open Food Facts request failed: {r.status_code}\nBODY:\n{r.text[:500]}")

        data = r.json()

    if not isinstance(data, dict):
        raise ValueError("Open Food Facts returned an unexpected payload")

    return data


async def search_products(query: str) -> List[CatalogProduct]:
    """
    Run the fallback ladder and return the products of the first attempt
    that finds anything.

    Never raises: a failed attempt is logged and the next one tried, and
    total failure is an empty list. The caller still has the AI guess.
    """
    for i, q in enumerate(fallback_queries(query), start=1):
        try:
            data = await product_search(q)
        except Exception as e:
            logger.warning("Catalog search attempt %d (%r) failed: %s", i, q, e)
            continue

        raw_products = data.get("products") or []
        products = [CatalogProduct.from_off(p) for p in raw_products if isinstance(p, dict)]
        if products:
            logger.info("Catalog search attempt %d (%r) found %d product(s)", i, q, len(products))
            return products

        logger.info("Catalog search attempt %d (%r) found nothing", i, q)

    return []
