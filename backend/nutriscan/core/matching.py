import logging
from typing import List, Optional, Sequence

from nutriscan.core import gemini
from nutriscan.core.images import ImagePayload, fetch_image
from nutriscan.schemas.catalog import CatalogProduct

logger = logging.getLogger(__name__)


async def rank_candidates(image: ImagePayload, candidates: Sequence[CatalogProduct]) -> Optional[CatalogProduct]:
    """
    Ask the vision model which candidate looks most like the upload.

    Returns None when nothing can be compared or the model's answer is
    unusable; never raises.
    """
    compared: List[CatalogProduct] = []
    images: List[ImagePayload] = []
    for candidate in candidates:
        if not candidate.image_url:
            continue
        payload = await fetch_image(candidate.image_url)
        if payload is None:
            continue
        compared.append(candidate)
        images.append(payload)

    if not images:
        return None

    try:
        index = await gemini.rank_by_similarity(image, images)
    except Exception as e:
        logger.warning("Visual re-ranking failed: %s", e)
        return None

    if index is None:
        return None
    return compared[index]


async def choose_best_match(image: ImagePayload, candidates: Sequence[CatalogProduct]) -> CatalogProduct:
    """Best visual match, or the first candidate whenever re-ranking can't decide."""
    if not candidates:
        raise ValueError("choose_best_match needs at least one candidate")

    if not any(c.image_url for c in candidates):
        return candidates[0]

    best = await rank_candidates(image, candidates)
    return best if best is not None else candidates[0]
