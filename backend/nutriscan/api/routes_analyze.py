import logging
from typing import Union

from fastapi import APIRouter, File, UploadFile

from nutriscan.core import gemini, matching, openfoodfacts
from nutriscan.core.errors import NutriScanError, ProcessingError
from nutriscan.core.images import ImagePayload, read_upload
from nutriscan.core.merge import has_nutrition, merge_product_data
from nutriscan.schemas.analyze import AIAnalysis, AnalyzeResponse, ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analyze"])

# Searched when the model guessed neither brand nor name
PLACEHOLDER_QUERY = "unknown"

NUTRITION_FOUND_MESSAGE = "Nutritional information is available from the Open Food Facts database."
NUTRITION_MISSING_MESSAGE = "Product found in database but nutritional information is not available."
NOT_IN_CATALOG_MESSAGE = (
    "Product not found in the Open Food Facts database. "
    "The details below are AI-generated and may be inaccurate."
)


def build_search_query(analysis: AIAnalysis) -> str:
    return " ".join(analysis.product.search_terms()).strip() or PLACEHOLDER_QUERY


async def run_analysis(image: ImagePayload) -> AnalyzeResponse:
    """
    intake -> AI analysis -> catalog search -> (re-rank) -> merge.

    Every step is awaited in turn; UpstreamAnalysisError from the vision
    call ends the request.
    """
    analysis = await gemini.analyze_product_image(image)

    query = build_search_query(analysis)
    logger.info("Identified %r; searching catalog for %r", analysis.product.name, query)
    products = await openfoodfacts.search_products(query)

    ui = analysis.ui_content.model_copy(deep=True)

    if products:
        best = await matching.choose_best_match(image, products)
        product = merge_product_data(best, analysis)

        if has_nutrition(product):
            ui.status.type = "success"
            ui.status.message = NUTRITION_FOUND_MESSAGE
        else:
            ui.status.type = "info"
            ui.status.message = NUTRITION_MISSING_MESSAGE
        ui.disclaimer.source = "catalog"
    else:
        product = merge_product_data(None, analysis)
        ui.status.type = "warning"
        ui.status.message = ui.status.message or NOT_IN_CATALOG_MESSAGE
        ui.disclaimer.source = "AI"

    return AnalyzeResponse(product_data=product, ui_content=ui)


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def analyze(image: Union[UploadFile, str, None] = File(None)):
    # A plain-text "image" field must reach read_upload so it gets the 400 body
    try:
        payload = await read_upload(image)
        return await run_analysis(payload)
    except NutriScanError:
        raise
    except Exception as e:
        logger.exception("Error processing image")
        raise ProcessingError(str(e) or type(e).__name__) from e
