"""
NutriScan API - FastAPI Main Entry

✅ LOCAL:
    cd backend
    source .venv/bin/activate
    python -m uvicorn nutriscan.main:app --reload --host 0.0.0.0 --port 8000

✅ TEST:
    curl -i http://127.0.0.1:8000/health
    curl -i http://127.0.0.1:8000/version
    curl -i -F "image=@snack.jpg" http://127.0.0.1:8000/api/analyze

✅ PRODUCTION (Render):
    Build Command:
        pip install .

    Start Command:
        python -m uvicorn nutriscan.main:app --host 0.0.0.0 --port $PORT

    Required env:
        GEMINI_API_KEY
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nutriscan.core.config import settings
from nutriscan.core.errors import NutriScanError
from nutriscan.core.logging import configure_logging

# ✅ Routers
from nutriscan.api.routes_analyze import router as analyze_router
from nutriscan.api.routes_loading import router as loading_router
from nutriscan.api.routes_meta import router as meta_router

logger = logging.getLogger(__name__)


async def nutriscan_error_handler(request: Request, exc: NutriScanError) -> JSONResponse:
    # Body is always {"error": ..., "details"?: ...}
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="NutriScan API",
        version=settings.APP_VERSION,
        description="Identify a food product from a photo and look up its nutrition facts",
    )

    # ✅ CORS
    # The web front end is served from a different origin than the API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(NutriScanError, nutriscan_error_handler)

    # ✅ Mount routers
    app.include_router(meta_router)
    app.include_router(analyze_router)
    app.include_router(loading_router)

    return app


app = create_app()
