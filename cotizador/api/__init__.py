"""
FastAPI application factory and API package.

Run with:
    uvicorn cotizador.api:app --reload --port 8000

Or via main.py:
    python -m cotizador --serve
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cotizador.config import get_settings
from cotizador.api.routes import health_router, currency_router, profile_router
from cotizador.api.history_routes import history_router
from cotizador.api.product_routes import product_router

logger = logging.getLogger(__name__)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Invalid bodies answer 400 with the field messages."""
    messages = [err.get("msg", "") for err in exc.errors()]
    logger.warning(f"Invalid request to {request.url.path}: {messages}")
    return JSONResponse(
        status_code=400,
        content={"message": "Datos inválidos. Por favor revise los campos.", "errors": messages},
    )


def create_app() -> FastAPI:
    """Application factory — create and configure the FastAPI instance."""
    settings = get_settings()

    application = FastAPI(
        title="Cotizador API",
        description="Cost profiles, product catalog, landed-cost calculations and quote history",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS — allow the frontend (adjust origins in production)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(RequestValidationError, _validation_error_handler)

    # Register route groups
    application.include_router(health_router, tags=["Health"])
    application.include_router(currency_router, prefix="/api/currency", tags=["Currency"])
    application.include_router(profile_router, prefix="/api/costo-perfiles", tags=["Cost Profiles"])
    application.include_router(history_router, prefix="/api/calculo-historial", tags=["History"])
    application.include_router(product_router, prefix="/api/products", tags=["Products"])

    logger.info(f"{settings.app_name} API created (mock_mode={settings.mock_mode})")
    return application


# Module-level instance for `uvicorn cotizador.api:app`
app = create_app()
