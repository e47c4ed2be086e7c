# Application entry point: wires the neighborhood registry, the Mapbox-backed
# discovery pipeline and the session manager into a FastAPI app.

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import uuid

from neighborhood_explorer.core.config import settings
from neighborhood_explorer.core.middleware import SessionMiddleware
from neighborhood_explorer.api.routes import router as api_router
from neighborhood_explorer.logging import configure_logging
from neighborhood_explorer.middleware.logging import LoggingMiddleware
from neighborhood_explorer.services.mapbox_client import MapboxSearchClient
from neighborhood_explorer.services.neighborhoods import registry
from neighborhood_explorer.services.poi_service import POIDiscoveryPipeline
from neighborhood_explorer.services.presentation import InMemoryPresentation
from neighborhood_explorer.services.session_manager import SessionManager

configure_logging()
logger = logging.getLogger(__name__)

# --- Application Lifecycle Management ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Application startup: v{settings.VERSION}")
    app.state.registry = registry
    logger.info(f"Neighborhood registry loaded with {len(registry)} neighborhoods.")

    if not hasattr(app.state, "session_manager"):
        pipeline = POIDiscoveryPipeline(MapboxSearchClient())
        app.state.session_manager = SessionManager(pipeline, InMemoryPresentation())
    if not settings.MAPBOX_TOKEN:
        logger.warning("MAPBOX_TOKEN is not set; clients must supply their own access token.")

    yield

    logger.info("Application shutdown.")

# --- FastAPI Application Initialization ---
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=settings.BRIEF_DESCRIPTION,
    lifespan=lifespan,
)

# --- Middleware ---
app.add_middleware(SessionMiddleware)
app.add_middleware(LoggingMiddleware)

# --- API Routes ---
app.include_router(api_router, prefix="/api")

# --- Health Check Endpoint ---
@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    return {
        "status": "ok",
        "mapbox_configured": bool(settings.MAPBOX_TOKEN),
    }

# --- Global Exception Handler (for unhandled errors) ---
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    error_id = str(uuid.uuid4())
    logger.error(f"Unhandled exception (ID: {error_id}): {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": {
                "error": "INTERNAL_SERVER_ERROR",
                "detail": "An unexpected error occurred. Please report this error ID.",
                "error_id": error_id
            }
        }
    )
