"""eecore Backend: FastAPI application entry point."""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.routes import converters, divider, standard_values, wafer
from eecore import __version__
from eecore.catalog import default_catalog

load_dotenv()

logging.basicConfig(
    level=os.getenv("EECORE_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    if _env_flag("EECORE_WARM_CATALOGS"):
        default_catalog.warm()
        logger.info(f"Warmed standard value catalogs: {[t.value for t in default_catalog.cached_classes()]}")
    app.state.catalog = default_catalog
    yield


app = FastAPI(
    title="eecore API",
    description="Standard component values, divider pairs, converter and wafer solving",
    version=__version__,
    lifespan=lifespan,
)

# CORS: allow frontend origins
_frontend_url = os.getenv("FRONTEND_URL")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[_frontend_url] if _frontend_url else [],
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route modules
app.include_router(standard_values.router, prefix="/api", tags=["Standard Values"])
app.include_router(divider.router, prefix="/api", tags=["Divider"])
app.include_router(converters.router, prefix="/api", tags=["Converters"])
app.include_router(wafer.router, prefix="/api", tags=["Wafer"])


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "service": "eecore-backend", "version": __version__}
