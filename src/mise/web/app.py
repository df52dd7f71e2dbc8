"""
Mise Web - FastAPI application.

Serves the recipe import API under /api plus a health check.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mise import __version__
from mise.config import settings, setup_logging
from mise.web.recipe_import_routes import router as recipe_import_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Mise", version=__version__)


@app.on_event("startup")
async def startup_event():
    """Configure logging and report what is enabled."""
    setup_logging()
    logger.info("Mise starting up...")
    logger.info(f"  Environment: {settings.mise_env}")
    logger.info(f"  AI fallback: {'configured' if settings.openai_api_key else 'no OPENAI_API_KEY'}")
    logger.info(f"  Import log: {'on' if settings.mise_log_imports else 'off'} (Supabase: {settings.supabase_enabled})")


# CORS middleware for the frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",  # Vite dev server
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(recipe_import_router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
