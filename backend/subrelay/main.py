"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from subrelay import __version__
from subrelay.api.v1.routes import cache, jobs, providers
from subrelay.config import settings
from subrelay.core.cache import TranslationCache
from subrelay.core.translation import CheckpointManager, JobRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup: shared cache handle, checkpoint store and job registry
    translation_cache = TranslationCache(
        settings.cache_database_url,
        busy_timeout_ms=settings.cache_busy_timeout_ms,
        candidate_limit=settings.fuzzy_candidate_limit,
        tokens_per_entry=settings.cache_tokens_per_entry,
        usd_per_million_tokens=settings.cache_usd_per_million_tokens,
    )
    await translation_cache.initialize()

    app.state.cache = translation_cache
    app.state.checkpoints = CheckpointManager(settings.checkpoint_dir)
    app.state.jobs = JobRegistry()
    logger.info(f"[App] Checkpoints stored in {settings.checkpoint_dir}")

    yield

    # Shutdown: finish pending usage refreshes and release connections
    await translation_cache.close()


app = FastAPI(
    title=settings.app_name,
    description="Batch subtitle translation with caching and resumable jobs",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(jobs.router, prefix="/api/v1", tags=["jobs"])
app.include_router(cache.router, prefix="/api/v1", tags=["cache"])
app.include_router(providers.router, prefix="/api/v1", tags=["providers"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Subtitle Relay API", "version": __version__}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
