"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from marketmatch.cache.registry import CacheRegistry
from marketmatch.config.environment import EnvironmentConfig
from marketmatch.config.models import AppConfig
from marketmatch.logging import get_logger
from marketmatch.persistence.store import ListingStore, SqlListingStore
from marketmatch.pipeline import MatchOrchestrator, SearchOrchestrator
from marketmatch.scheduler import SchedulerService
from marketmatch.summarizer import Summarizer, build_summarizer

from .errors import register_error_handlers
from .middleware import RequestLoggingMiddleware
from .routes import router

logger = get_logger(__name__, component="http")

OPENAPI_TAGS = [
    {"name": "System", "description": "Operational endpoints."},
    {"name": "Match", "description": "Engineer matching and directory search."},
    {"name": "Search", "description": "Multilingual listing search."},
    {"name": "Admin", "description": "Cache administration."},
]


def create_app(
    config: Optional[AppConfig] = None,
    env_config: Optional[EnvironmentConfig] = None,
    store: Optional[ListingStore] = None,
    summarizer: Optional[Summarizer] = None,
    registry: Optional[CacheRegistry] = None,
    start_scheduler: bool = True,
) -> FastAPI:
    """Build the HTTP application around one set of engine services.

    Args:
        config: Application configuration (defaults when omitted)
        env_config: Environment settings, used to build the summarizer
        store: Listing store; SqlListingStore when omitted (database must be
            initialized before the first request)
        summarizer: Recommendation summarizer; built from config when omitted
        registry: Cache registry shared by every pipeline
        start_scheduler: Run the cache sweep while the app is up

    Returns:
        Configured FastAPI application
    """
    config = config or AppConfig()
    store = store or SqlListingStore()
    registry = registry or CacheRegistry(config.cache)
    summarizer = summarizer or build_summarizer(config.summarizer, env_config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = None
        if start_scheduler:
            scheduler = SchedulerService(registry.purge_expired, config.cache.sweep_interval_seconds)
            scheduler.start()
        logger.info("HTTP service started", extra={"event": "service.started"})
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown()
            shutdown = getattr(summarizer, "shutdown", None)
            if callable(shutdown):
                shutdown()
            logger.info("HTTP service stopped", extra={"event": "service.stopped"})

    app = FastAPI(title="marketmatch", openapi_tags=OPENAPI_TAGS, lifespan=lifespan)

    app.state.config = config
    app.state.cache_registry = registry
    app.state.summarizer = summarizer
    app.state.match_orchestrator = MatchOrchestrator(store, registry, config=config, summarizer=summarizer)
    app.state.search_orchestrator = SearchOrchestrator(store, registry, config=config)

    app.add_middleware(RequestLoggingMiddleware)
    register_error_handlers(app)
    app.include_router(router)

    return app
