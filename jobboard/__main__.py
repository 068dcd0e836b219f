import logging
import time
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
import uvicorn

from jobboard.config import Config, load_settings
from jobboard.delivery.web import StateWebHandler
from jobboard.ingest import ApiClient, JobSearchClient, JobSearchService, LocationSuggester, SearchCache
from jobboard.state import LocalStateManager

logger = logging.getLogger("jobboard")


class ResponseTimeMiddleware(BaseHTTPMiddleware):
    """Middleware adding the handling time to every response."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response


def build_api(config: Config, manager: LocalStateManager) -> ApiClient:
    api_config = config.get_api_config()
    return ApiClient(api_config["base_url"], manager.storage, timeout=api_config["timeout"])


def build_search_service(config: Config, manager: LocalStateManager) -> JobSearchService:
    """Job search backed by the remote aggregation service."""
    api = build_api(config, manager)
    settings = manager.settings
    cache = SearchCache(
        stale_after=timedelta(minutes=settings.stale_minutes),
        expire_after=timedelta(minutes=settings.cache_minutes),
    )
    return JobSearchService(JobSearchClient(api).search_jobs, cache=cache)


def build_location_suggester(config: Config, manager: LocalStateManager) -> LocationSuggester:
    api = build_api(config, manager)
    return LocationSuggester(JobSearchClient(api).search_locations, delay=manager.settings.debounce_ms / 1000)


def create_app(manager: Optional[LocalStateManager] = None,
               search_service: Optional[JobSearchService] = None,
               config: Optional[Config] = None,
               suggester: Optional[LocationSuggester] = None) -> FastAPI:
    """Create and configure the FastAPI app."""
    config = config or Config()
    if manager is None:
        storage_config = config.get_storage_config()
        settings = load_settings(storage_config['settings_file'])
        manager = LocalStateManager.from_url(storage_config['url'], settings, echo=storage_config['echo'])
    if search_service is None:
        search_service = build_search_service(config, manager)
    if suggester is None:
        suggester = build_location_suggester(config, manager)

    app = FastAPI(
        title="JobBoard API",
        version="1.0",
        description="Saved jobs, comparison, search history and browsing for the job board client"
    )
    app.add_middleware(ResponseTimeMiddleware)
    StateWebHandler(app, manager, search_service, suggester)

    logger.info("JobBoard API ready, documentation available at /docs")
    return app


def main() -> None:
    config = Config()
    logging.basicConfig(level=config.get_log_level())
    web_config = config.get_web_config()
    app = create_app(config=config)
    uvicorn.run(app, host=web_config['host'], port=web_config['port'])


if __name__ == "__main__":
    main()
