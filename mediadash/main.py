import asyncio
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mediadash.api.endpoints import health, logs
from mediadash.background_services.log_fetcher import ServiceLogFetcher
from mediadash.core.config import Settings, settings
from mediadash.core.logger import get_logger
from mediadash.core.middleware import RequestLoggingMiddleware
from mediadash.schemas.service import ServiceDescriptor
from mediadash.services.collection_supervisor import CollectionState, CollectionSupervisor, build_schedule
from mediadash.services.demo_logs import DemoLogFallback, DemoQueryService, LiveEntryInjector
from mediadash.services.log_query import QueryService
from mediadash.services.log_store import LogStore
from mediadash.services.stream_broker import StreamBroker

logger = get_logger(__name__)

def build_components(config: Settings) -> dict:
    """Wire the collection, query and stream components for one application."""
    supervisor = CollectionSupervisor(
        fetcher=ServiceLogFetcher(timeout=config.FETCH_TIMEOUT_SECONDS),
        schedule=build_schedule(config.COLLECTION_SCHEDULE, config.COLLECTION_INTERVAL_SECONDS),
        state=CollectionState(store=LogStore(capacity=config.LOG_CACHE_CAPACITY)),
    )
    query_service = QueryService(supervisor.store)
    decorators = []
    if config.DEMO_DATA_ENABLED:
        query_service = DemoQueryService(query_service)
        # Service-scoped streams bypass the query fallback, so ticks get their own
        decorators.append(DemoLogFallback())
        decorators.append(LiveEntryInjector(probability=config.LIVE_EVENT_PROBABILITY))
    stream_broker = StreamBroker(
        query_service,
        interval_seconds=config.STREAM_INTERVAL_SECONDS,
        query_limit=config.STREAM_QUERY_LIMIT,
        batch_size=config.STREAM_BATCH_SIZE,
        decorators=decorators,
    )
    return {
        "supervisor": supervisor,
        "query_service": query_service,
        "stream_broker": stream_broker,
    }

def create_application(config: Settings = settings) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        components = build_components(config)
        for name, component in components.items():
            setattr(app.state, name, component)

        services = [ServiceDescriptor(**service) for service in config.MONITORED_SERVICES]
        startup_task = None
        if services:
            startup_task = asyncio.create_task(components["supervisor"].start_collecting_all(services))
        logger.info(
            f"Log aggregation started ({config.COLLECTION_SCHEDULE} collection, "
            f"{len(services)} monitored services)",
            extra={'component': 'app'}
        )

        yield

        if startup_task is not None and not startup_task.done():
            startup_task.cancel()
        await components["stream_broker"].close_all()
        components["supervisor"].shutdown()
        logger.info("Log aggregation stopped", extra={'component': 'app'})

    app = FastAPI(
        title=config.PROJECT_NAME,
        version=config.VERSION,
        openapi_url=f"{config.API_V1_STR}/openapi.json",
        lifespan=lifespan
    )

    # Set up CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(RequestLoggingMiddleware)

    # Include routers
    app.include_router(health.router, prefix=f"{config.API_V1_STR}/health", tags=["health"])
    app.include_router(logs.router, prefix=f"{config.API_V1_STR}/logs", tags=["logs"])

    return app

app = create_application()
