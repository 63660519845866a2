"""FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from statgraph.api.routers import api_router
from statgraph.config.settings import Settings, get_settings
from statgraph.infrastructure.cache.ttl_cache import TTLCache
from statgraph.infrastructure.graph import Neo4jGraphSource, create_neo4j_driver
from statgraph.infrastructure.llm import LLMOracle, create_llm_client
from statgraph.infrastructure.logging.logger import setup_logging
from statgraph.infrastructure.queue import (
    JobQueue,
    NotificationQueue,
    create_queue_engine,
    create_session_factory,
    init_queue_schema,
)
from statgraph.orchestrator import QueryAgent
from statgraph.services.catalog import CatalogService
from statgraph.services.dashboard import DashboardAssembler
from statgraph.services.delivery import (
    CallbackSender,
    ChatNotificationConsumer,
    NotificationDispatcher,
    TelegramMessenger,
)
from statgraph.services.regions import RegionMapper
from statgraph.services.worker import TaskProcessor, WorkerPool

settings = get_settings()

setup_logging(
    level=settings.log_level,
    json_output=not settings.debug,
    silence_noisy_loggers=True,
)

logger = logging.getLogger(__name__)


def _validate_startup_config(settings: Settings) -> None:
    """Validate required configuration at startup."""
    if not settings.llm_api_key:
        logger.warning("llm_api_key is empty, pipeline stages will fail")
    if not settings.neo4j_password:
        logger.warning("neo4j_password is empty, graph queries may be rejected")
    if not settings.callback_api_key:
        logger.warning("callback_api_key is empty, callbacks are sent without credentials")
    if not settings.telegram_bot_token:
        logger.warning("telegram_bot_token is empty, chat notifications are disabled")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup and shutdown lifecycle."""
    logger.info("Starting %s %s", settings.app_name, settings.app_version)
    _validate_startup_config(settings)

    engine = create_queue_engine(settings.queue_database_url)
    await init_queue_schema(engine)
    sessions = create_session_factory(engine)
    job_queue = JobQueue(sessions, job_timeout=settings.job_timeout)
    notification_queue = NotificationQueue(
        sessions,
        max_attempts=settings.notification_max_attempts,
        backoff_base=settings.notification_backoff,
    )

    http_client = httpx.AsyncClient()
    driver = create_neo4j_driver(settings)
    source = Neo4jGraphSource(driver, timeout=settings.neo4j_timeout)
    oracle = LLMOracle(create_llm_client(settings), settings)
    catalog = CatalogService(
        source,
        cache=TTLCache(max_size=settings.catalog_cache_max_size, ttl_seconds=settings.catalog_cache_ttl),
    )
    agent = QueryAgent(oracle, catalog, DashboardAssembler(source), settings)

    consumer = None
    dispatcher = None
    if settings.telegram_bot_token:
        messenger = TelegramMessenger(http_client, settings.telegram_bot_token, settings.telegram_api_url)
        consumer = ChatNotificationConsumer(messenger, timeout=settings.chat_query_timeout)
        dispatcher = NotificationDispatcher(
            notification_queue,
            consumer.handle,
            poll_interval=settings.notification_poll_interval,
            delivery_timeout=settings.notification_timeout,
        )

    callbacks = CallbackSender(
        http_client,
        settings.callback_api_key,
        max_attempts=settings.callback_max_attempts,
        retry_delay=settings.callback_retry_delay,
        timeout=settings.callback_timeout,
    )
    processor = TaskProcessor(
        agent,
        job_queue,
        callbacks,
        notifications=notification_queue if consumer is not None else None,
        dashboard_base_url=settings.dashboard_base_url,
    )
    pool = WorkerPool(
        job_queue,
        processor,
        concurrency=settings.worker_concurrency,
        poll_interval=settings.queue_poll_interval,
        sweep_interval=settings.queue_sweep_interval,
        sweep_grace=settings.sweep_grace_seconds,
    )

    app.state.job_queue = job_queue
    app.state.notification_queue = notification_queue
    app.state.query_agent = agent
    app.state.chat_consumer = consumer
    app.state.region_mapper = RegionMapper.from_file()

    await pool.start()
    if dispatcher is not None:
        await dispatcher.start()

    yield

    logger.info("Shutting down %s", settings.app_name)
    await pool.stop()
    if dispatcher is not None:
        await dispatcher.stop()
    if consumer is not None:
        await consumer.close()
    try:
        await source.close()
        logger.info("Graph driver closed")
    except Exception as e:
        logger.error("Error closing graph driver: %s", e, exc_info=True)
    await http_client.aclose()
    await engine.dispose()
    logger.info("Queue store closed")


app = FastAPI(
    title=settings.app_name,
    description="Natural language questions over a graph statistical store, answered as dashboards",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials="*" not in settings.allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")
