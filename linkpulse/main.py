"""FastAPI application entry point for Linkpulse Analytics."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
import structlog
from fastapi import FastAPI

from linkpulse.aggregators import DimensionalAggregator
from linkpulse.api import analytics_router, clicks_router
from linkpulse.core.config import Settings, get_settings
from linkpulse.core.database import close_db, create_engine, create_session_factory
from linkpulse.core.errors import register_error_handlers
from linkpulse.core.observability import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    setup_observability,
)
from linkpulse.schemas import Period
from linkpulse.services import (
    AnalyticsService,
    ClickRecorder,
    GeoLocation,
    GeolocationResolver,
    UserAgentClassifier,
)
from linkpulse.stores import SqlClickStore, SqlLinkStore, SqlUserStore

logger = structlog.get_logger()


def create_lifespan(settings: Settings):
    """Build the lifespan handler wiring stores and services onto ``app.state``."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # Startup
        logger.info("Starting Linkpulse Analytics", version=settings.app_version)

        engine = create_engine(settings.database_url, echo=settings.debug)
        session_factory = create_session_factory(engine)
        http_client = httpx.AsyncClient()

        link_store = SqlLinkStore(session_factory)
        user_store = SqlUserStore(session_factory)
        click_store = SqlClickStore(session_factory)

        geolocation = GeolocationResolver(
            http_client,
            endpoint=settings.active_geolocation_url,
            timeout=settings.geolocation_timeout,
            self_discovery=settings.geolocation_self_discovery,
            default_location=GeoLocation(
                country=settings.geolocation_default_country,
                city=settings.geolocation_default_city,
            ),
            geoip_database_path=settings.geoip_database_path,
        )

        app.state.click_recorder = ClickRecorder(
            link_store,
            user_store,
            click_store,
            geolocation=geolocation,
            classifier=UserAgentClassifier(settings.user_agent_strategy),
        )
        app.state.analytics_service = AnalyticsService(
            link_store,
            user_store,
            click_store,
            aggregator=DimensionalAggregator(click_store),
            default_period=Period(settings.default_period),
            page_size=settings.links_filter_quantity,
        )
        logger.info(
            "Services ready",
            environment=settings.environment,
            geolocation_url=settings.active_geolocation_url,
            user_agent_strategy=settings.user_agent_strategy,
        )

        yield

        # Shutdown
        logger.info("Shutting down Linkpulse Analytics")

        geolocation.close()
        await http_client.aclose()

        await close_db(engine)
        logger.info("Database connections closed")

    return lifespan


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the application."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Click tracking and link analytics service",
        lifespan=create_lifespan(settings),
    )

    # Set up observability (logging, tracing, metrics, error tracking)
    setup_observability(app, settings)

    # Add request middleware (order matters: RequestID first, then logging)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_error_handlers(app)

    app.include_router(clicks_router)
    app.include_router(analytics_router)

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "analytics",
            "version": settings.app_version,
        }

    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "linkpulse.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
