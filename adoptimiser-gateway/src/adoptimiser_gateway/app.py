"""
This module creates and configures the FastAPI application for the gateway.

`create_app` wires the settings, the graph query service and the sandbox
preview service together and mounts the API router. The query service owns
the Neo4j driver, so the app's lifespan closes it on shutdown. Tests pass
their own settings and services to run the app without any external system.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .api import get_router
from .config import GatewaySettings
from .query_service import GraphQueryService
from .sandbox_service import PreviewSandboxService

LOGGER = logging.getLogger(__name__)


def create_app(
    settings: Optional[GatewaySettings] = None,
    query_service: Optional[GraphQueryService] = None,
    sandbox_service: Optional[PreviewSandboxService] = None,
) -> FastAPI:
    """
    Factory function to create and configure the FastAPI application.

    Args:
        settings: Gateway settings; read from the environment when omitted.
        query_service: Graph query service; built from ``settings`` when omitted.
        sandbox_service: Sandbox preview service; built from ``settings`` when omitted.

    Returns:
        A fully configured `FastAPI` application instance.
    """
    logging.basicConfig(level=logging.INFO)

    settings = settings or GatewaySettings()
    query_service = query_service or GraphQueryService(settings)
    sandbox_service = sandbox_service or PreviewSandboxService(settings)

    if not query_service.configured:
        LOGGER.error("Missing Neo4j credentials; graph queries will fail until NEO4J_* is set.")
    if not sandbox_service.configured:
        LOGGER.error("Missing E2B_API_KEY; sandbox previews are disabled.")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        query_service.close()

    app = FastAPI(
        title="Ad Optimiser Gateway",
        description="Graph query and chart preview backends for the Ad Optimiser chat client",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.query_service = query_service
    app.state.sandbox_service = sandbox_service

    app.include_router(get_router(query_service, sandbox_service))

    return app
