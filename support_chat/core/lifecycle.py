"""Lifecycle management for the application."""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from support_chat.core.config import Settings
from support_chat.core.container import ServiceContainer, create_container
from support_chat.core.logging import get_logger

logger = get_logger(__name__)


def build_lifespan(settings: Settings, container: Optional[ServiceContainer] = None):
    """Create a lifespan handler owning one service container."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.app_name}...")

        service_container = container or create_container()
        await service_container.initialize(settings)

        # Route dependencies read the container from app state
        app.state.container = service_container
        logger.info(f"{settings.app_name} started successfully")

        try:
            yield
        finally:
            logger.info(f"Shutting down {settings.app_name}...")
            await service_container.shutdown()
            logger.info(f"{settings.app_name} shut down")

    return lifespan
