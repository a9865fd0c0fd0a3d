"""Health check endpoint."""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from support_chat.api.deps import get_service_container
from support_chat.core.container import ServiceContainer
from support_chat.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(container: ServiceContainer = Depends(get_service_container)) -> JSONResponse:
    """Report store and cache status.

    The cache is optional, so only an unreachable store makes the service
    unhealthy.
    """
    store_ok = True
    try:
        await container.conversation_store.ping()
    except Exception as e:
        logger.error(f"Conversation store health check failed: {e}")
        store_ok = False

    cache = container.cache
    body: Dict[str, Any] = {
        "status": "healthy" if store_ok else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": container.settings.app_version,
        "services": {
            "store": "connected" if store_ok else "disconnected",
            "cache": "connected" if cache.available else "unavailable",
        },
        "cache_backend": type(cache).__name__,
        "cache_stats": cache.stats.to_dict(),
        "faq_count": container.faq_knowledge_base.faq_count,
    }
    return JSONResponse(status_code=200 if store_ok else 503, content=body)
