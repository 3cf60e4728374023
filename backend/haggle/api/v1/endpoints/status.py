"""
Status and health check endpoints.

WHAT: Health monitoring for the completion provider and the context store
WHY: Quick diagnostics for operators and clients
HOW: FastAPI endpoints calling provider ping and store stats
"""

from fastapi import APIRouter, Depends

from ...deps import get_engine
from ....core.config import settings
from ....core.engine import EngineContainer
from ....llm.types import ProviderDisabledError
from ....utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def _provider_status(engine: EngineContainer) -> dict:
    try:
        status = await engine.provider.ping()
        return {
            "available": status.available,
            "base_url": status.base_url,
            "models": status.models,
            "error": status.error,
        }
    except ProviderDisabledError as e:
        logger.warning(f"Provider status requested while disabled: {e}")
        return {"available": False, "base_url": "unknown", "models": None, "error": str(e)}


@router.get("/llm/status")
async def llm_status(engine: EngineContainer = Depends(get_engine)):
    """
    Check completion provider status.

    Returns:
        JSON with provider name and ping result
    """
    return {"provider": settings.LLM_PROVIDER, "llm": await _provider_status(engine)}


@router.get("/health")
async def health_check(engine: EngineContainer = Depends(get_engine)):
    """
    Overall application health check.

    The engine stays usable without a provider (fallback replies), so an
    unreachable provider reports "degraded", not "unhealthy".
    """
    llm = await _provider_status(engine)
    return {
        "status": "healthy" if llm["available"] else "degraded",
        "version": settings.APP_VERSION,
        "app_name": settings.APP_NAME,
        "components": {
            "llm": {"available": llm["available"], "provider": settings.LLM_PROVIDER},
            "context_store": {"active_contexts": len(engine.store)},
        },
    }


@router.get("/contexts/stats")
async def context_stats(engine: EngineContainer = Depends(get_engine)):
    """Conversation context store counters."""
    return engine.store.stats()
