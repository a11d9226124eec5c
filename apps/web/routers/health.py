"""
Health check endpoints.
"""

from fastapi import APIRouter, Depends

from config import settings
from routers.tab_scope import get_tab
from services.tab_context import TabContext

router = APIRouter()


@router.get("/health")
async def health_check(tab: TabContext = Depends(get_tab)):
    """
    Health check endpoint.
    Reports whether a session is stored and which API the client talks to.
    """
    return {
        "status": "healthy",
        "api_base_url": settings.SOCIALBUG_API_BASE_URL,
        "authenticated": bool(tab.store.get()),
        "pending_provider": tab.store.get_pending(),
    }


@router.get("/health/live")
async def liveness_check():
    """Liveness check."""
    return {"alive": True}
