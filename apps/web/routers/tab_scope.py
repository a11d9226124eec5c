"""Request dependencies resolving the tab state and translating client errors."""

from typing import NoReturn

from fastapi import Depends, HTTPException, Request

from services.errors import (
    Cancelled,
    ClientError,
    MalformedResponse,
    RequestFailed,
    Unauthenticated,
    ValidationFailed,
)
from services.tab_context import TabContext


def get_tab(request: Request) -> TabContext:
    """Resolve the tab state created at startup."""
    tab = getattr(request.app.state, "tab", None)
    if tab is None:
        raise HTTPException(status_code=503, detail="Client session is not initialised.")
    return tab


def require_session(tab: TabContext = Depends(get_tab)) -> TabContext:
    """Route guard: reject before any remote call when no credential is stored."""
    if not tab.store.get():
        raise HTTPException(status_code=401, detail="Not authenticated")
    return tab


def raise_for_client_error(exc: ClientError) -> NoReturn:
    """Map a client failure onto an HTTP error for the local caller."""
    if isinstance(exc, ValidationFailed):
        raise HTTPException(status_code=422, detail=exc.message) from exc
    if isinstance(exc, Unauthenticated):
        raise HTTPException(status_code=401, detail=exc.message) from exc
    if isinstance(exc, RequestFailed):
        status = exc.status if exc.status and 400 <= exc.status < 500 else 502
        raise HTTPException(status_code=status, detail=exc.message) from exc
    if isinstance(exc, (MalformedResponse, Cancelled)):
        raise HTTPException(status_code=502, detail=exc.message) from exc
    raise HTTPException(status_code=400, detail=exc.message) from exc
