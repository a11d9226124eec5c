"""
Connections router: the connections view, the authorization round trip and
account selection for item creation.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse

from routers.tab_scope import get_tab, raise_for_client_error, require_session
from services.browser import RequestLocation
from services.errors import ClientError
from services.mutations import accounts_for_platform, default_account_id, types_for_platform
from services.tab_context import TabContext
from services.types import dump_record

router = APIRouter()


@router.get("")
async def connections_view(request: Request, tab: TabContext = Depends(get_tab)):
    """
    Load the connections view.

    This is also where the provider sends the browser back after consent.
    A callback is finished first; when the URL had to be cleaned up the
    caller is redirected to the clean URL so a refresh never replays it.
    """
    location = RequestLocation(str(request.url))
    await tab.connections.resume(location)
    if location.replaced_url is not None:
        return RedirectResponse(location.replaced_url, status_code=303)

    if not tab.store.get():
        raise HTTPException(status_code=401, detail="Not authenticated")
    await tab.connections.reload_connections()
    return tab.connections.snapshot()


@router.post("/{provider}/authorize")
async def authorize(provider: str, request: Request, tab: TabContext = Depends(require_session)):
    """Start linking an account; redirects to the provider consent page."""
    location = RequestLocation(str(request.url))
    try:
        await tab.connections.start_authorization(provider, location)
    except ClientError as exc:
        raise_for_client_error(exc)

    if location.navigated_to:
        return RedirectResponse(location.navigated_to, status_code=303)
    if tab.connections.failure is not None:
        raise_for_client_error(tab.connections.failure)
    raise HTTPException(status_code=409, detail="Authorization was superseded by a newer attempt.")


@router.get("/accounts")
async def accounts(
    platform: Optional[str] = Query(default=None),
    tab: TabContext = Depends(require_session),
):
    """Accounts and item types available for a platform."""
    await tab.connections.reload_connections()
    if tab.connections.list_error:
        raise HTTPException(status_code=502, detail=tab.connections.list_error)
    connections = tab.connections.connections
    return {
        "platform": (platform or "").upper() or None,
        "types": types_for_platform(platform),
        "accounts": [dump_record(conn) for conn in accounts_for_platform(connections, platform)],
        "default_account_id": default_account_id(connections, platform),
    }


@router.post("/{connection_id}/disconnect")
async def disconnect(connection_id: str, tab: TabContext = Depends(require_session)):
    """Disconnect one account and return the reloaded list."""
    try:
        started = await tab.connections.disconnect(connection_id)
    except ClientError as exc:
        raise_for_client_error(exc)
    if not started:
        raise HTTPException(status_code=409, detail="Disconnect already in progress.")
    return tab.connections.snapshot()
