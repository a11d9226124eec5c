"""
Account router: login, registration, logout and session status.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from routers.tab_scope import get_tab, raise_for_client_error
from services import account
from services.errors import ClientError
from services.tab_context import TabContext

router = APIRouter()


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str


class SessionResponse(BaseModel):
    authenticated: bool
    pending_provider: str | None = None


def _session(tab: TabContext) -> SessionResponse:
    return SessionResponse(
        authenticated=bool(tab.store.get()),
        pending_provider=tab.store.get_pending(),
    )


@router.post("/login", response_model=SessionResponse)
async def login(request: LoginRequest, tab: TabContext = Depends(get_tab)):
    """Exchange credentials for a bearer token and store it."""
    try:
        await account.login(tab.gateway, tab.store, request.email, request.password)
    except ClientError as exc:
        raise_for_client_error(exc)
    tab.reset()
    return _session(tab)


@router.post("/register", response_model=SessionResponse)
async def register(request: RegisterRequest, tab: TabContext = Depends(get_tab)):
    """Create an account and store the returned token."""
    try:
        await account.register(tab.gateway, tab.store, request.name, request.email, request.password)
    except ClientError as exc:
        raise_for_client_error(exc)
    tab.reset()
    return _session(tab)


@router.post("/logout", response_model=SessionResponse)
async def logout(tab: TabContext = Depends(get_tab)):
    """Clear the stored session and cancel every outstanding fetch."""
    account.logout(tab.store)
    tab.reset()
    return _session(tab)


@router.get("/session", response_model=SessionResponse)
async def session_status(tab: TabContext = Depends(get_tab)):
    return _session(tab)
