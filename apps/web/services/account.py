"""Login, registration and logout: one-shot calls that populate the session store."""

from __future__ import annotations

import logging
from typing import Any

from services.api_gateway import ApiGateway
from services.errors import MalformedResponse, ValidationFailed
from services.session_store import SessionStore

logger = logging.getLogger(__name__)


def _require(value: str, label: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationFailed(f"{label} is required")
    return cleaned


def _extract_token(reply: Any) -> str:
    token = reply.get("token") if isinstance(reply, dict) else None
    if not token:
        raise MalformedResponse("No token returned")
    return str(token)


async def login(gateway: ApiGateway, store: SessionStore, email: str, password: str) -> str:
    payload = {"email": _require(email, "Email"), "password": _require(password, "Password")}
    reply = await gateway.post_json("/auth/login", payload, authenticated=False)
    token = _extract_token(reply)
    store.set(token)
    logger.info("Signed in as %s", payload["email"])
    return token


async def register(gateway: ApiGateway, store: SessionStore, name: str, email: str, password: str) -> str:
    payload = {
        "name": _require(name, "Name"),
        "email": _require(email, "Email"),
        "password": _require(password, "Password"),
    }
    reply = await gateway.post_json("/auth/register", payload, authenticated=False)
    token = _extract_token(reply)
    store.set(token)
    logger.info("Registered %s", payload["email"])
    return token


def logout(store: SessionStore) -> None:
    """Drop the credential and any half-finished authorization."""
    store.clear()
    store.clear_pending()
