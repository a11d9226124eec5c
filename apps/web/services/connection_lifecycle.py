"""
Connection authorization lifecycle.

Drives the authorization-code round trip for linking a social account:

    IDLE -> AUTHORIZING -> (provider consent page) -> AWAITING_CALLBACK
         -> EXCHANGING -> SETTLED(success | failure)

Nothing in memory survives the trip to the provider and back, so the
callback leg is rebuilt from the session store (credential + pending
provider) and the inbound URL (``?code=...``) on every load of the
connections view.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Union

from config import connections_redirect_uri
from services.api_gateway import ApiGateway
from services.browser import BrowserLocation, query_param, strip_query_params
from services.cancellation import CancelToken
from services.errors import Cancelled, ClientError, MalformedResponse, ValidationFailed
from services.mutations import disconnect_connection
from services.session_store import SessionStore
from services.types import CONNECTABLE_PROVIDERS, Connection, dump_record

logger = logging.getLogger(__name__)

CALLBACK_PARAMS = ("code", "state", "error", "error_reason", "error_description")


class ConnectionPhase(str, Enum):
    IDLE = "idle"
    AUTHORIZING = "authorizing"
    AWAITING_CALLBACK = "awaiting_callback"
    EXCHANGING = "exchanging"
    SETTLED = "settled"


class ConnectionLifecycleController:
    """Per-tab state machine for linking and unlinking social accounts."""

    def __init__(self, store: SessionStore, gateway: ApiGateway, redirect_uri: Optional[str] = None):
        self.store = store
        self.gateway = gateway
        self.redirect_uri = redirect_uri or connections_redirect_uri()

        self.phase = ConnectionPhase.IDLE
        self.outcome: Optional[str] = None
        self.status_message = ""
        self.error: Optional[str] = None
        self.failure: Optional[ClientError] = None

        self.connections: List[Connection] = []
        self.loading = False
        self.list_error: Optional[str] = None

        self._consumed_codes: Set[str] = set()
        self._authorize_generation = 0
        self._list_token: Optional[CancelToken] = None
        self._disconnecting: Set[str] = set()

    # Authorization leg

    async def start_authorization(self, provider: str, location: BrowserLocation) -> Optional[str]:
        """
        Persist the pending provider, fetch the consent URL and navigate to it.

        Returns the consent URL, or None when the attempt failed or was
        superseded by a newer one. Failures settle the flow and clear the
        pending marker; no navigation happens.
        """
        provider_key = str(provider or "").strip().upper()
        if provider_key not in {p.value for p in CONNECTABLE_PROVIDERS}:
            raise ValidationFailed(f"Unsupported provider: {provider}")

        self._authorize_generation += 1
        generation = self._authorize_generation
        self.store.set_pending(provider_key)
        self._transition(ConnectionPhase.AUTHORIZING, "Redirecting to authorize...")

        try:
            reply = await self.gateway.get_json(
                f"/connections/{provider_key}/authorize",
                params={"redirectUri": self.redirect_uri},
            )
            url = reply.get("url") if isinstance(reply, dict) else None
            if not url:
                raise MalformedResponse("No authorization URL returned")
        except ClientError as exc:
            if generation != self._authorize_generation:
                logger.info("Superseded authorization for %s failed: %s", provider_key, exc.message)
                return None
            self.store.clear_pending()
            self._settle_failure(exc, "Failed to start authorization")
            return None

        if generation != self._authorize_generation:
            logger.info("Dropping consent URL for superseded %s authorization.", provider_key)
            return None

        logger.info("Leaving for %s consent page.", provider_key)
        self.phase = ConnectionPhase.AWAITING_CALLBACK
        location.assign(str(url))
        return str(url)

    # Callback leg

    async def resume(self, location: BrowserLocation) -> bool:
        """
        Inspect the current URL for a provider callback and finish it.

        Returns True when a code exchange was attempted on this call.
        """
        url = location.url
        cleaned_url = strip_query_params(url, CALLBACK_PARAMS)
        code = query_param(url, "code")

        if not code:
            provider_error = query_param(url, "error")
            if provider_error and self.store.get_pending():
                self.store.clear_pending()
                reason = query_param(url, "error_description") or provider_error
                self._settle_failure(ClientError(reason), "Authorization was declined")
                location.replace(cleaned_url)
            elif provider_error:
                logger.info("Ignoring provider error %r with no pending authorization.", provider_error)
                location.replace(cleaned_url)
            elif self.phase is ConnectionPhase.AWAITING_CALLBACK:
                self.phase = ConnectionPhase.IDLE
            return False

        if code in self._consumed_codes:
            logger.info("Authorization code already consumed; skipping duplicate exchange.")
            location.replace(cleaned_url)
            return False

        credential = self.store.get()
        provider = self.store.get_pending()
        if not credential or not provider:
            logger.info(
                "Ignoring authorization callback (credential=%s, pending_provider=%s).",
                bool(credential),
                provider,
            )
            self.phase = ConnectionPhase.IDLE
            location.replace(cleaned_url)
            return False

        # Marked before the first await so a second detection of the same code is a no-op.
        self._consumed_codes.add(code)
        self._transition(ConnectionPhase.EXCHANGING, "Finalizing connection...")
        try:
            await self.gateway.post_json(
                f"/connections/{provider}/callback",
                {"code": code, "redirectUri": self.redirect_uri},
            )
        except ClientError as exc:
            self._settle_failure(exc, "Failed to complete connection")
            return True
        finally:
            self.store.clear_pending()
            location.replace(cleaned_url)

        self.phase = ConnectionPhase.SETTLED
        self.outcome = "success"
        self.status_message = "Connection completed."
        logger.info("Connected %s account.", provider)
        await self.reload_connections()
        return True

    # Connection list

    async def reload_connections(self) -> List[Connection]:
        """Reload active connections; a newer reload supersedes an older one."""
        if self._list_token is not None:
            self._list_token.cancel("reloaded")
        token = CancelToken()
        self._list_token = token
        self.loading = True
        self.list_error = None

        try:
            reply = await self.gateway.get_json("/connections/active", cancel_token=token)
            content = reply.get("content") if isinstance(reply, dict) else None
            try:
                connections = [Connection.model_validate(row) for row in content] if isinstance(content, list) else []
            except ValueError as exc:
                raise MalformedResponse(f"Unexpected connection record: {exc}") from exc
        except Cancelled:
            return self.connections
        except ClientError as exc:
            if token is self._list_token:
                self.list_error = exc.message or "Failed to load connections"
                self.loading = False
            return self.connections

        if token is not self._list_token:
            return self.connections
        self.connections = connections
        self.loading = False
        return connections

    async def disconnect(self, connection_id: Union[int, str]) -> bool:
        """
        Disconnect one account, then reload the list once.

        Returns False when a disconnect for the same account is already
        running. Failures propagate and skip the reload.
        """
        key = str(connection_id)
        if key in self._disconnecting:
            return False
        self._disconnecting.add(key)
        try:
            await disconnect_connection(self.gateway, connection_id)
        finally:
            self._disconnecting.discard(key)
        await self.reload_connections()
        return True

    def is_disconnecting(self, connection_id: Union[int, str]) -> bool:
        return str(connection_id) in self._disconnecting

    def cancel(self) -> None:
        if self._list_token is not None:
            self._list_token.cancel("closed")
        self.loading = False

    def snapshot(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "outcome": self.outcome,
            "status": self.status_message,
            "error": self.error,
            "pending_provider": self.store.get_pending(),
            "loading": self.loading,
            "list_error": self.list_error,
            "connections": [dump_record(conn) for conn in self.connections],
            "empty": not self.loading and self.list_error is None and not self.connections,
        }

    def _transition(self, phase: ConnectionPhase, status: str) -> None:
        self.phase = phase
        self.outcome = None
        self.error = None
        self.failure = None
        self.status_message = status

    def _settle_failure(self, exc: ClientError, fallback: str) -> None:
        message = exc.message or fallback
        logger.warning("Connection flow failed: %s", message)
        self.phase = ConnectionPhase.SETTLED
        self.outcome = "failure"
        self.failure = exc
        self.error = message
        self.status_message = message
