"""
Typed request layer for the remote SocialBug REST API.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from config import settings
from services.cancellation import CancelToken
from services.errors import Cancelled, MalformedResponse, RequestFailed, Unauthenticated
from services.session_store import SessionStore

logger = logging.getLogger(__name__)


class ApiGateway:
    """
    Builds authenticated requests, maps failures to typed errors and decodes JSON.

    The credential is read from the session store synchronously right before
    each request is sent, so a logout between two calls of a multi-step flow
    is seen by the second call.
    """

    def __init__(
        self,
        store: SessionStore,
        base_url: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.store = store
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.SOCIALBUG_API_BASE_URL,
            timeout=timeout or settings.REQUEST_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        authenticated: bool = True,
        cancel_token: Optional[CancelToken] = None,
    ) -> Any:
        """
        Issue one API call and return the decoded JSON body (None for empty bodies).

        Raises:
            Unauthenticated: credential required but absent (no request sent)
            Cancelled: the cancel token fired before sending or before decoding
            RequestFailed: non-2xx status or transport error
            MalformedResponse: 2xx with a body that is not JSON
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        headers: Dict[str, str] = {"Accept": "application/json"}
        token = self.store.get()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        elif authenticated:
            raise Unauthenticated()

        logger.debug("api_request method=%s path=%s params=%s", method, path, params)
        try:
            response = await self._client.request(
                method,
                path,
                json=json,
                params=_clean_params(params),
                files=files,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            if cancel_token is not None and cancel_token.cancelled:
                raise Cancelled() from exc
            logger.warning("api_transport_error method=%s path=%s error=%s", method, path, exc)
            raise RequestFailed(None, str(exc) or exc.__class__.__name__) from exc

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        if not response.is_success:
            message = response.text.strip() or f"{response.status_code} {response.reason_phrase}".strip()
            logger.warning(
                "api_request_failed method=%s path=%s status=%s",
                method,
                path,
                response.status_code,
            )
            raise RequestFailed(response.status_code, message)

        if not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponse(f"Could not decode response from {path}") from exc

    async def get_json(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Any:
        return await self.request("GET", path, params=params, cancel_token=cancel_token)

    async def post_json(
        self,
        path: str,
        payload: Any = None,
        *,
        authenticated: bool = True,
        cancel_token: Optional[CancelToken] = None,
    ) -> Any:
        return await self.request(
            "POST",
            path,
            json=payload,
            authenticated=authenticated,
            cancel_token=cancel_token,
        )


def _clean_params(params: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not params:
        return None
    return {key: value for key, value in params.items() if value is not None}
