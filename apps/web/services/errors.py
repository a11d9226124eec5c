"""Client error taxonomy shared by the gateway, controllers and flows."""

from __future__ import annotations

from typing import Optional


class ClientError(RuntimeError):
    """Base class for failures surfaced by the web client."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthenticated(ClientError):
    """No credential is available; raised before any request is sent."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class RequestFailed(ClientError):
    """The remote API rejected the call, or the transport failed (status is None)."""

    def __init__(self, status: Optional[int], message: str):
        super().__init__(message)
        self.status = status

    @property
    def is_not_found(self) -> bool:
        return self.status == 404


class MalformedResponse(ClientError):
    """A successful response whose body could not be decoded or lacks a required field."""


class Cancelled(ClientError):
    """The operation was superseded or aborted; never shown to the user."""

    def __init__(self, message: str = "Request cancelled"):
        super().__init__(message)


class ValidationFailed(ClientError):
    """A local precondition was not met (missing field, unparsable date)."""
