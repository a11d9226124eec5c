"""Cooperative cancellation tokens for in-flight requests."""

from __future__ import annotations

from services.errors import Cancelled


class CancelToken:
    """One-shot flag checked at every suspension boundary of a request."""

    __slots__ = ("_cancelled", "reason")

    def __init__(self):
        self._cancelled = False
        self.reason = ""

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "superseded") -> None:
        if not self._cancelled:
            self._cancelled = True
            self.reason = reason

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise Cancelled(f"Request cancelled ({self.reason})")

    def __repr__(self) -> str:
        state = f"cancelled:{self.reason}" if self._cancelled else "active"
        return f"<CancelToken {state}>"
