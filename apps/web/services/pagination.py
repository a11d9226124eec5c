"""
Cancellable paginated fetching shared by every list screen.

A controller owns one PageQuery at a time. Every change of query cancels the
fetch that was running for the previous one, and a result is only applied
when it belongs to the latest request, so completion order never decides
what is displayed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from services.cancellation import CancelToken
from services.errors import Cancelled, ClientError
from services.types import PageResult, dump_record

logger = logging.getLogger(__name__)

_KEEP = object()


@dataclass(frozen=True)
class PageQuery:
    filter: Optional[str] = None
    page: int = 0
    size: int = 10
    sort: str = "createdAt,desc"


FetchPage = Callable[[PageQuery, CancelToken], Awaitable[PageResult]]


class PaginationMode(str, Enum):
    REPLACE = "replace"  # paged table
    APPEND = "append"  # infinite scroll


@dataclass
class _Ticket:
    query: PageQuery
    token: CancelToken
    task: Optional["asyncio.Task[None]"] = None


class PaginatedListController:
    """Fetch/pagination engine parameterized by a resource fetch function."""

    def __init__(
        self,
        fetch: FetchPage,
        *,
        size: int = 10,
        sort: str = "createdAt,desc",
        filter_value: Optional[str] = None,
        mode: PaginationMode = PaginationMode.REPLACE,
        name: str = "list",
    ):
        self._fetch = fetch
        self.mode = mode
        self.name = name
        self._query = PageQuery(filter=filter_value, page=0, size=size, sort=sort)
        self._ticket: Optional[_Ticket] = None
        # Last good result and the query it answered; kept while the same listing refetches.
        self._result: Optional[PageResult] = None
        self._loaded_query: Optional[PageQuery] = None
        self._pages: Dict[int, List[Any]] = {}
        self._items: List[Any] = []
        self._error: Optional[str] = None
        self._closed = False

    # State

    @property
    def query(self) -> PageQuery:
        return self._query

    @property
    def result(self) -> Optional[PageResult]:
        return self._result

    @property
    def items(self) -> List[Any]:
        return list(self._items)

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def loading(self) -> bool:
        ticket = self._ticket
        if self._closed or ticket is None:
            return False
        return ticket.task is not None and not ticket.task.done()

    # Query changes

    def set_filter(self, value: Optional[str]) -> Optional["asyncio.Task[None]"]:
        if value == self._query.filter and self._satisfied(self._query):
            return self._current_task()
        return self._start(replace(self._query, filter=value, page=0))

    def set_page(self, page: int) -> Optional["asyncio.Task[None]"]:
        query = replace(self._query, page=max(0, int(page)))
        if self._satisfied(query):
            return self._current_task()
        return self._start(query)

    def reload(self) -> "asyncio.Task[None]":
        """Refetch the current query, superseding anything in flight."""
        return self._start(self._query)

    def reset(self, filter_value: Any = _KEEP) -> "asyncio.Task[None]":
        """Go back to page 0 (optionally of another filter) and always refetch."""
        value = self._query.filter if filter_value is _KEEP else filter_value
        return self._start(replace(self._query, filter=value, page=0))

    def ensure_loaded(self) -> Optional["asyncio.Task[None]"]:
        """Fetch the current query unless it is in flight or already answered; retries after an error."""
        if self._satisfied(self._query):
            return self._current_task()
        return self._start(self._query)

    # Navigation

    def next_page(self) -> Optional["asyncio.Task[None]"]:
        """
        Fetch the page after the last one that loaded.

        When the current page failed this refetches it, so a transient error
        never skips a page or stalls infinite scroll.
        """
        if self.loading or self._result is None or self._result.last:
            return None
        return self._start(replace(self._query, page=self._loaded_query.page + 1))

    def prev_page(self) -> Optional["asyncio.Task[None]"]:
        if self.loading or self._result is None or self._query.page <= 0:
            return None
        if self._loaded_query == self._query and self._result.first:
            return None
        return self._start(replace(self._query, page=self._query.page - 1))

    def load_more(self) -> Optional["asyncio.Task[None]"]:
        """Infinite-scroll trigger; same guards as next_page."""
        return self.next_page()

    # Lifecycle

    async def settled(self) -> None:
        """Wait until no fetch for the current query is outstanding."""
        while True:
            task = self._current_task()
            if task is None or task.done():
                return
            await asyncio.wait({task})

    def close(self) -> None:
        """Cancel outstanding work; results still in flight are dropped."""
        self._closed = True
        self._cancel_current("closed")

    def snapshot(self) -> Dict[str, Any]:
        current = self._result if self._loaded_query == self._query else None
        return {
            "filter": self._query.filter,
            "page": self._query.page,
            "size": self._query.size,
            "sort": self._query.sort,
            "mode": self.mode.value,
            "loading": self.loading,
            "error": self._error,
            "items": [dump_record(item) for item in self._items],
            "paging": current.to_dict() if current else None,
            "empty": current is not None and not self.loading and self._error is None and not self._items,
        }

    # Internals

    def _satisfied(self, query: PageQuery) -> bool:
        if query != self._query:
            return False
        return self.loading or (self._error is None and self._loaded_query == query)

    def _current_task(self) -> Optional["asyncio.Task[None]"]:
        return self._ticket.task if self._ticket else None

    def _cancel_current(self, reason: str) -> None:
        ticket = self._ticket
        if ticket is None:
            return
        ticket.token.cancel(reason)
        if ticket.task is not None and not ticket.task.done():
            ticket.task.cancel()

    def _start(self, query: PageQuery) -> "asyncio.Task[None]":
        self._cancel_current("superseded")
        self._closed = False
        if not _same_listing(query, self._query):
            self._result = None
            self._loaded_query = None
            self._pages = {}
            self._items = []
        elif self.mode is PaginationMode.REPLACE:
            self._items = []
        self._query = query
        self._error = None

        ticket = _Ticket(query=query, token=CancelToken())
        self._ticket = ticket
        ticket.task = asyncio.get_running_loop().create_task(self._run(ticket))
        return ticket.task

    async def _run(self, ticket: _Ticket) -> None:
        try:
            result = await self._fetch(ticket.query, ticket.token)
        except Cancelled:
            return
        except ClientError as exc:
            if self._is_current(ticket):
                self._error = exc.message or f"Failed to load {self.name}"
                logger.warning("%s fetch failed for %s: %s", self.name, ticket.query, self._error)
            return

        if not self._is_current(ticket):
            logger.debug("Discarding superseded %s page %s", self.name, ticket.query.page)
            return
        self._apply(ticket.query, result)

    def _is_current(self, ticket: _Ticket) -> bool:
        return (
            not self._closed
            and ticket is self._ticket
            and not ticket.token.cancelled
            and ticket.query == self._query
        )

    def _apply(self, query: PageQuery, result: PageResult) -> None:
        self._result = result
        self._loaded_query = query
        # Items are rebuilt from pages 0..n, so refetching page n replaces it instead of repeating it.
        if self.mode is PaginationMode.APPEND and query.page > 0:
            pages = {number: rows for number, rows in self._pages.items() if number < query.page}
        else:
            pages = {}
        pages[query.page] = list(result.content)
        self._pages = pages
        self._items = [row for number in sorted(pages) for row in pages[number]]


def _same_listing(a: PageQuery, b: PageQuery) -> bool:
    return a.filter == b.filter and a.size == b.size and a.sort == b.sort
