import asyncio

import pytest

from services.errors import Cancelled, RequestFailed
from services.pagination import PageQuery, PaginatedListController, PaginationMode
from services.types import PageResult


def _page(content, number=0, total_pages=1):
    return PageResult(
        content=list(content),
        number=number,
        first=number == 0,
        last=number + 1 >= total_pages,
        total_pages=total_pages,
        total_elements=len(content),
    )


class ScriptedFetch:
    """Fetch function whose answers are keyed by (filter, page)."""

    def __init__(self, pages, total_pages=3, ignore_cancel=False):
        self.pages = pages
        self.total_pages = total_pages
        self.ignore_cancel = ignore_cancel
        self.queries = []
        self.tokens = []
        self.gates = {}
        self.failures = {}

    def gate(self, filter_value, page):
        event = asyncio.Event()
        self.gates[(filter_value, page)] = event
        return event

    def fail_once(self, filter_value, page, message="blip"):
        self.failures[(filter_value, page)] = message

    async def __call__(self, query: PageQuery, cancel_token):
        key = (query.filter, query.page)
        self.queries.append(query)
        self.tokens.append(cancel_token)
        gate = self.gates.get(key)
        while gate is not None and not gate.is_set():
            try:
                await gate.wait()
            except asyncio.CancelledError:
                # A backend that keeps going after the client gave up on it.
                if not self.ignore_cancel:
                    raise
        if not self.ignore_cancel:
            cancel_token.raise_if_cancelled()
        if key in self.failures:
            raise RequestFailed(503, self.failures.pop(key))
        return _page(self.pages[key], query.page, self.total_pages)


@pytest.mark.asyncio
async def test_initial_load_and_snapshot():
    fetch = ScriptedFetch({("ACTIVE", 0): ["a1", "a2"]})
    controller = PaginatedListController(fetch, size=2, filter_value="ACTIVE")

    controller.ensure_loaded()
    assert controller.loading is True
    await controller.settled()

    assert controller.items == ["a1", "a2"]
    assert controller.loading is False
    snapshot = controller.snapshot()
    assert snapshot["page"] == 0
    assert snapshot["paging"]["first"] is True
    assert snapshot["empty"] is False
    assert fetch.queries == [PageQuery(filter="ACTIVE", page=0, size=2, sort="createdAt,desc")]


@pytest.mark.asyncio
async def test_ensure_loaded_does_not_refetch():
    fetch = ScriptedFetch({(None, 0): ["x"]})
    controller = PaginatedListController(fetch)

    controller.ensure_loaded()
    await controller.settled()
    controller.ensure_loaded()
    controller.set_page(0)
    await controller.settled()

    assert len(fetch.queries) == 1


@pytest.mark.asyncio
async def test_late_result_of_superseded_query_is_discarded():
    stale_returned = asyncio.Event()

    async def fetch(query, cancel_token):
        if query.filter == "ACTIVE":
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                # A backend that ignores cancellation and still answers.
                stale_returned.set()
                return _page(["stale-active"])
        return _page(["completed-1"])

    controller = PaginatedListController(fetch, filter_value="ACTIVE")
    controller.ensure_loaded()
    await asyncio.sleep(0)
    controller.set_filter("COMPLETED")
    await controller.settled()
    await asyncio.wait_for(stale_returned.wait(), timeout=1)
    await asyncio.sleep(0)

    assert controller.query.filter == "COMPLETED"
    assert controller.items == ["completed-1"]


@pytest.mark.asyncio
async def test_changing_filter_cancels_previous_token_and_resets_page():
    fetch = ScriptedFetch({("ACTIVE", 0): ["a"], ("ACTIVE", 1): ["b"], ("CANCELED", 0): ["c"]})
    controller = PaginatedListController(fetch, filter_value="ACTIVE")
    controller.ensure_loaded()
    await controller.settled()
    controller.next_page()
    await controller.settled()
    assert controller.query.page == 1

    fetch.gate("CANCELED", 0)
    controller.set_filter("CANCELED")
    await asyncio.sleep(0)
    first_token = fetch.tokens[-1]
    assert fetch.queries[-1].filter == "CANCELED"
    controller.set_filter("ACTIVE")
    await controller.settled()

    assert first_token.cancelled
    assert controller.query.page == 0
    assert controller.items == ["a"]


@pytest.mark.asyncio
async def test_next_and_prev_are_guarded():
    fetch = ScriptedFetch({(None, 0): ["p0"], (None, 1): ["p1"]}, total_pages=2)
    controller = PaginatedListController(fetch)

    assert controller.next_page() is None
    controller.ensure_loaded()
    assert controller.next_page() is None  # still loading
    await controller.settled()
    assert controller.prev_page() is None  # first page

    controller.next_page()
    await controller.settled()
    assert controller.items == ["p1"]
    assert controller.next_page() is None  # last page

    controller.prev_page()
    await controller.settled()
    assert controller.items == ["p0"]
    assert [q.page for q in fetch.queries] == [0, 1, 0]


@pytest.mark.asyncio
async def test_set_page_clamps_negative_values():
    fetch = ScriptedFetch({(None, 0): ["p0"]})
    controller = PaginatedListController(fetch)
    controller.set_page(-3)
    await controller.settled()
    assert controller.query.page == 0
    assert controller.items == ["p0"]


@pytest.mark.asyncio
async def test_append_mode_accumulates_and_reset_replaces():
    fetch = ScriptedFetch(
        {(None, 0): ["post-1", "post-2"], (None, 1): ["post-3"], (None, 2): ["post-4", "post-5"]},
        total_pages=3,
    )
    controller = PaginatedListController(fetch, mode=PaginationMode.APPEND)

    controller.ensure_loaded()
    await controller.settled()
    controller.load_more()
    await controller.settled()
    controller.load_more()
    await controller.settled()
    assert controller.items == ["post-1", "post-2", "post-3", "post-4", "post-5"]
    assert controller.load_more() is None

    fetch.pages[(None, 0)] = ["post-9"]
    controller.reset()
    await controller.settled()
    assert controller.items == ["post-9"]


@pytest.mark.asyncio
async def test_append_mode_reload_replaces_the_refetched_page():
    fetch = ScriptedFetch({(None, 0): ["p0"], (None, 1): ["p1"]}, total_pages=2)
    controller = PaginatedListController(fetch, mode=PaginationMode.APPEND)
    controller.ensure_loaded()
    await controller.settled()
    controller.load_more()
    await controller.settled()

    fetch.pages[(None, 1)] = ["p1-edited"]
    controller.reload()
    await controller.settled()
    controller.reload()
    await controller.settled()

    assert controller.items == ["p0", "p1-edited"]
    assert [q.page for q in fetch.queries] == [0, 1, 1, 1]


@pytest.mark.asyncio
async def test_earlier_page_resolving_last_does_not_win():
    fetch = ScriptedFetch({("ACTIVE", 0): ["page-0"], ("ACTIVE", 1): ["page-1"]}, ignore_cancel=True)
    first_gate = fetch.gate("ACTIVE", 0)
    second_gate = fetch.gate("ACTIVE", 1)
    controller = PaginatedListController(fetch, filter_value="ACTIVE")

    controller.set_page(0)
    await asyncio.sleep(0)
    controller.set_page(1)
    await asyncio.sleep(0)
    assert [q.page for q in fetch.queries] == [0, 1]

    second_gate.set()
    await controller.settled()
    assert controller.items == ["page-1"]

    first_gate.set()
    await asyncio.sleep(0.01)

    assert controller.query.page == 1
    assert controller.items == ["page-1"]
    assert controller.snapshot()["paging"]["number"] == 1


@pytest.mark.asyncio
async def test_append_mode_keeps_items_while_next_page_loads():
    fetch = ScriptedFetch({(None, 0): ["post-1"], (None, 1): ["post-2"]}, total_pages=2)
    controller = PaginatedListController(fetch, mode=PaginationMode.APPEND)
    controller.ensure_loaded()
    await controller.settled()

    gate = fetch.gate(None, 1)
    controller.load_more()
    await asyncio.sleep(0)
    assert controller.items == ["post-1"]
    gate.set()
    await controller.settled()
    assert controller.items == ["post-1", "post-2"]


@pytest.mark.asyncio
async def test_fetch_error_sets_message_and_clears_loading():
    async def failing(query, cancel_token):
        raise RequestFailed(500, "backend down")

    controller = PaginatedListController(failing, name="campaigns")
    controller.ensure_loaded()
    await controller.settled()

    assert controller.error == "backend down"
    assert controller.items == []
    assert controller.loading is False
    assert controller.snapshot()["empty"] is False


@pytest.mark.asyncio
async def test_error_from_superseded_fetch_is_ignored():
    release = asyncio.Event()

    async def fetch(query, cancel_token):
        if query.page == 0 and query.filter == "A":
            try:
                await release.wait()
            except asyncio.CancelledError:
                raise RequestFailed(500, "late failure")
        return _page(["b-item"])

    controller = PaginatedListController(fetch, filter_value="A")
    controller.ensure_loaded()
    await asyncio.sleep(0)
    controller.set_filter("B")
    await controller.settled()
    await asyncio.sleep(0)

    assert controller.error is None
    assert controller.items == ["b-item"]


@pytest.mark.asyncio
async def test_cancelled_fetch_leaves_no_error():
    async def cancelled(query, cancel_token):
        raise Cancelled()

    controller = PaginatedListController(cancelled)
    controller.ensure_loaded()
    await controller.settled()
    assert controller.error is None


@pytest.mark.asyncio
async def test_close_drops_in_flight_results():
    fetch = ScriptedFetch({(None, 0): ["late"]})
    gate = fetch.gate(None, 0)
    controller = PaginatedListController(fetch)
    controller.ensure_loaded()
    await asyncio.sleep(0)

    controller.close()
    gate.set()
    await asyncio.sleep(0.01)

    assert controller.loading is False
    assert controller.items == []
    assert fetch.tokens[0].cancelled


@pytest.mark.asyncio
async def test_empty_page_is_flagged():
    fetch = ScriptedFetch({(None, 0): []}, total_pages=0)
    controller = PaginatedListController(fetch)
    controller.ensure_loaded()
    await controller.settled()
    assert controller.snapshot()["empty"] is True


@pytest.mark.asyncio
async def test_failed_page_can_be_retried():
    fetch = ScriptedFetch({(None, 0): ["p0"], (None, 1): ["p1"], (None, 2): ["p2"]})
    controller = PaginatedListController(fetch)
    controller.ensure_loaded()
    await controller.settled()

    fetch.fail_once(None, 1)
    controller.next_page()
    await controller.settled()
    assert controller.error == "blip"
    assert controller.query.page == 1

    controller.set_page(1)
    await controller.settled()
    assert controller.error is None
    assert controller.items == ["p1"]

    fetch.fail_once(None, 2)
    controller.next_page()
    await controller.settled()
    controller.ensure_loaded()
    await controller.settled()
    assert controller.items == ["p2"]
    assert [q.page for q in fetch.queries] == [0, 1, 1, 2, 2]


@pytest.mark.asyncio
async def test_navigation_after_an_error():
    fetch = ScriptedFetch({(None, 0): ["p0"], (None, 1): ["p1"]})
    controller = PaginatedListController(fetch)
    controller.ensure_loaded()
    await controller.settled()

    fetch.fail_once(None, 1)
    controller.next_page()
    await controller.settled()
    # next retries the failed page instead of skipping past it
    controller.next_page()
    await controller.settled()
    assert controller.items == ["p1"]

    fetch.fail_once(None, 0)
    controller.prev_page()
    await controller.settled()
    assert controller.error == "blip"
    assert controller.prev_page() is None  # already at page 0
    controller.set_filter(None)
    await controller.settled()
    assert controller.items == ["p0"]
    assert [q.page for q in fetch.queries] == [0, 1, 1, 0, 0]


@pytest.mark.asyncio
async def test_infinite_scroll_resumes_after_an_error():
    fetch = ScriptedFetch({(None, 0): ["post-1"], (None, 1): ["post-2"]}, total_pages=2)
    controller = PaginatedListController(fetch, mode=PaginationMode.APPEND)
    controller.ensure_loaded()
    await controller.settled()

    fetch.fail_once(None, 1)
    controller.load_more()
    await controller.settled()
    assert controller.error == "blip"
    assert controller.items == ["post-1"]

    assert controller.load_more() is not None
    await controller.settled()
    assert controller.error is None
    assert controller.items == ["post-1", "post-2"]
