"""Resource fetchers plugged into PaginatedListController."""

from __future__ import annotations

from typing import Optional, Union

from config import settings
from services.api_gateway import ApiGateway
from services.cancellation import CancelToken
from services.errors import ValidationFailed
from services.pagination import FetchPage, PageQuery, PaginatedListController, PaginationMode
from services.types import CAMPAIGN_STATUSES, Campaign, CampaignItem, PageResult, Post


def _page_params(query: PageQuery) -> dict:
    return {"page": query.page, "size": query.size, "sort": query.sort}


def normalize_campaign_status(value: Optional[str]) -> str:
    status = str(value or CAMPAIGN_STATUSES[0]).strip().upper()
    if status not in CAMPAIGN_STATUSES:
        raise ValidationFailed(f"Unknown campaign status: {value}")
    return status


def campaign_fetcher(gateway: ApiGateway) -> FetchPage:
    async def fetch(query: PageQuery, cancel_token: CancelToken) -> PageResult:
        params = {"status": query.filter, **_page_params(query)}
        payload = await gateway.get_json("/campaigns", params=params, cancel_token=cancel_token)
        return PageResult.from_payload(payload, Campaign, requested_page=query.page)

    return fetch


def campaign_item_fetcher(gateway: ApiGateway, campaign_id: Union[int, str]) -> FetchPage:
    async def fetch(query: PageQuery, cancel_token: CancelToken) -> PageResult:
        payload = await gateway.get_json(
            f"/campaigns/{campaign_id}/items",
            params=_page_params(query),
            cancel_token=cancel_token,
        )
        return PageResult.from_payload(payload, CampaignItem, requested_page=query.page)

    return fetch


def post_fetcher(gateway: ApiGateway) -> FetchPage:
    async def fetch(query: PageQuery, cancel_token: CancelToken) -> PageResult:
        payload = await gateway.get_json("/posts", params=_page_params(query), cancel_token=cancel_token)
        return PageResult.from_payload(payload, Post, requested_page=query.page)

    return fetch


def campaign_list(gateway: ApiGateway) -> PaginatedListController:
    return PaginatedListController(
        campaign_fetcher(gateway),
        size=settings.CAMPAIGN_PAGE_SIZE,
        sort=settings.DEFAULT_SORT,
        filter_value=CAMPAIGN_STATUSES[0],
        name="campaigns",
    )


def campaign_item_list(gateway: ApiGateway, campaign_id: Union[int, str]) -> PaginatedListController:
    return PaginatedListController(
        campaign_item_fetcher(gateway, campaign_id),
        size=settings.ITEM_PAGE_SIZE,
        sort=settings.DEFAULT_SORT,
        name=f"campaign {campaign_id} items",
    )


def post_feed(gateway: ApiGateway) -> PaginatedListController:
    return PaginatedListController(
        post_fetcher(gateway),
        size=settings.POST_PAGE_SIZE,
        sort=settings.DEFAULT_SORT,
        mode=PaginationMode.APPEND,
        name="posts",
    )
