"""
Campaign router: the campaign table, its items table and both create flows.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel, Field

from config import settings
from routers.tab_scope import raise_for_client_error, require_session
from services.errors import ClientError
from services.listings import normalize_campaign_status
from services.mutations import AssetUpload, CampaignItemDraft, create_campaign, create_campaign_item
from services.pagination import PaginatedListController
from services.tab_context import TabContext

router = APIRouter()


class CampaignCreateRequest(BaseModel):
    name: str
    description: str = ""
    platforms: List[str] = Field(default_factory=list)


async def _settled_view(controller: PaginatedListController):
    await controller.settled()
    return controller.snapshot()


@router.get("")
async def list_campaigns(
    status: Optional[str] = Query(default=None),
    page: Optional[int] = Query(default=None, ge=0),
    tab: TabContext = Depends(require_session),
):
    """Campaign table filtered by status (ACTIVE when omitted)."""
    controller = tab.campaigns
    try:
        if status is not None:
            controller.set_filter(normalize_campaign_status(status))
    except ClientError as exc:
        raise_for_client_error(exc)
    if page is not None:
        controller.set_page(page)
    else:
        controller.ensure_loaded()
    return await _settled_view(controller)


@router.post("/next")
async def next_campaign_page(tab: TabContext = Depends(require_session)):
    tab.campaigns.next_page()
    return await _settled_view(tab.campaigns)


@router.post("/prev")
async def prev_campaign_page(tab: TabContext = Depends(require_session)):
    tab.campaigns.prev_page()
    return await _settled_view(tab.campaigns)


@router.post("", status_code=201)
async def create_campaign_endpoint(request: CampaignCreateRequest, tab: TabContext = Depends(require_session)):
    """Create a campaign, then refresh the campaign table."""
    try:
        created = await create_campaign(tab.gateway, request.name, request.description, request.platforms)
    except ClientError as exc:
        raise_for_client_error(exc)
    tab.campaigns.reload()
    return {"campaign": created, "campaigns": await _settled_view(tab.campaigns)}


@router.get("/{campaign_id}/items")
async def list_campaign_items(
    campaign_id: str,
    page: Optional[int] = Query(default=None, ge=0),
    tab: TabContext = Depends(require_session),
):
    controller = tab.campaign_items(campaign_id)
    if page is not None:
        controller.set_page(page)
    else:
        controller.ensure_loaded()
    return await _settled_view(controller)


@router.post("/{campaign_id}/items/next")
async def next_item_page(campaign_id: str, tab: TabContext = Depends(require_session)):
    controller = tab.campaign_items(campaign_id)
    controller.next_page()
    return await _settled_view(controller)


@router.post("/{campaign_id}/items/prev")
async def prev_item_page(campaign_id: str, tab: TabContext = Depends(require_session)):
    controller = tab.campaign_items(campaign_id)
    controller.prev_page()
    return await _settled_view(controller)


@router.post("/{campaign_id}/items", status_code=201)
async def create_campaign_item_endpoint(
    campaign_id: str,
    platform: str = Form(default=""),
    item_type: str = Form(default="", alias="type"),
    caption: str = Form(default=""),
    hashtags: str = Form(default=""),
    scheduled_date: str = Form(default=""),
    scheduled_time: str = Form(default=""),
    connection_id: Optional[str] = Form(default=None),
    asset: Optional[UploadFile] = File(default=None),
    tab: TabContext = Depends(require_session),
):
    """
    Upload the asset and create the item, then refresh the items table.
    Validation errors are reported before anything is uploaded.
    """
    upload = None
    if asset is not None:
        content = await asset.read()
        upload = AssetUpload(
            filename=asset.filename or "upload",
            content=content,
            content_type=asset.content_type or "application/octet-stream",
        )
    draft = CampaignItemDraft(
        platform=platform,
        type=item_type,
        asset=upload,
        caption=caption,
        hashtags=hashtags,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        connection_id=connection_id,
    )
    try:
        created = await create_campaign_item(tab.gateway, campaign_id, draft, settings.SCHEDULE_TIMEZONE)
    except ClientError as exc:
        raise_for_client_error(exc)

    controller = tab.campaign_items(campaign_id)
    controller.reload()
    return {"item": created, "items": await _settled_view(controller)}
