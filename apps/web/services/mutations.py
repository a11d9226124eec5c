"""
Write flows: create campaign, create campaign item, disconnect connection.

Each flow is a short chain of dependent API calls. None of them refreshes
list state on its own; callers reload whatever they display after success.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional, Sequence, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from config import settings
from services.api_gateway import ApiGateway
from services.errors import MalformedResponse, RequestFailed, ValidationFailed
from services.types import Connection, Platform

logger = logging.getLogger(__name__)

ITEM_TYPES_BY_PLATFORM: Dict[str, List[str]] = {
    Platform.INSTAGRAM.value: ["POST", "STORY"],
    Platform.LINKEDIN.value: ["TEXT", "POST"],
    Platform.TWITTER.value: ["POST"],
}


@dataclass(frozen=True)
class AssetUpload:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass
class CampaignItemDraft:
    """Raw form input for a new campaign item."""

    platform: Optional[str] = None
    type: Optional[str] = None
    asset: Optional[AssetUpload] = None
    caption: str = ""
    hashtags: str = ""
    scheduled_date: str = ""
    scheduled_time: str = ""
    connection_id: Optional[Union[int, str]] = None


def tokenize_hashtags(text: Optional[str]) -> List[str]:
    """Split free-text hashtag input on whitespace; blank input gives []."""
    return (text or "").split()


def combine_schedule(date_text: str, time_text: str, tz_name: Optional[str] = None) -> str:
    """Combine date and time inputs into a UTC ISO-8601 timestamp ending in Z."""
    if not (date_text or "").strip() or not (time_text or "").strip():
        raise ValidationFailed("Scheduled date and time are required")
    try:
        day = date.fromisoformat(date_text.strip())
        moment = time.fromisoformat(time_text.strip())
    except ValueError as exc:
        raise ValidationFailed(f"Invalid schedule: {date_text} {time_text}") from exc
    try:
        zone = ZoneInfo(tz_name or settings.SCHEDULE_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationFailed(f"Unknown schedule timezone: {tz_name or settings.SCHEDULE_TIMEZONE}") from exc
    local = datetime.combine(day, moment.replace(tzinfo=None), tzinfo=zone)
    utc = local.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def types_for_platform(platform: Optional[str]) -> List[str]:
    return list(ITEM_TYPES_BY_PLATFORM.get(str(platform or "").upper(), ["POST"]))


def accounts_for_platform(connections: Sequence[Connection], platform: Optional[str]) -> List[Connection]:
    wanted = str(platform or "").upper()
    return [conn for conn in connections if str(conn.platform).upper() == wanted]


def default_account_id(connections: Sequence[Connection], platform: Optional[str]) -> Optional[Union[int, str]]:
    """Preselect the first account on the platform, else the first account at all."""
    matching = accounts_for_platform(connections, platform)
    if matching:
        return matching[0].id
    if connections:
        return connections[0].id
    return None


async def post_with_fallback(gateway: ApiGateway, paths: Sequence[str], payload: Any) -> Any:
    """
    Try each candidate path in order.

    The first success wins. A 404 moves on to the next candidate; any other
    failure aborts immediately without touching the remaining paths.
    """
    for path in paths:
        try:
            return await gateway.post_json(path, payload)
        except RequestFailed as exc:
            if not exc.is_not_found:
                raise
            logger.info("Endpoint %s not found; trying next candidate.", path)
    raise RequestFailed(404, "Create endpoint not found")


async def create_campaign(
    gateway: ApiGateway,
    name: str,
    description: str = "",
    platforms: Optional[Sequence[str]] = None,
) -> Any:
    cleaned_name = (name or "").strip()
    if not cleaned_name:
        raise ValidationFailed("Campaign name is required")
    cleaned_platforms = [str(p).upper() for p in (platforms or []) if str(p).strip()]
    if not cleaned_platforms:
        raise ValidationFailed("At least one platform is required")
    unknown = [p for p in cleaned_platforms if p not in ITEM_TYPES_BY_PLATFORM]
    if unknown:
        raise ValidationFailed(f"Unsupported platform: {', '.join(unknown)}")

    payload = {
        "name": cleaned_name,
        "description": description or "",
        "platforms": cleaned_platforms,
    }
    return await post_with_fallback(gateway, ["/campaigns", "/campaigns/create"], payload)


async def disconnect_connection(gateway: ApiGateway, connection_id: Union[int, str]) -> Dict[str, Any]:
    result = await gateway.post_json(f"/connections/{connection_id}/disconnect")
    return result if isinstance(result, dict) else {}


def build_item_payload(draft: CampaignItemDraft, tz_name: Optional[str] = None) -> Dict[str, Any]:
    """Validate a draft and build the creation payload (minus the uploaded asset URL)."""
    platform = str(draft.platform or "").strip().upper()
    item_type = str(draft.type or "").strip().upper()
    caption = draft.caption or ""
    hashtags = tokenize_hashtags(draft.hashtags)

    missing = []
    if not platform:
        missing.append("platform")
    if not item_type:
        missing.append("type")
    if draft.asset is None or not draft.asset.content:
        missing.append("asset")
    if not caption.strip():
        missing.append("caption")
    if not hashtags:
        missing.append("hashtags")
    if not (draft.scheduled_date or "").strip():
        missing.append("date")
    if not (draft.scheduled_time or "").strip():
        missing.append("time")
    if missing:
        raise ValidationFailed(f"All fields are required (missing: {', '.join(missing)})")

    if platform not in ITEM_TYPES_BY_PLATFORM:
        raise ValidationFailed(f"Unsupported platform: {platform}")
    if item_type not in types_for_platform(platform):
        raise ValidationFailed(f"Type {item_type} is not available on {platform}")
    if draft.connection_id in (None, ""):
        raise ValidationFailed("Please select an account")

    connection_id: Union[int, str] = draft.connection_id
    if isinstance(connection_id, str) and connection_id.strip().isdigit():
        connection_id = int(connection_id.strip())

    return {
        "platform": platform,
        "type": item_type,
        "caption": caption,
        "hashtags": hashtags,
        "status": "PENDING",
        "scheduledUploadAt": combine_schedule(draft.scheduled_date, draft.scheduled_time, tz_name),
        "connectionId": connection_id,
    }


async def upload_asset(gateway: ApiGateway, asset: AssetUpload) -> str:
    result = await gateway.request(
        "POST",
        "/files/upload",
        files={"image": (asset.filename, asset.content, asset.content_type)},
    )
    url = result.get("url") if isinstance(result, dict) else None
    if not url:
        raise MalformedResponse("No URL returned from upload")
    return str(url)


async def create_campaign_item(
    gateway: ApiGateway,
    campaign_id: Union[int, str],
    draft: CampaignItemDraft,
    tz_name: Optional[str] = None,
) -> Any:
    """
    Two-phase item creation: upload the asset, then create the record.

    Validation happens before any network call. The record call is only made
    once the upload has returned an asset URL, so a failed upload never
    leaves an item behind.
    """
    payload = build_item_payload(draft, tz_name)
    image_url = await upload_asset(gateway, draft.asset)
    payload["imageUrl"] = image_url
    logger.info("Uploaded asset for campaign %s; creating item.", campaign_id)
    return await post_with_fallback(
        gateway,
        [f"/campaigns/{campaign_id}/items", f"/campaigns/{campaign_id}/items/create"],
        payload,
    )

