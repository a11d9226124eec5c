"""Wire records returned by the SocialBug API."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field

from services.errors import MalformedResponse


class Platform(str, Enum):
    INSTAGRAM = "INSTAGRAM"
    LINKEDIN = "LINKEDIN"
    TWITTER = "TWITTER"


CONNECTABLE_PROVIDERS = (Platform.INSTAGRAM, Platform.LINKEDIN)
CAMPAIGN_STATUSES = ("ACTIVE", "COMPLETED", "CANCELED")


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Connection(_Record):
    id: Union[int, str]
    platform: str
    username: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    profile_picture_url: Optional[str] = Field(default=None, alias="profilePictureUrl")
    status: Optional[str] = None
    expires_at: Optional[str] = Field(default=None, alias="expiresAt")
    external_user_id: Optional[str] = Field(default=None, alias="externalUserId")

    @property
    def label(self) -> str:
        return self.display_name or self.username or str(self.external_user_id or self.id)


class Campaign(_Record):
    id: Union[int, str]
    name: str = ""
    description: Optional[str] = None
    platforms: List[str] = Field(default_factory=list)
    status: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")


class CampaignItem(_Record):
    id: Union[int, str]
    platform: Optional[str] = None
    type: Optional[str] = None
    caption: Optional[str] = None
    hashtags: List[str] = Field(default_factory=list)
    status: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    scheduled_upload_at: Optional[str] = Field(default=None, alias="scheduledUploadAt")
    created_at: Optional[str] = Field(default=None, alias="createdAt")


class Post(_Record):
    id: Union[int, str]
    provider_post_id: Optional[str] = Field(default=None, alias="providerPostId")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    caption: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")


class InsightMetric(_Record):
    title: str
    value: Any = "-"
    description: Optional[str] = None


@dataclass(frozen=True)
class PageResult:
    """One page of records plus the paging metadata that came with it."""

    content: List[Any] = field(default_factory=list)
    number: int = 0
    first: bool = True
    last: bool = True
    total_pages: int = 0
    total_elements: int = 0

    @classmethod
    def from_payload(
        cls,
        payload: Any,
        record_type: Optional[Type[BaseModel]] = None,
        requested_page: int = 0,
    ) -> "PageResult":
        if not isinstance(payload, dict):
            raise MalformedResponse("Page response is not an object")
        raw_content = payload.get("content")
        if raw_content is None:
            raw_content = []
        if not isinstance(raw_content, list):
            raise MalformedResponse("Page response content is not a list")

        content: List[Any] = raw_content
        if record_type is not None:
            try:
                content = [record_type.model_validate(row) for row in raw_content]
            except ValueError as exc:
                raise MalformedResponse(f"Unexpected record in page response: {exc}") from exc

        number = _as_int(payload.get("number"), requested_page)
        total_pages = _as_int(payload.get("totalPages"), 0)
        total_elements = _as_int(payload.get("totalElements"), len(content))
        first = payload.get("first")
        last = payload.get("last")
        return cls(
            content=content,
            number=number,
            first=bool(first) if first is not None else number == 0,
            last=bool(last) if last is not None else number + 1 >= total_pages,
            total_pages=total_pages,
            total_elements=total_elements,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "first": self.first,
            "last": self.last,
            "total_pages": self.total_pages,
            "total_elements": self.total_elements,
        }


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def dump_record(record: Any) -> Any:
    if isinstance(record, BaseModel):
        return record.model_dump(mode="json")
    return record
