"""Post insight KPIs."""

from __future__ import annotations

import re
from typing import Any, List, Optional
from urllib.parse import quote

from services.api_gateway import ApiGateway
from services.cancellation import CancelToken
from services.types import InsightMetric

HASHTAG_PATTERN = re.compile(r"#[A-Za-z0-9_]+")


def parse_hashtags(caption: Optional[str]) -> List[str]:
    """Extract #tags from a caption, in order of appearance."""
    if not caption:
        return []
    return HASHTAG_PATTERN.findall(caption)


def _metric_from_row(row: Any) -> Optional[InsightMetric]:
    if not isinstance(row, dict):
        return None
    title = row.get("title") or row.get("name")
    if not title:
        return None
    values = row.get("values")
    value: Any = "-"
    if isinstance(values, list) and values and isinstance(values[0], dict):
        value = values[0].get("value", "-")
    return InsightMetric(title=str(title), value=value, description=row.get("description") or None)


async def fetch_post_insights(
    gateway: ApiGateway,
    provider_post_id: str,
    cancel_token: Optional[CancelToken] = None,
) -> List[InsightMetric]:
    payload = await gateway.get_json(
        f"/insights/{quote(str(provider_post_id), safe='')}",
        cancel_token=cancel_token,
    )
    rows = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(rows, list):
        return []
    metrics = []
    for row in rows:
        metric = _metric_from_row(row)
        if metric is not None:
            metrics.append(metric)
    return metrics
