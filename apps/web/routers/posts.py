"""
Posts router: infinite-scroll post grid and per-post insights.
"""

from fastapi import APIRouter, Depends

from routers.tab_scope import raise_for_client_error, require_session
from services.errors import ClientError
from services.insights import fetch_post_insights, parse_hashtags
from services.tab_context import TabContext
from services.types import dump_record

router = APIRouter()


@router.get("")
async def list_posts(tab: TabContext = Depends(require_session)):
    """First page of the post grid; later pages come from /posts/more."""
    tab.posts.ensure_loaded()
    await tab.posts.settled()
    return tab.posts.snapshot()


@router.post("/more")
async def load_more_posts(tab: TabContext = Depends(require_session)):
    tab.posts.load_more()
    await tab.posts.settled()
    return tab.posts.snapshot()


@router.get("/{provider_post_id}/insights")
async def post_insights(provider_post_id: str, tab: TabContext = Depends(require_session)):
    """KPIs for one published post, plus the hashtags found in its caption."""
    try:
        metrics = await fetch_post_insights(tab.gateway, provider_post_id)
    except ClientError as exc:
        raise_for_client_error(exc)

    post = next((p for p in tab.posts.items if p.provider_post_id == provider_post_id), None)
    return {
        "provider_post_id": provider_post_id,
        "post": dump_record(post) if post is not None else None,
        "hashtags": parse_hashtags(post.caption if post is not None else None),
        "metrics": [dump_record(metric) for metric in metrics],
    }
