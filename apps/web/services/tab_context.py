"""Per-tab wiring of the session store, gateway and controllers."""

from __future__ import annotations

import logging
from typing import Dict, Optional, Union

from services.api_gateway import ApiGateway
from services.connection_lifecycle import ConnectionLifecycleController
from services.listings import campaign_item_list, campaign_list, post_feed
from services.pagination import PaginatedListController
from services.session_store import SessionStore

logger = logging.getLogger(__name__)


class TabContext:
    """
    Everything one browser tab keeps in memory.

    Only the session store is persisted; controllers are rebuilt from it.
    Leaving a campaign's item screen for another campaign closes the old
    controller, and logout closes all of them.
    """

    def __init__(self, store: SessionStore, gateway: ApiGateway, redirect_uri: Optional[str] = None):
        self.store = store
        self.gateway = gateway
        self._redirect_uri = redirect_uri
        self.connections = ConnectionLifecycleController(store, gateway, redirect_uri)
        self.campaigns = campaign_list(gateway)
        self.posts = post_feed(gateway)
        self._items: Dict[str, PaginatedListController] = {}

    def campaign_items(self, campaign_id: Union[int, str]) -> PaginatedListController:
        key = str(campaign_id)
        controller = self._items.get(key)
        if controller is None:
            for other in self._items.values():
                other.close()
            self._items = {key: campaign_item_list(self.gateway, campaign_id)}
            controller = self._items[key]
        return controller

    def reset(self) -> None:
        """Close every controller and start from a clean slate (logout)."""
        self.connections.cancel()
        self.campaigns.close()
        self.posts.close()
        for controller in self._items.values():
            controller.close()
        self._items = {}
        self.connections = ConnectionLifecycleController(self.store, self.gateway, self._redirect_uri)
        self.campaigns = campaign_list(self.gateway)
        self.posts = post_feed(self.gateway)
        logger.info("Tab state reset.")

    async def aclose(self) -> None:
        self.reset()
        await self.gateway.aclose()
