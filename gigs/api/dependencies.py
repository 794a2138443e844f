"""Shared FastAPI dependencies for the routers."""

from typing import Optional

from fastapi import Depends

from ..database import RowStore, get_store
from ..listings import ListingManager
from ..orders import OrderManager
from ..profiles import ProfileClient

_profile_client: Optional[ProfileClient] = None

def get_profile_client() -> ProfileClient:
    """Get the process-wide profile client."""
    global _profile_client
    if _profile_client is None:
        _profile_client = ProfileClient()
    return _profile_client

def get_listing_manager(
    store: RowStore = Depends(get_store),
    profiles: ProfileClient = Depends(get_profile_client)
) -> ListingManager:
    return ListingManager(store, profiles)

def get_order_manager(store: RowStore = Depends(get_store)) -> OrderManager:
    return OrderManager(store)

__all__ = ['get_profile_client', 'get_listing_manager', 'get_order_manager']
