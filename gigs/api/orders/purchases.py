"""Purchase endpoints used by clients before and after paying."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Security, status

from ...auth import Caller, get_current_user
from ...orders import OrderManager, OrderPermissionError
from ..dependencies import get_order_manager
from ..errors import http_error
from . import CreateOrderRequest, create_order_from_request

router = APIRouter(
    prefix="/purchases",
    tags=["Orders"]
)

@router.get("")
async def get_purchases(
    service_id: Optional[str] = Query(None, description="Check for a purchase of this service"),
    buyer_fid: Optional[int] = Query(None, description="Must be the caller's own fid"),
    caller: Caller = Security(get_current_user),
    manager: OrderManager = Depends(get_order_manager)
):
    """Check whether the caller already bought a service, or list their purchases.

    With service_id the response is ``{"purchased": bool, "order": order or null}``
    so clients can send a returning buyer to the existing order instead of
    paying twice.
    """
    try:
        if buyer_fid is not None and buyer_fid != caller.fid:
            raise OrderPermissionError("You can only view your own purchases")

        if service_id is not None:
            order = await manager.find_purchase(caller.fid, service_id)
            return {"purchased": order is not None, "order": order}

        return await manager.list_orders(caller, 'buyer')
    except Exception as e:
        raise http_error(e)

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_purchase(
    request: CreateOrderRequest,
    caller: Caller = Security(get_current_user),
    manager: OrderManager = Depends(get_order_manager)
):
    """Record a purchase of a service. Same as POST /orders."""
    return await create_order_from_request(request, caller, manager)

__all__ = ['router']
