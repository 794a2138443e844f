"""Order API endpoints."""

from decimal import Decimal
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Security, status
from pydantic import BaseModel, Field

from ...auth import Caller, get_current_user
from ...orders import InvalidOrderError, OrderManager
from ..dependencies import get_order_manager
from ..errors import http_error

router = APIRouter(
    prefix="/orders",
    tags=["Orders"]
)

# Query type -> ledger role of the caller
ORDER_TYPES = {
    'purchased': 'buyer',
    'ordered': 'seller'
}

class CreateOrderRequest(BaseModel):
    """Request model for recording a purchase."""
    service_id: str = Field(..., description="The purchased service")
    amount: Decimal = Field(..., description="Amount paid, must equal the service price")
    currency: Optional[str] = Field(None, description="Currency paid")
    payment_tx_hash: Optional[str] = Field(None, description="Payment transaction reference")
    buyer_notes: Optional[str] = None

class UpdateOrderRequest(BaseModel):
    """Request model for seller updates to an order."""
    status: Any = None
    seller_notes: Any = None

class OrderStatusRequest(BaseModel):
    """Request model for an order status change."""
    status: Any = None

class OrderNoteRequest(BaseModel):
    """Request model for the seller's note."""
    note: Any = None

async def create_order_from_request(
    request: CreateOrderRequest,
    caller: Caller,
    manager: OrderManager
):
    """Shared handler for POST /orders and POST /purchases."""
    try:
        return await manager.create_order(
            caller,
            request.service_id,
            request.amount,
            currency=request.currency,
            tx_ref=request.payment_tx_hash,
            buyer_notes=request.buyer_notes
        )
    except Exception as e:
        raise http_error(e)

@router.get("")
async def list_orders(
    type: Optional[str] = Query(None, description="purchased or ordered"),
    caller: Caller = Security(get_current_user),
    manager: OrderManager = Depends(get_order_manager)
):
    """List the caller's purchases (type=purchased) or sales (type=ordered)."""
    try:
        if type not in ORDER_TYPES:
            raise InvalidOrderError("Invalid type parameter. Must be purchased or ordered")
        return await manager.list_orders(caller, ORDER_TYPES[type])
    except Exception as e:
        raise http_error(e)

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    caller: Caller = Security(get_current_user),
    manager: OrderManager = Depends(get_order_manager)
):
    """Record a purchase of a service.

    Returns:
        The created order, in pending status

    Raises:
        HTTPException: 404 if the service is missing, 400 if the amount,
            currency or service state is wrong, 409 if already purchased
    """
    return await create_order_from_request(request, caller, manager)

@router.get("/{order_id}")
async def get_order(
    order_id: str,
    caller: Caller = Security(get_current_user),
    manager: OrderManager = Depends(get_order_manager)
):
    """Get an order. Only its buyer and seller may read it."""
    try:
        return await manager.get_order(caller, order_id)
    except Exception as e:
        raise http_error(e)

@router.patch("/{order_id}")
async def update_order(
    order_id: str,
    request: UpdateOrderRequest,
    caller: Caller = Security(get_current_user),
    manager: OrderManager = Depends(get_order_manager)
):
    """Update an order's status and/or seller notes.

    Args:
        order_id: The order ID
        request: status and/or seller_notes
        caller: The authenticated seller

    Returns:
        Updated order details
    """
    try:
        return await manager.update_order(caller, order_id, request.model_dump(exclude_unset=True))
    except Exception as e:
        raise http_error(e)

@router.patch("/{order_id}/status")
async def update_order_status(
    order_id: str,
    request: OrderStatusRequest,
    caller: Caller = Security(get_current_user),
    manager: OrderManager = Depends(get_order_manager)
):
    """Move an order to a new status. Seller only."""
    try:
        return await manager.transition_status(caller, order_id, request.status)
    except Exception as e:
        raise http_error(e)

@router.post("/{order_id}/note")
async def set_order_note(
    order_id: str,
    request: OrderNoteRequest,
    caller: Caller = Security(get_current_user),
    manager: OrderManager = Depends(get_order_manager)
):
    """Set the seller's note on an order. An empty note clears it."""
    try:
        return await manager.set_seller_note(caller, order_id, request.note)
    except Exception as e:
        raise http_error(e)

__all__ = ['router', 'create_order_from_request', 'CreateOrderRequest', 'ORDER_TYPES']
