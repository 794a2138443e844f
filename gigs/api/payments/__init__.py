"""Payment history endpoint."""

from fastapi import APIRouter, Depends, Security

from ...auth import Caller, get_current_user
from ...orders import OrderManager
from ..dependencies import get_order_manager
from ..errors import http_error

router = APIRouter(
    prefix="/payments",
    tags=["Payments"]
)

@router.get("")
async def get_payments(
    caller: Caller = Security(get_current_user),
    manager: OrderManager = Depends(get_order_manager)
):
    """Get payments sent and received by the caller, newest first."""
    try:
        return await manager.list_payments(caller)
    except Exception as e:
        raise http_error(e)

__all__ = ['router']
