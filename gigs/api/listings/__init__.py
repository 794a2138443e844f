"""Service catalog API endpoints."""

from decimal import Decimal
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, Security, status
from pydantic import BaseModel, ConfigDict, Field

from ...auth import Caller, get_current_user, get_optional_user
from ...listings import ListingManager, SERVICE_CATEGORIES
from ..dependencies import get_listing_manager
from ..errors import http_error

router = APIRouter(
    prefix="/services",
    tags=["Services"]
)

class CreateServiceRequest(BaseModel):
    """Request model for creating a service."""
    title: str = Field(..., description="Short title of the service")
    description: str = Field(..., description="What the buyer gets")
    price: Decimal = Field(..., description="Price in the listing currency")
    currency: Optional[str] = Field(None, description="ETH, USDC or another code, defaults to USDC")
    delivery_days: int = Field(..., description="Days to deliver after purchase")
    category: str = Field(..., description="One of /services/categories or free-form")
    tags: Optional[List[str]] = None
    wallet_address: Optional[str] = Field(None, description="Payout address, defaults to the session wallet")

class UpdateServiceRequest(BaseModel):
    """Request model for updating a service. Only given fields change."""
    model_config = ConfigDict(extra='allow')

    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    currency: Optional[str] = None
    delivery_days: Optional[int] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    wallet_address: Optional[str] = None

class ServiceStatusRequest(BaseModel):
    """Request model for changing a service's status."""
    status: Any = None

@router.get("")
async def list_services(
    fid: Optional[int] = Query(None, description="Only services owned by this fid"),
    caller: Optional[Caller] = Depends(get_optional_user),
    manager: ListingManager = Depends(get_listing_manager)
):
    """List active services, or one owner's services.

    Owners listing their own services also see paused, completed and
    inactive ones.
    """
    try:
        include_inactive = fid is not None and caller is not None and caller.fid == fid
        return await manager.list_listings(owner_fid=fid, include_inactive=include_inactive)
    except Exception as e:
        raise http_error(e)

@router.get("/categories")
async def list_categories():
    """Get the suggested service categories."""
    return {"categories": SERVICE_CATEGORIES}

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_service(
    request: CreateServiceRequest,
    caller: Caller = Security(get_current_user),
    manager: ListingManager = Depends(get_listing_manager)
):
    """Create a new service owned by the caller."""
    try:
        return await manager.create_listing(caller, request.model_dump(exclude_none=True))
    except Exception as e:
        raise http_error(e)

@router.get("/{service_id}")
async def get_service(
    service_id: str,
    manager: ListingManager = Depends(get_listing_manager)
):
    """Get a service by ID."""
    try:
        return await manager.get_listing(service_id)
    except Exception as e:
        raise http_error(e)

@router.put("/{service_id}")
async def update_service(
    service_id: str,
    request: UpdateServiceRequest,
    caller: Caller = Security(get_current_user),
    manager: ListingManager = Depends(get_listing_manager)
):
    """Update a service's fields.

    Args:
        service_id: The service ID
        request: Fields to change
        caller: The authenticated owner

    Returns:
        Updated service details

    Raises:
        HTTPException: 404 if missing, 403 if not the owner, 400 on invalid fields
    """
    try:
        return await manager.update_listing(
            caller,
            service_id,
            {**request.model_dump(exclude_unset=True), **(request.model_extra or {})}
        )
    except Exception as e:
        raise http_error(e)

@router.patch("/{service_id}")
async def set_service_status(
    service_id: str,
    request: ServiceStatusRequest,
    caller: Caller = Security(get_current_user),
    manager: ListingManager = Depends(get_listing_manager)
):
    """Activate, pause, complete or deactivate a service."""
    try:
        return await manager.set_status(caller, service_id, request.status)
    except Exception as e:
        raise http_error(e)

__all__ = ['router']
