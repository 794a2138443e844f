"""Authentication API endpoints."""

from fastapi import APIRouter, Security

from ...auth import Caller, get_current_user

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)

@router.get("/verify")
async def verify_token(caller: Caller = Security(get_current_user)):
    """Verify the current session token."""
    return {
        "valid": True,
        "user": caller.model_dump()
    }

# Export the router
__all__ = ['router']
