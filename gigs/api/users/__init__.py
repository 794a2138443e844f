"""User profile lookup endpoint."""

from typing import List

from fastapi import APIRouter, Depends, Query

from ...exceptions import ValidationError
from ...profiles import ProfileClient
from ..dependencies import get_profile_client
from ..errors import http_error

router = APIRouter(
    prefix="/users",
    tags=["Users"]
)

def parse_fids(value: str) -> List[int]:
    """Parse a comma separated list of fids.

    Raises:
        ValidationError: If the list is empty or has a non-numeric entry
    """
    fids = []
    for part in value.split(','):
        part = part.strip()
        if not part:
            continue
        if not part.isdigit():
            raise ValidationError(f"Invalid fid: {part}")
        fids.append(int(part))
    if not fids:
        raise ValidationError("At least one fid is required")
    return fids

@router.get("")
async def get_users(
    fids: str = Query("", description="Comma separated fids"),
    client: ProfileClient = Depends(get_profile_client)
):
    """Look up display profiles. Unknown fids get placeholder profiles."""
    try:
        wanted = parse_fids(fids)
        profiles = await client.fetch_profiles(wanted)
        return {"users": [profiles[fid].model_dump() for fid in dict.fromkeys(wanted)]}
    except Exception as e:
        raise http_error(e)

__all__ = ['router', 'parse_fids']
