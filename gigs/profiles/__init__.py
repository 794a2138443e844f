"""User profile lookup for display names and avatars.

Profiles come from a bulk user endpoint (Neynar's ``/v2/farcaster/user/bulk``
by default). Lookups are best effort: when the endpoint is not configured,
unreachable or returns something unexpected, placeholder profiles are
returned instead of failing the request.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

import requests
from pydantic import BaseModel, ValidationError

from ..config import settings_conf

logger = logging.getLogger(__name__)

class ProfileLookupError(Exception):
    """Raised when the profile endpoint cannot be used."""
    pass

class Profile(BaseModel):
    """Public display data for a fid."""
    fid: int
    username: str
    display_name: str
    pfp_url: Optional[str] = None
    placeholder: bool = False

def placeholder_profile(fid: int) -> Profile:
    """Synthesize display data for a fid with no known profile."""
    return Profile(
        fid=fid,
        username=f"user{fid}",
        display_name=f"User {fid}",
        pfp_url=None,
        placeholder=True
    )

class ProfileClient:
    """Client for the bulk profile lookup endpoint."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None
    ):
        self.api_url = api_url or settings_conf['profile_api_url']
        self.api_key = api_key if api_key is not None else settings_conf['profile_api_key']
        self.timeout = timeout or settings_conf['profile_timeout']
        self.session = session or requests.Session()
        self.session.headers['accept'] = 'application/json'

    def _request(self, fids: List[int]) -> List[Dict[str, Any]]:
        """Call the bulk endpoint.

        Raises:
            ProfileLookupError: On transport errors or an unexpected response
        """
        try:
            response = self.session.get(
                self.api_url,
                params={'fids': ','.join(str(fid) for fid in fids)},
                headers={'x-api-key': self.api_key},
                timeout=self.timeout
            )
            response.raise_for_status()
            users = response.json().get('users')
        except requests.exceptions.Timeout as e:
            raise ProfileLookupError(
                f"Profile lookup timed out after {self.timeout} seconds"
            ) from e
        except requests.exceptions.RequestException as e:
            raise ProfileLookupError(f"Profile lookup failed: {str(e)}") from e
        except (AttributeError, ValueError) as e:
            raise ProfileLookupError(f"Invalid response format: {str(e)}") from e

        if not isinstance(users, list):
            raise ProfileLookupError("Invalid response format: missing users")
        return users

    async def fetch_profiles(self, fids: Iterable[int]) -> Dict[int, Profile]:
        """Look up profiles for a set of fids.

        Args:
            fids: Farcaster ids to look up

        Returns:
            Dict mapping every requested fid to a profile, placeholders
            standing in for fids the endpoint did not return
        """
        wanted = list(dict.fromkeys(int(fid) for fid in fids))
        profiles = {fid: placeholder_profile(fid) for fid in wanted}
        if not wanted:
            return profiles

        if not self.api_key:
            logger.debug("No profile_api_key configured, using placeholder profiles")
            return profiles

        try:
            users = await asyncio.to_thread(self._request, wanted)
        except ProfileLookupError as e:
            logger.warning(f"{e}; using placeholder profiles for {wanted}")
            return profiles

        for user in users:
            try:
                fid = int(user['fid'])
            except (KeyError, TypeError, ValueError):
                continue
            if fid not in profiles:
                continue
            fallback = profiles[fid]
            try:
                profiles[fid] = Profile(
                    fid=fid,
                    username=user.get('username') or fallback.username,
                    display_name=user.get('display_name') or user.get('username') or fallback.display_name,
                    pfp_url=user.get('pfp_url')
                )
            except ValidationError as e:
                logger.warning(f"Invalid profile data for fid {fid}, using placeholder: {e}")

        return profiles

    async def fetch_profile(self, fid: int) -> Profile:
        """Look up a single profile."""
        profiles = await self.fetch_profiles([fid])
        return profiles[int(fid)]

__all__ = ['Profile', 'ProfileClient', 'ProfileLookupError', 'placeholder_profile']
