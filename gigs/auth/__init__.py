"""Authentication module for Farcaster sign-in sessions.

The sign-in flow itself (Sign In With Farcaster) runs outside this service.
It hands the client a signed session token whose claims identify the caller
by fid. This module provides:
1. Session token issuing and verification
2. FastAPI dependencies resolving the caller of a request
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError, ExpiredSignatureError
from pydantic import BaseModel

from ..config import settings_conf
from ..exceptions import UnauthenticatedError

# Configure logging
logger = logging.getLogger(__name__)

# Constants
SESSION_EXPIRY_DAYS = settings_conf['session_expiry_days']
JWT_ALGORITHM = settings_conf['jwt_algorithm']
JWT_SECRET = settings_conf['jwt_secret']
if not JWT_SECRET:
    logger.warning("No jwt_secret configured, generating a random one for this process")
    JWT_SECRET = secrets.token_urlsafe(32)

class AuthError(UnauthenticatedError):
    """Base exception for authentication errors."""
    pass

class InvalidTokenError(AuthError):
    """Raised when a session token cannot be decoded or lacks a fid."""
    pass

class SessionExpiredError(AuthError):
    """Raised when a session has expired."""
    pass

class Caller(BaseModel):
    """Identity resolved from a session token."""
    fid: int
    username: Optional[str] = None
    display_name: Optional[str] = None
    pfp_url: Optional[str] = None
    wallet_address: Optional[str] = None

def create_session_token(
    fid: int,
    username: Optional[str] = None,
    display_name: Optional[str] = None,
    pfp_url: Optional[str] = None,
    wallet_address: Optional[str] = None,
    expires_in: Optional[timedelta] = None
) -> str:
    """Create a signed session token for a verified fid.

    Args:
        fid: The caller's Farcaster id
        username: Optional username claim
        display_name: Optional display name claim
        pfp_url: Optional avatar URL claim
        wallet_address: Optional connected wallet address
        expires_in: Token lifetime, defaults to SESSION_EXPIRY_DAYS

    Returns:
        Encoded JWT
    """
    expires_at = datetime.now(timezone.utc) + (expires_in or timedelta(days=SESSION_EXPIRY_DAYS))
    claims: Dict[str, Any] = {
        'sub': str(fid),
        'fid': int(fid),
        'username': username,
        'display_name': display_name,
        'pfp_url': pfp_url,
        'wallet_address': wallet_address,
        'exp': int(expires_at.timestamp())
    }
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALGORITHM)

def verify_session_token(token: str) -> Caller:
    """Verify a session token and resolve the caller.

    Args:
        token: The session token to verify

    Returns:
        The authenticated caller

    Raises:
        SessionExpiredError: If the token has expired
        InvalidTokenError: For any other verification failure
    """
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise SessionExpiredError("Session has expired")
    except JWTError as e:
        raise InvalidTokenError(f"Invalid token: {str(e)}")

    fid = payload.get('fid', payload.get('sub'))
    try:
        fid = int(fid)
    except (TypeError, ValueError):
        raise InvalidTokenError("Token does not identify a fid")

    return Caller(
        fid=fid,
        username=payload.get('username'),
        display_name=payload.get('display_name'),
        pfp_url=payload.get('pfp_url'),
        wallet_address=payload.get('wallet_address')
    )

# FastAPI security scheme; missing credentials are reported as 401 below
auth_scheme = HTTPBearer(
    auto_error=False,
    description="Session token from Farcaster sign-in"
)

async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme)
) -> Optional[Caller]:
    """FastAPI dependency resolving the caller when a token is present.

    Raises:
        HTTPException: If a token is present but invalid
    """
    if credentials is None:
        return None
    try:
        return verify_session_token(credentials.credentials)
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": e.kind, "message": str(e)},
            headers={"WWW-Authenticate": "Bearer"}
        )

async def get_current_user(
    caller: Optional[Caller] = Depends(get_optional_user)
) -> Caller:
    """FastAPI dependency for getting the authenticated caller.

    Raises:
        HTTPException: If authentication fails
    """
    if caller is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": UnauthenticatedError.kind, "message": "Authentication required"},
            headers={"WWW-Authenticate": "Bearer"}
        )
    return caller

# Export public interface
__all__ = [
    'Caller',
    'create_session_token',
    'verify_session_token',
    'get_current_user',
    'get_optional_user',
    'auth_scheme',
    'AuthError',
    'InvalidTokenError',
    'SessionExpiredError'
]
