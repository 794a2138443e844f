"""Tests for session tokens."""

from datetime import timedelta

import pytest
from jose import jwt

from gigs import auth
from gigs.auth import (
    InvalidTokenError,
    SessionExpiredError,
    create_session_token,
    verify_session_token
)
from gigs.exceptions import UnauthenticatedError

def test_session_token_claims():
    token = create_session_token(
        42,
        username='bob',
        display_name='Bob',
        pfp_url='https://example.com/bob.png',
        wallet_address='0xB0B'
    )

    caller = verify_session_token(token)

    assert caller.fid == 42
    assert caller.username == 'bob'
    assert caller.display_name == 'Bob'
    assert caller.pfp_url == 'https://example.com/bob.png'
    assert caller.wallet_address == '0xB0B'

def test_expired_token():
    token = create_session_token(42, expires_in=timedelta(seconds=-10))
    with pytest.raises(SessionExpiredError) as exc_info:
        verify_session_token(token)
    assert isinstance(exc_info.value, UnauthenticatedError)

def test_malformed_token():
    with pytest.raises(InvalidTokenError):
        verify_session_token('not-a-token')

def test_token_signed_with_other_secret():
    token = jwt.encode({'fid': 42}, 'another-secret', algorithm=auth.JWT_ALGORITHM)
    with pytest.raises(InvalidTokenError):
        verify_session_token(token)

def test_token_without_fid():
    token = jwt.encode({'username': 'bob'}, auth.JWT_SECRET, algorithm=auth.JWT_ALGORITHM)
    with pytest.raises(InvalidTokenError):
        verify_session_token(token)

def test_token_with_subject_only():
    token = jwt.encode({'sub': '42'}, auth.JWT_SECRET, algorithm=auth.JWT_ALGORITHM)
    assert verify_session_token(token).fid == 42
