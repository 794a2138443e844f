"""Tests for the profile lookup client."""

from unittest.mock import MagicMock

import pytest
import requests

from gigs.profiles import ProfileClient, placeholder_profile

API_URL = 'https://profiles.example.com/user/bulk'

def make_client(session):
    return ProfileClient(api_url=API_URL, api_key='test-key', timeout=2, session=session)

def response_with(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response

@pytest.mark.asyncio
async def test_fetch_profiles():
    session = MagicMock()
    session.get.return_value = response_with({'users': [
        {'fid': 7, 'username': 'alice', 'display_name': 'Alice', 'pfp_url': 'https://example.com/a.png'}
    ]})

    profiles = await make_client(session).fetch_profiles([7, 42])

    assert profiles[7].display_name == 'Alice'
    assert profiles[7].pfp_url == 'https://example.com/a.png'
    assert not profiles[7].placeholder
    assert profiles[42] == placeholder_profile(42)

    session.get.assert_called_once_with(
        API_URL,
        params={'fids': '7,42'},
        headers={'x-api-key': 'test-key'},
        timeout=2
    )

@pytest.mark.asyncio
async def test_fetch_profiles_without_key():
    session = MagicMock()
    client = ProfileClient(api_url=API_URL, api_key='', session=session)

    profile = await client.fetch_profile(42)

    assert profile.username == 'user42'
    assert profile.display_name == 'User 42'
    assert profile.pfp_url is None
    session.get.assert_not_called()

@pytest.mark.asyncio
@pytest.mark.parametrize("failure", [
    requests.exceptions.Timeout("timed out"),
    requests.exceptions.ConnectionError("refused"),
    requests.exceptions.HTTPError("500 Server Error"),
])
async def test_fetch_profiles_transport_errors(failure):
    session = MagicMock()
    session.get.side_effect = failure

    profiles = await make_client(session).fetch_profiles([7])

    assert profiles[7].placeholder

@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {'result': []},
    {'users': 'nope'},
    ['users'],
    {'users': [{'fid': 7, 'username': 123, 'pfp_url': 5}]},
    {'users': [{'fid': 7, 'username': 'alice', 'display_name': ['Alice']}]},
])
async def test_fetch_profiles_unexpected_payload(payload):
    session = MagicMock()
    session.get.return_value = response_with(payload)

    profiles = await make_client(session).fetch_profiles([7])

    assert profiles[7] == placeholder_profile(7)

@pytest.mark.asyncio
async def test_fetch_profiles_empty():
    session = MagicMock()
    assert await make_client(session).fetch_profiles([]) == {}
    session.get.assert_not_called()
