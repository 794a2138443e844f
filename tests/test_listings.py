"""Tests for the listings module."""

import asyncio
from unittest.mock import MagicMock

import pytest

from gigs.auth import Caller
from gigs.exceptions import ForbiddenError, NotFoundError, UnauthenticatedError, ValidationError
from gigs.listings import (
    InvalidListingError,
    InvalidPriceError,
    ListingError,
    ListingManager,
    ListingNotFoundError,
    ListingPermissionError,
    SERVICE_CATEGORIES
)
from gigs.profiles import ProfileClient

SAMPLE_SERVICE = {
    "title": "Farcaster frame development",
    "description": "I will build a custom frame for your project",
    "price": "250",
    "delivery_days": 5,
    "category": "Development",
    "tags": ["frames", "typescript", "frames"]
}

@pytest.mark.asyncio
async def test_create_listing(listing_manager, seller):
    """Test creating a new listing."""
    listing = await listing_manager.create_listing(seller, dict(SAMPLE_SERVICE))

    assert listing['id']
    assert listing['fid'] == seller.fid
    assert listing['status'] == 'active'
    assert listing['price'] == '250'
    assert listing['currency'] == 'USDC'
    assert listing['delivery_days'] == 5
    assert listing['tags'] == ['frames', 'typescript']
    assert listing['user_name'] == 'Alice'
    assert listing['user_pfp'] == 'https://example.com/alice.png'
    assert listing['wallet_address'] == '0xA11CE'
    assert listing['created_at'] is not None

@pytest.mark.asyncio
async def test_create_listing_requires_caller(listing_manager, store):
    with pytest.raises(UnauthenticatedError):
        await listing_manager.create_listing(None, dict(SAMPLE_SERVICE))
    assert store.rows('services') == []

@pytest.mark.asyncio
@pytest.mark.parametrize("price", [0, -5, "0", "abc", None, "NaN"])
async def test_create_listing_invalid_price(listing_manager, seller, store, price):
    """Test that a non-positive or non-numeric price is rejected."""
    with pytest.raises(InvalidPriceError):
        await listing_manager.create_listing(seller, {**SAMPLE_SERVICE, "price": price})
    assert store.rows('services') == []

@pytest.mark.asyncio
@pytest.mark.parametrize("days", [0, -1, 2.5, "soon", None])
async def test_create_listing_invalid_delivery_days(listing_manager, seller, days):
    with pytest.raises(InvalidListingError):
        await listing_manager.create_listing(seller, {**SAMPLE_SERVICE, "delivery_days": days})

@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["title", "description", "category"])
async def test_create_listing_requires_text_fields(listing_manager, seller, field):
    with pytest.raises(ValidationError):
        await listing_manager.create_listing(seller, {**SAMPLE_SERVICE, field: "   "})

@pytest.mark.asyncio
async def test_create_listing_currency(listing_manager, seller):
    eth = await listing_manager.create_listing(seller, {**SAMPLE_SERVICE, "currency": "eth"})
    assert eth['currency'] == 'ETH'

    other = await listing_manager.create_listing(seller, {**SAMPLE_SERVICE, "currency": "degen"})
    assert other['currency'] == 'DEGEN'

    with pytest.raises(InvalidListingError):
        await listing_manager.create_listing(seller, {**SAMPLE_SERVICE, "currency": "not a code!"})

@pytest.mark.asyncio
async def test_create_listing_rejects_unknown_fields(listing_manager, seller):
    with pytest.raises(InvalidListingError):
        await listing_manager.create_listing(seller, {**SAMPLE_SERVICE, "fid": 1})

@pytest.mark.asyncio
async def test_create_listing_placeholder_display_fields(listing_manager):
    """Callers without profile claims get placeholder display data."""
    caller = Caller(fid=1234)
    listing = await listing_manager.create_listing(caller, dict(SAMPLE_SERVICE))
    assert listing['user_name'] == 'User 1234'
    assert listing['user_pfp'] is None
    assert listing['wallet_address'] is None

@pytest.mark.asyncio
async def test_create_listing_malformed_profile(store):
    """A profile endpoint returning wrongly typed fields does not fail creation."""
    response = MagicMock()
    response.json.return_value = {'users': [{'fid': 1234, 'username': 123, 'pfp_url': 5}]}
    session = MagicMock()
    session.get.return_value = response
    profiles = ProfileClient(api_url='https://profiles.example.com', api_key='key', session=session)

    listing = await ListingManager(store, profiles).create_listing(Caller(fid=1234), dict(SAMPLE_SERVICE))

    assert listing['user_name'] == 'User 1234'
    assert listing['user_pfp'] is None

@pytest.mark.asyncio
async def test_get_listing(listing_manager, listing):
    result = await listing_manager.get_listing('L1')
    assert result['id'] == 'L1'
    assert result['price'] == '100'
    assert result['tags'] == ['logo', 'branding']

@pytest.mark.asyncio
async def test_get_nonexistent_listing(listing_manager):
    with pytest.raises(ListingNotFoundError) as exc_info:
        await listing_manager.get_listing('missing')
    assert isinstance(exc_info.value, NotFoundError)

@pytest.mark.asyncio
async def test_list_listings(listing_manager, seller, stranger, listing):
    """Active listings come newest first; inactive ones only in the owner's view."""
    newer = await listing_manager.create_listing(seller, dict(SAMPLE_SERVICE))
    paused = await listing_manager.create_listing(seller, dict(SAMPLE_SERVICE))
    await listing_manager.set_status(seller, paused['id'], 'paused')
    theirs = await listing_manager.create_listing(stranger, dict(SAMPLE_SERVICE))

    public = await listing_manager.list_listings()
    assert [l['id'] for l in public] == [theirs['id'], newer['id'], 'L1']

    owned = await listing_manager.list_listings(owner_fid=seller.fid, include_inactive=True)
    assert [l['id'] for l in owned] == [paused['id'], newer['id'], 'L1']

    owned_public = await listing_manager.list_listings(owner_fid=seller.fid)
    assert paused['id'] not in [l['id'] for l in owned_public]

@pytest.mark.asyncio
async def test_update_listing_by_owner(listing_manager, seller, listing, store):
    """Owner edits change fields and advance updated_at."""
    await asyncio.sleep(0.001)
    updated = await listing_manager.update_listing(seller, 'L1', {
        "title": "Logo and brand kit",
        "price": "150.50",
        "tags": ["logo"]
    })

    assert updated['title'] == 'Logo and brand kit'
    assert updated['price'] == '150.50'
    assert updated['tags'] == ['logo']
    assert updated['description'] == listing['description']
    assert store.rows('services')[0]['updated_at'] > listing['updated_at']

@pytest.mark.asyncio
async def test_update_listing_by_other_caller(listing_manager, stranger, listing, store):
    with pytest.raises(ListingPermissionError) as exc_info:
        await listing_manager.update_listing(stranger, 'L1', {"title": "Mine now"})
    assert isinstance(exc_info.value, ForbiddenError)
    assert store.rows('services')[0]['title'] == 'Logo design'

@pytest.mark.asyncio
async def test_update_listing_checks_existence_first(listing_manager, stranger):
    with pytest.raises(ListingNotFoundError):
        await listing_manager.update_listing(stranger, 'missing', {"status": "x"})

@pytest.mark.asyncio
@pytest.mark.parametrize("updates", [
    {"fid": 9},
    {"status": "inactive"},
    {"user_name": "Someone else"},
    {}
])
async def test_update_listing_immutable_fields(listing_manager, seller, listing, updates):
    with pytest.raises(InvalidListingError):
        await listing_manager.update_listing(seller, 'L1', updates)

@pytest.mark.asyncio
async def test_update_listing_revalidates(listing_manager, seller, listing):
    with pytest.raises(InvalidPriceError):
        await listing_manager.update_listing(seller, 'L1', {"price": "-1"})
    with pytest.raises(InvalidListingError):
        await listing_manager.update_listing(seller, 'L1', {"delivery_days": 0})

@pytest.mark.asyncio
async def test_update_listing_null_currency(listing_manager, seller, listing, store):
    """A null currency is rejected rather than reset to the default."""
    await listing_manager.update_listing(seller, 'L1', {"currency": "eth"})

    with pytest.raises(InvalidListingError):
        await listing_manager.update_listing(seller, 'L1', {"currency": None})
    assert store.rows('services')[0]['currency'] == 'ETH'

@pytest.mark.asyncio
async def test_set_status(listing_manager, seller, listing):
    """Any listing status is reachable from any other."""
    for status in ['inactive', 'paused', 'active', 'completed', 'active']:
        result = await listing_manager.set_status(seller, 'L1', status)
        assert result['status'] == status

    with pytest.raises(InvalidListingError):
        await listing_manager.set_status(seller, 'L1', 'deleted')

@pytest.mark.asyncio
async def test_set_status_by_other_caller(listing_manager, stranger, listing):
    with pytest.raises(ListingPermissionError):
        await listing_manager.set_status(stranger, 'L1', 'inactive')

@pytest.mark.asyncio
async def test_store_failure_is_wrapped(listing_manager, seller, store):
    store.fail_with = RuntimeError("connection reset")
    with pytest.raises(ListingError) as exc_info:
        await listing_manager.create_listing(seller, dict(SAMPLE_SERVICE))
    assert exc_info.value.status_code == 500

def test_categories():
    assert SERVICE_CATEGORIES[0] == 'Development'
    assert 'Other' in SERVICE_CATEGORIES
