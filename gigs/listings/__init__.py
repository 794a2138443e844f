"""Listings module for managing marketplace services.

This module provides functionality for:
- Creating services owned by the caller
- Reading and listing services
- Owner-only edits and status changes (services are never hard-deleted)
"""

import logging
import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from ..auth import Caller
from ..database import RowStore, get_store
from ..exceptions import (
    MarketplaceError, ForbiddenError, NotFoundError, UnauthenticatedError, ValidationError
)
from ..formatting import decimal_str, isoformat
from ..profiles import ProfileClient

logger = logging.getLogger(__name__)

TABLE = 'services'

# User-mutable fields for services
MUTABLE_FIELDS = {
    'title',
    'description',
    'price',
    'currency',
    'delivery_days',
    'category',
    'tags',
    'wallet_address'
}

LISTING_STATUSES = ('active', 'paused', 'completed', 'inactive')

KNOWN_CURRENCIES = ('ETH', 'USDC')
DEFAULT_CURRENCY = 'USDC'
_CURRENCY_CODE = re.compile(r'^[A-Z0-9]{2,16}$')

SERVICE_CATEGORIES = [
    'Development',
    'Design',
    'Marketing',
    'Writing',
    'Business',
    'Finance',
    'Music',
    'Lifestyle',
    'Other'
]

class ListingError(MarketplaceError):
    """Base exception for listing operations."""
    pass

class ListingNotFoundError(ListingError, NotFoundError):
    """Raised when a listing is not found."""
    pass

class ListingPermissionError(ListingError, ForbiddenError):
    """Raised when the caller does not own the listing."""
    pass

class InvalidListingError(ListingError, ValidationError):
    """Raised when listing fields are missing or invalid."""
    pass

class InvalidPriceError(InvalidListingError):
    """Raised when a price is missing, non-numeric or not positive."""
    pass

def _require_text(field: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidListingError(f"{field} is required")
    return value.strip()

def parse_price(value: Any) -> Decimal:
    """Parse a positive decimal price from a number or numeric string."""
    if value is None or isinstance(value, bool):
        raise InvalidPriceError("Price must be a positive number")
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidPriceError("Price must be a positive number")
    if not price.is_finite() or price <= 0:
        raise InvalidPriceError("Price must be a positive number")
    return price

def _parse_delivery_days(value: Any) -> int:
    if value is None or isinstance(value, bool):
        raise InvalidListingError("Delivery days must be a positive number")
    if isinstance(value, float) and not value.is_integer():
        raise InvalidListingError("Delivery days must be a whole number")
    try:
        days = int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        raise InvalidListingError("Delivery days must be a positive number")
    if days < 1:
        raise InvalidListingError("Delivery days must be a positive number")
    return days

def normalize_currency(value: Any) -> str:
    """Normalize a currency code; ETH and USDC plus other short alphanumeric codes."""
    if value is None:
        return DEFAULT_CURRENCY
    if not isinstance(value, str) or not value.strip():
        raise InvalidListingError("Currency must be a non-empty code")
    code = value.strip().upper()
    if code in KNOWN_CURRENCIES or _CURRENCY_CODE.match(code):
        return code
    raise InvalidListingError(f"Unsupported currency: {value}")

def _parse_tags(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(',')
    if not isinstance(value, (list, tuple)):
        raise InvalidListingError("Tags must be a list of strings")
    tags = []
    for tag in value:
        if not isinstance(tag, str):
            raise InvalidListingError("Tags must be a list of strings")
        tag = tag.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags

def _parse_wallet_address(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidListingError("Wallet address must be a string")
    return value.strip() or None

# Field name -> parser for every user-supplied field
FIELD_PARSERS = {
    'title': lambda v: _require_text('Title', v),
    'description': lambda v: _require_text('Description', v),
    'price': parse_price,
    'currency': normalize_currency,
    'delivery_days': _parse_delivery_days,
    'category': lambda v: _require_text('Category', v),
    'tags': _parse_tags,
    'wallet_address': _parse_wallet_address
}

def format_listing(row: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a services row to a JSON-friendly dict."""
    return {
        'id': str(row['id']),
        'fid': int(row['fid']),
        'title': row['title'],
        'description': row['description'],
        'price': decimal_str(row['price']),
        'currency': row['currency'],
        'delivery_days': int(row['delivery_days']),
        'category': row['category'],
        'tags': list(row.get('tags') or []),
        'status': row['status'],
        'user_name': row.get('user_name'),
        'user_pfp': row.get('user_pfp'),
        'wallet_address': row.get('wallet_address'),
        'created_at': isoformat(row.get('created_at')),
        'updated_at': isoformat(row.get('updated_at'))
    }

class ListingManager:
    """Manager class for handling listing operations."""

    def __init__(self, store: Optional[RowStore] = None, profiles: Optional[ProfileClient] = None):
        """Initialize the listing manager.

        Args:
            store: Optional row store. If not provided, will get from database module.
            profiles: Optional profile client used to fill in display fields
        """
        self.store = store
        self.profiles = profiles or ProfileClient()

    async def ensure_store(self):
        """Ensure we have a row store."""
        if not self.store:
            self.store = await get_store()

    async def _display_fields(self, caller: Caller) -> Dict[str, Optional[str]]:
        """Owner display name and avatar, denormalized onto the listing."""
        name = caller.display_name or caller.username
        pfp = caller.pfp_url
        if not name or not pfp:
            profile = await self.profiles.fetch_profile(caller.fid)
            name = name or profile.display_name
            pfp = pfp or profile.pfp_url
        return {'user_name': name, 'user_pfp': pfp}

    async def create_listing(
        self,
        caller: Optional[Caller],
        draft: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Create a new listing owned by the caller.

        Args:
            caller: The authenticated caller
            draft: Dict containing:
                - title, description, category (required, non-empty)
                - price (required, positive)
                - delivery_days (required, at least 1)
                - currency (optional, defaults to USDC)
                - tags (optional)
                - wallet_address (optional, defaults to the caller's wallet)

        Returns:
            Dict containing the created listing details

        Raises:
            UnauthenticatedError: If no caller is resolved
            InvalidListingError: If any field is missing or invalid
            ListingError: If creation fails
        """
        if caller is None:
            raise UnauthenticatedError("You must be logged in to create a service")

        await self.ensure_store()

        unknown = set(draft) - MUTABLE_FIELDS
        if unknown:
            raise InvalidListingError(f"Unknown fields: {sorted(unknown)}")

        values = {}
        for field, parser in FIELD_PARSERS.items():
            values[field] = parser(draft.get(field))
        if values['wallet_address'] is None:
            values['wallet_address'] = caller.wallet_address

        try:
            now = datetime.now(timezone.utc)
            values.update(await self._display_fields(caller))
            values.update({
                'fid': caller.fid,
                'status': 'active',
                'created_at': now,
                'updated_at': now
            })

            row = await self.store.insert(TABLE, values)
            logger.info(f"Created service {row['id']} for fid {caller.fid}")
            return format_listing(row)

        except MarketplaceError:
            raise
        except Exception as e:
            logger.error(f"Error creating listing: {e}")
            raise ListingError(f"Failed to create listing: {e}")

    async def get_listing(self, listing_id: str) -> Dict[str, Any]:
        """Get a listing by ID.

        Raises:
            ListingNotFoundError: If listing doesn't exist
        """
        await self.ensure_store()

        row = await self.store.fetch_one(TABLE, {'id': str(listing_id)})
        if not row:
            raise ListingNotFoundError(f"Service {listing_id} not found")
        return format_listing(row)

    async def list_listings(
        self,
        owner_fid: Optional[int] = None,
        include_inactive: bool = False
    ) -> List[Dict[str, Any]]:
        """List listings newest first.

        Args:
            owner_fid: Only return this owner's listings
            include_inactive: Include paused, completed and inactive listings

        Returns:
            List of listing dicts
        """
        await self.ensure_store()

        filters: Dict[str, Any] = {}
        if owner_fid is not None:
            filters['fid'] = int(owner_fid)
        if not include_inactive:
            filters['status'] = 'active'

        rows = await self.store.fetch(TABLE, filters, order_by='created_at', descending=True)
        return [format_listing(row) for row in rows]

    async def _get_owned_row(self, caller: Optional[Caller], listing_id: str) -> Dict[str, Any]:
        """Load a listing row and check the caller owns it."""
        if caller is None:
            raise UnauthenticatedError("Authentication required")

        await self.ensure_store()

        row = await self.store.fetch_one(TABLE, {'id': str(listing_id)})
        if not row:
            raise ListingNotFoundError(f"Service {listing_id} not found")
        if int(row['fid']) != caller.fid:
            raise ListingPermissionError("Only the owner can modify this service")
        return row

    async def update_listing(
        self,
        caller: Optional[Caller],
        listing_id: str,
        updates: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Update a listing's fields.

        Args:
            caller: The authenticated caller, must own the listing
            listing_id: The listing id
            updates: Dict of mutable fields to change

        Returns:
            Updated listing details

        Raises:
            ListingNotFoundError: If listing doesn't exist
            ListingPermissionError: If the caller is not the owner
            InvalidListingError: If update contains invalid fields or values
        """
        await self._get_owned_row(caller, listing_id)

        invalid_fields = set(updates) - MUTABLE_FIELDS
        if invalid_fields:
            raise InvalidListingError(f"Cannot update fields: {sorted(invalid_fields)}")
        if not updates:
            raise InvalidListingError("No fields to update")
        # The USDC default applies at creation only
        if 'currency' in updates and updates['currency'] is None:
            raise InvalidListingError("Currency must be a non-empty code")

        values = {
            field: FIELD_PARSERS[field](value)
            for field, value in updates.items()
        }

        try:
            values.update(await self._display_fields(caller))
            values['updated_at'] = datetime.now(timezone.utc)

            row = await self.store.update(TABLE, values, {'id': str(listing_id)})
            if not row:
                raise ListingNotFoundError(f"Service {listing_id} not found")
            logger.info(f"Updated service {listing_id}: {sorted(updates)}")
            return format_listing(row)

        except MarketplaceError:
            raise
        except Exception as e:
            logger.error(f"Error updating listing: {e}")
            raise ListingError(f"Failed to update listing: {e}")

    async def set_status(
        self,
        caller: Optional[Caller],
        listing_id: str,
        status: Any
    ) -> Dict[str, Any]:
        """Set a listing's status.

        Any status in LISTING_STATUSES can be set from any other; this is
        how listings are deactivated instead of deleted.

        Raises:
            ListingNotFoundError: If listing doesn't exist
            ListingPermissionError: If the caller is not the owner
            InvalidListingError: If the status is not a listing status
        """
        await self._get_owned_row(caller, listing_id)

        if status not in LISTING_STATUSES:
            raise InvalidListingError(
                f"Invalid status. Must be one of: {', '.join(LISTING_STATUSES)}"
            )

        try:
            row = await self.store.update(
                TABLE,
                {'status': status, 'updated_at': datetime.now(timezone.utc)},
                {'id': str(listing_id)}
            )
            if not row:
                raise ListingNotFoundError(f"Service {listing_id} not found")
            logger.info(f"Service {listing_id} status set to {status}")
            return format_listing(row)

        except MarketplaceError:
            raise
        except Exception as e:
            logger.error(f"Error updating listing status: {e}")
            raise ListingError(f"Failed to update listing status: {e}")

__all__ = [
    'ListingManager',
    'ListingError',
    'ListingNotFoundError',
    'ListingPermissionError',
    'InvalidListingError',
    'InvalidPriceError',
    'LISTING_STATUSES',
    'SERVICE_CATEGORIES',
    'MUTABLE_FIELDS',
    'format_listing',
    'normalize_currency',
    'parse_price'
]
