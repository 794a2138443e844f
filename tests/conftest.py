"""Shared fixtures: an in-memory row store and seeded marketplace data."""

import itertools
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest

from gigs.auth import Caller, create_session_token
from gigs.database import DuplicateRowError
from gigs.listings import ListingManager
from gigs.orders import OrderManager
from gigs.profiles import ProfileClient

BUYER_FID = 42
SELLER_FID = 7
OTHER_FID = 9

class MemoryStore:
    """RowStore double keeping rows in dicts.

    Supports the same equality filters (lists match any member) and the
    unique (buyer_fid, service_id) index on orders.
    """

    UNIQUE = {
        'orders': [('buyer_fid', 'service_id')]
    }

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {'services': [], 'orders': []}
        self._seq = itertools.count()
        self.fail_with: Optional[Exception] = None

    def _check_failure(self):
        if self.fail_with is not None:
            raise self.fail_with

    @staticmethod
    def _matches(row: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
        for column, value in (filters or {}).items():
            if value is None:
                raise ValueError(f"Filter on {column} cannot be None")
            if isinstance(value, (list, tuple, set, frozenset)):
                if row.get(column) not in value:
                    return False
            elif row.get(column) != value:
                return False
        return True

    def _check_unique(self, table: str, candidate: Dict[str, Any], skip=None):
        for columns in self.UNIQUE.get(table, []):
            for row in self.tables[table]:
                if row is skip:
                    continue
                if all(row.get(c) == candidate.get(c) for c in columns):
                    raise DuplicateRowError(
                        "duplicate key value violates unique constraint",
                        constraint='idx_orders_buyer_service'
                    )

    def seed(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row synchronously, for fixtures."""
        row = dict(row)
        row.setdefault('id', str(uuid.uuid4()))
        now = datetime.now(timezone.utc)
        row.setdefault('created_at', now)
        row.setdefault('updated_at', now)
        self._check_unique(table, row)
        row['_seq'] = next(self._seq)
        self.tables[table].append(row)
        return self._public(row)

    @staticmethod
    def _public(row: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in row.items() if k != '_seq'}

    async def fetch(self, table, filters=None, order_by=None, descending=False, limit=None):
        self._check_failure()
        rows = [row for row in self.tables[table] if self._matches(row, filters)]
        if order_by:
            rows.sort(key=lambda row: (row[order_by], row['_seq']), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return [self._public(row) for row in rows]

    async def fetch_one(self, table, filters):
        self._check_failure()
        for row in self.tables[table]:
            if self._matches(row, filters):
                return self._public(row)
        return None

    async def exists(self, table, filters):
        return await self.fetch_one(table, filters) is not None

    async def insert(self, table, values):
        self._check_failure()
        return self.seed(table, values)

    async def update(self, table, values, filters):
        self._check_failure()
        if not values:
            raise ValueError("Nothing to update")
        if not filters:
            raise ValueError("Refusing to update without filters")
        for row in self.tables[table]:
            if self._matches(row, filters):
                self._check_unique(table, {**row, **values}, skip=row)
                row.update(values)
                return self._public(row)
        return None

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return [self._public(row) for row in self.tables[table]]

@pytest.fixture
def store():
    return MemoryStore()

@pytest.fixture
def profiles():
    """Profile client without an API key, so lookups return placeholders."""
    return ProfileClient(api_key='')

@pytest.fixture
def listing_manager(store, profiles):
    return ListingManager(store, profiles)

@pytest.fixture
def order_manager(store):
    return OrderManager(
        store,
        allowed_statuses=['pending', 'in_progress', 'completed', 'cancelled'],
        enforce_transitions=True
    )

@pytest.fixture
def buyer():
    return Caller(fid=BUYER_FID, username='bob', display_name='Bob')

@pytest.fixture
def seller():
    return Caller(
        fid=SELLER_FID,
        username='alice',
        display_name='Alice',
        pfp_url='https://example.com/alice.png',
        wallet_address='0xA11CE'
    )

@pytest.fixture
def stranger():
    return Caller(fid=OTHER_FID, username='eve', display_name='Eve')

@pytest.fixture
def listing(store):
    """Listing L1: owner 7, price 100 USDC, active."""
    return store.seed('services', {
        'id': 'L1',
        'fid': SELLER_FID,
        'title': 'Logo design',
        'description': 'A custom logo in three days',
        'price': Decimal('100'),
        'currency': 'USDC',
        'delivery_days': 3,
        'category': 'Design',
        'tags': ['logo', 'branding'],
        'status': 'active',
        'user_name': 'Alice',
        'user_pfp': 'https://example.com/alice.png',
        'wallet_address': '0xA11CE'
    })

@pytest.fixture
def auth_headers():
    """Build bearer headers for a fid."""
    def _headers(fid: int, **claims) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_session_token(fid, **claims)}"}
    return _headers
