"""Orders module for managing marketplace orders.

This module handles order creation, status transitions and the buyer and
seller views of the ledger. Payments are made client-side; the transaction
reference a buyer submits is stored as-is and never verified here.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from ..auth import Caller
from ..config import settings_conf
from ..database import DuplicateRowError, RowStore, get_store
from ..exceptions import (
    ConflictError, ForbiddenError, MarketplaceError, NotFoundError,
    UnauthenticatedError, ValidationError
)
from ..formatting import decimal_str, isoformat
from ..listings import ListingNotFoundError
from .lifecycle import ORDER_STATUSES, can_transition, parse_status_list, status_changes

logger = logging.getLogger(__name__)

ORDERS_TABLE = 'orders'
SERVICES_TABLE = 'services'

# Ledger view -> column identifying the caller
ORDER_ROLES = {
    'buyer': 'buyer_fid',
    'seller': 'seller_fid'
}

class OrderError(MarketplaceError):
    """Base class for order-related errors."""
    pass

class OrderNotFoundError(OrderError, NotFoundError):
    """Raised when an order id does not exist."""
    pass

class OrderPermissionError(OrderError, ForbiddenError):
    """Raised when the caller is not a party to the order, or not the seller."""
    pass

class InvalidOrderError(OrderError, ValidationError):
    """Raised when order input is malformed or violates a purchase rule."""
    pass

class AmountMismatchError(InvalidOrderError):
    """Raised when the paid amount differs from the service price."""
    def __init__(self, amount: Decimal, price: Decimal):
        self.amount = amount
        self.price = price
        super().__init__(
            f"Payment amount {amount} does not match service price {price}"
        )

class SelfPurchaseError(InvalidOrderError):
    """Raised when a seller tries to buy their own service."""
    pass

class InvalidStatusError(InvalidOrderError):
    """Raised when a status is not on the allow-list."""
    pass

class InvalidTransitionError(InvalidOrderError):
    """Raised when the state machine does not allow a status change."""
    def __init__(self, current: str, new: str):
        self.current = current
        self.new = new
        super().__init__(f"Cannot change order status from {current} to {new}")

class DuplicatePurchaseError(OrderError, ConflictError):
    """Raised when the buyer already has an order for the service."""
    def __init__(self, service_id: str, order_id: Optional[str] = None):
        self.service_id = service_id
        self.order_id = order_id
        super().__init__("You have already purchased this service")

def _parse_amount(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        raise InvalidOrderError("Amount must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidOrderError("Amount must be a number")
    if not amount.is_finite():
        raise InvalidOrderError("Amount must be a number")
    return amount

def _optional_text(field: str, value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidOrderError(f"{field} must be a string")
    return value

def format_order(row: Dict[str, Any]) -> Dict[str, Any]:
    """Convert an orders row to a JSON-friendly dict."""
    return {
        'id': str(row['id']),
        'buyer_fid': int(row['buyer_fid']),
        'seller_fid': int(row['seller_fid']),
        'service_id': str(row['service_id']),
        'amount': decimal_str(row['amount']),
        'currency': row['currency'],
        'payment_tx_hash': row.get('payment_tx_hash'),
        'status': row['status'],
        'buyer_notes': row.get('buyer_notes'),
        'seller_notes': row.get('seller_notes'),
        'completed_at': isoformat(row.get('completed_at')),
        'cancelled_at': isoformat(row.get('cancelled_at')),
        'created_at': isoformat(row.get('created_at')),
        'updated_at': isoformat(row.get('updated_at'))
    }

def service_summary(listing: Dict[str, Any]) -> Dict[str, Any]:
    """Listing fields embedded in order views."""
    return {
        'id': str(listing['id']),
        'title': listing['title'],
        'description': listing['description'],
        'price': decimal_str(listing['price']),
        'currency': listing['currency'],
        'seller_fid': int(listing['fid']),
        'seller_username': listing.get('user_name'),
        'seller_pfp': listing.get('user_pfp')
    }

class OrderManager:
    """Manages order operations and state transitions."""

    def __init__(
        self,
        store: Optional[RowStore] = None,
        allowed_statuses: Optional[Iterable[str]] = None,
        enforce_transitions: Optional[bool] = None
    ) -> None:
        """Initialize order manager.

        Args:
            store: Optional row store. If not provided, will get from database module.
            allowed_statuses: Status allow-list, defaults to the order_statuses setting
            enforce_transitions: Check moves against the state machine,
                defaults to the enforce_status_transitions setting
        """
        self.store = store
        self.allowed_statuses = parse_status_list(
            allowed_statuses if allowed_statuses is not None
            else settings_conf['order_statuses']
        )
        self.enforce_transitions = (
            enforce_transitions if enforce_transitions is not None
            else settings_conf['enforce_status_transitions']
        )

    async def ensure_store(self):
        """Ensure we have a row store."""
        if not self.store:
            self.store = await get_store()

    async def find_purchase(self, buyer_fid: int, service_id: str) -> Optional[Dict[str, Any]]:
        """Get the buyer's existing order for a service, if any."""
        await self.ensure_store()
        row = await self.store.fetch_one(
            ORDERS_TABLE,
            {'buyer_fid': int(buyer_fid), 'service_id': str(service_id)}
        )
        return format_order(row) if row else None

    async def has_purchased(self, buyer_fid: int, service_id: str) -> bool:
        """Check whether the buyer already has an order for a service."""
        await self.ensure_store()
        return await self.store.exists(
            ORDERS_TABLE,
            {'buyer_fid': int(buyer_fid), 'service_id': str(service_id)}
        )

    async def create_order(
        self,
        buyer: Optional[Caller],
        service_id: str,
        amount: Any,
        currency: Optional[str] = None,
        tx_ref: Optional[str] = None,
        buyer_notes: Optional[str] = None
    ) -> Dict[str, Any]:
        """Record a purchase of a service.

        Args:
            buyer: The authenticated buyer
            service_id: The purchased service
            amount: Amount paid, must equal the service price
            currency: Currency paid, must match the service when given
            tx_ref: Opaque payment transaction reference
            buyer_notes: Optional notes for the seller

        Returns:
            Dict containing the created order in pending status

        Raises:
            UnauthenticatedError: If no buyer is resolved
            ListingNotFoundError: If the service does not exist
            AmountMismatchError: If amount differs from the price
            InvalidOrderError: If the service is not active, currencies
                differ or the input is malformed
            SelfPurchaseError: If the buyer owns the service
            DuplicatePurchaseError: If the buyer already ordered this service
            OrderError: If creation fails
        """
        if buyer is None:
            raise UnauthenticatedError("You must be logged in to purchase a service")
        if service_id is None or not str(service_id).strip():
            raise InvalidOrderError("Service id is required")

        await self.ensure_store()
        service_id = str(service_id)

        listing = await self.store.fetch_one(SERVICES_TABLE, {'id': service_id})
        if not listing:
            raise ListingNotFoundError(f"Service {service_id} not found")

        paid = _parse_amount(amount)
        price = Decimal(str(listing['price']))
        if paid != price:
            raise AmountMismatchError(paid, price)

        if currency is not None:
            if not isinstance(currency, str) or currency.strip().upper() != listing['currency']:
                raise InvalidOrderError(
                    f"Payment currency must be {listing['currency']}"
                )

        if listing['status'] != 'active':
            raise InvalidOrderError("Service is not available for purchase")

        seller_fid = int(listing['fid'])
        if buyer.fid == seller_fid:
            raise SelfPurchaseError("You cannot purchase your own service")

        tx_ref = _optional_text('Transaction reference', tx_ref)
        buyer_notes = _optional_text('Buyer notes', buyer_notes)

        existing = await self.find_purchase(buyer.fid, service_id)
        if existing:
            raise DuplicatePurchaseError(service_id, existing['id'])

        try:
            now = datetime.now(timezone.utc)
            row = await self.store.insert(ORDERS_TABLE, {
                'buyer_fid': buyer.fid,
                'seller_fid': seller_fid,
                'service_id': service_id,
                'amount': price,
                'currency': listing['currency'],
                'payment_tx_hash': tx_ref,
                'status': 'pending',
                'buyer_notes': buyer_notes,
                'created_at': now,
                'updated_at': now
            })
            logger.info(
                f"Created order {row['id']} for service {service_id}: "
                f"buyer {buyer.fid}, seller {seller_fid}, {price} {listing['currency']}"
            )
            return format_order(row)

        except DuplicateRowError:
            # Lost a race with a concurrent purchase
            raise DuplicatePurchaseError(service_id)
        except MarketplaceError:
            raise
        except Exception as e:
            logger.error(f"Error creating order: {e}")
            raise OrderError(f"Failed to create order: {e}")

    async def _get_order_row(self, order_id: str) -> Dict[str, Any]:
        await self.ensure_store()
        row = await self.store.fetch_one(ORDERS_TABLE, {'id': str(order_id)})
        if not row:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return row

    async def _get_seller_row(self, caller: Optional[Caller], order_id: str) -> Dict[str, Any]:
        """Load an order the caller sold."""
        if caller is None:
            raise UnauthenticatedError("Authentication required")
        row = await self._get_order_row(order_id)
        if int(row['seller_fid']) != caller.fid:
            raise OrderPermissionError("Only the seller can update this order")
        return row

    async def get_order(self, caller: Optional[Caller], order_id: str) -> Dict[str, Any]:
        """Get an order visible to its buyer or seller.

        Raises:
            OrderNotFoundError: If order doesn't exist
            OrderPermissionError: If the caller is neither buyer nor seller
        """
        if caller is None:
            raise UnauthenticatedError("Authentication required")

        row = await self._get_order_row(order_id)
        if caller.fid not in (int(row['buyer_fid']), int(row['seller_fid'])):
            raise OrderPermissionError("You do not have access to this order")

        order = format_order(row)
        listing = await self.store.fetch_one(SERVICES_TABLE, {'id': str(row['service_id'])})
        order['service'] = service_summary(listing) if listing else None
        return order

    async def update_order(
        self,
        caller: Optional[Caller],
        order_id: str,
        changes: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Apply a status change and/or a seller note in a single write.

        Args:
            caller: The authenticated caller, must be the seller
            order_id: The order id
            changes: Dict with status and/or seller_notes; an empty note
                clears it

        Returns:
            Updated order details

        Raises:
            OrderNotFoundError: If order doesn't exist
            OrderPermissionError: If the caller is not the seller
            InvalidOrderError: If nothing is given or the note is not a string
            InvalidStatusError: If the status is not on the allow-list
            InvalidTransitionError: If the state machine forbids the move
        """
        row = await self._get_seller_row(caller, order_id)

        unknown = set(changes) - {'status', 'seller_notes'}
        if unknown:
            raise InvalidOrderError(f"Cannot update fields: {sorted(unknown)}")
        if not changes:
            raise InvalidOrderError("Nothing to update. Provide status or seller_notes")

        now = datetime.now(timezone.utc)
        values: Dict[str, Any] = {'updated_at': now}

        if 'seller_notes' in changes:
            note = changes['seller_notes']
            if not isinstance(note, str):
                raise InvalidOrderError("Note must be a string")
            values['seller_notes'] = note or None

        current = row['status']
        new_status = changes.get('status', current)
        if 'status' in changes:
            if not isinstance(new_status, str) or new_status not in self.allowed_statuses:
                raise InvalidStatusError(
                    f"Invalid status. Must be one of: {', '.join(self.allowed_statuses)}"
                )
            if self.enforce_transitions and not can_transition(current, new_status, self.allowed_statuses):
                raise InvalidTransitionError(current, new_status)
            values.update(status_changes(current, new_status, now))

        try:
            updated = await self.store.update(ORDERS_TABLE, values, {'id': str(order_id)})
            if not updated:
                raise OrderNotFoundError(f"Order {order_id} not found")

            if current != new_status:
                logger.info(f"Order {order_id} status changed: {current} -> {new_status}")
            if 'seller_notes' in changes:
                logger.info(f"Seller note updated on order {order_id}")
            return format_order(updated)

        except MarketplaceError:
            raise
        except Exception as e:
            logger.error(f"Error updating order: {e}")
            raise OrderError(f"Failed to update order: {e}")

    async def transition_status(
        self,
        caller: Optional[Caller],
        order_id: str,
        new_status: Any
    ) -> Dict[str, Any]:
        """Move an order to a new status. Seller only; see update_order."""
        return await self.update_order(caller, order_id, {'status': new_status})

    async def set_seller_note(
        self,
        caller: Optional[Caller],
        order_id: str,
        note: Any
    ) -> Dict[str, Any]:
        """Set the seller's note on an order; an empty string clears it."""
        return await self.update_order(caller, order_id, {'seller_notes': note})

    async def _fetch_listings(self, service_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = list(dict.fromkeys(str(i) for i in service_ids))
        if not ids:
            return {}
        rows = await self.store.fetch(SERVICES_TABLE, {'id': ids})
        return {str(row['id']): row for row in rows}

    async def list_orders(self, caller: Optional[Caller], role: str) -> List[Dict[str, Any]]:
        """List the caller's orders as buyer or seller, newest first.

        Each order carries a ``service`` summary; orders whose service no
        longer exists are left out.

        Raises:
            InvalidOrderError: If role is not buyer or seller
        """
        if caller is None:
            raise UnauthenticatedError("Authentication required")
        if role not in ORDER_ROLES:
            raise InvalidOrderError(
                f"Invalid order type. Must be one of: {', '.join(ORDER_ROLES)}"
            )

        await self.ensure_store()

        rows = await self.store.fetch(
            ORDERS_TABLE,
            {ORDER_ROLES[role]: caller.fid},
            order_by='created_at',
            descending=True
        )
        listings = await self._fetch_listings(row['service_id'] for row in rows)

        orders = []
        for row in rows:
            listing = listings.get(str(row['service_id']))
            if not listing:
                continue
            order = format_order(row)
            order['service'] = service_summary(listing)
            orders.append(order)
        return orders

    async def list_payments(self, caller: Optional[Caller]) -> List[Dict[str, Any]]:
        """Payment history across the caller's purchases and sales, newest first."""
        if caller is None:
            raise UnauthenticatedError("Authentication required")

        await self.ensure_store()

        rows = []
        for column in ORDER_ROLES.values():
            rows.extend(await self.store.fetch(ORDERS_TABLE, {column: caller.fid}))
        rows.sort(key=lambda row: row['created_at'], reverse=True)

        listings = await self._fetch_listings(row['service_id'] for row in rows)

        payments = []
        for row in rows:
            listing = listings.get(str(row['service_id']))
            title = listing['title'] if listing else None
            outgoing = int(row['buyer_fid']) == caller.fid
            payments.append({
                'id': str(row['id']),
                'amount': decimal_str(row['amount']),
                'currency': row['currency'],
                'status': row['status'],
                'date': isoformat(row['created_at']),
                'service_title': title,
                'direction': 'outgoing' if outgoing else 'incoming',
                'counterparty_fid': int(row['seller_fid'] if outgoing else row['buyer_fid']),
                'description': f"Payment for {title}" if title else 'Service payment'
            })
        return payments

__all__ = [
    'OrderManager',
    'OrderError',
    'OrderNotFoundError',
    'OrderPermissionError',
    'InvalidOrderError',
    'AmountMismatchError',
    'SelfPurchaseError',
    'InvalidStatusError',
    'InvalidTransitionError',
    'DuplicatePurchaseError',
    'ORDER_ROLES',
    'ORDER_STATUSES',
    'format_order',
    'service_summary'
]
