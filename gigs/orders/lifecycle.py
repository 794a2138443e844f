"""Order status state machine.

pending     -> in_progress, completed, cancelled
in_progress -> completed, cancelled
completed and cancelled are terminal unless disputes are enabled, in which
case in_progress and completed may move to disputed, and disputed resolves
to completed or cancelled.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

ORDER_STATUSES = ('pending', 'in_progress', 'completed', 'cancelled', 'disputed')

TRANSITIONS = {
    'pending': {'in_progress', 'completed', 'cancelled'},
    'in_progress': {'completed', 'cancelled', 'disputed'},
    'completed': {'disputed'},
    'cancelled': set(),
    'disputed': {'completed', 'cancelled'}
}

# Status -> timestamp column stamped when an order enters it
STATUS_TIMESTAMPS = {
    'completed': 'completed_at',
    'cancelled': 'cancelled_at'
}

def parse_status_list(value: Any) -> List[str]:
    """Validate a configured allow-list of order statuses.

    Raises:
        ValueError: On unknown statuses or when pending is missing
    """
    if isinstance(value, str):
        value = value.split(',')
    statuses = [str(s).strip() for s in value if str(s).strip()]
    unknown = [s for s in statuses if s not in ORDER_STATUSES]
    if unknown:
        raise ValueError(f"Unknown order statuses: {', '.join(unknown)}")
    if 'pending' not in statuses:
        raise ValueError("Order statuses must include pending")
    return list(dict.fromkeys(statuses))

def can_transition(current: str, new: str, allowed: Iterable[str]) -> bool:
    """Check whether an order may move from current to new.

    Moves into a status outside the allow-list are never permitted, and
    neither are moves out of one (a status dropped from configuration
    leaves its orders frozen). Staying in the same status is always allowed.
    """
    allowed = set(allowed)
    if new not in allowed:
        return False
    if current == new:
        return True
    if current not in allowed:
        return False
    return new in TRANSITIONS.get(current, set())

def status_changes(
    current: str,
    new: str,
    now: datetime
) -> Dict[str, Optional[datetime]]:
    """Column values to write for a status change, timestamps included.

    Entering completed or cancelled stamps its own column and clears the
    other, so at most one of the two is ever set.
    """
    values: Dict[str, Optional[datetime]] = {'status': new, 'updated_at': now}
    if current != new and new in STATUS_TIMESTAMPS:
        for status, column in STATUS_TIMESTAMPS.items():
            values[column] = now if status == new else None
    return values

__all__ = [
    'ORDER_STATUSES',
    'TRANSITIONS',
    'STATUS_TIMESTAMPS',
    'parse_status_list',
    'can_transition',
    'status_changes'
]
