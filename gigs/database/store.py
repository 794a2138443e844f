"""Row store client.

A small query interface over the asyncpg pool used by the catalog and the
order ledger: select, insert and update rows by equality filters. Filter
values that are lists or tuples match any of their members.
"""

import logging
import re
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Tuple

import asyncpg

from .exceptions import DatabaseError, DuplicateRowError

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r'^[a-z_][a-z0-9_]*$')

def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid identifier: {name!r}")
    return name

def _build_where(
    filters: Optional[Dict[str, Any]],
    start: int = 1
) -> Tuple[str, List[Any]]:
    """Build a WHERE clause with positional parameters.

    Args:
        filters: Column to value mapping, all conditions ANDed
        start: Number of the first positional parameter

    Returns:
        Tuple of (clause, values); clause is empty when there are no filters
    """
    if not filters:
        return '', []

    conditions = []
    values = []
    for i, (column, value) in enumerate(filters.items(), start=start):
        column = _check_identifier(column)
        if value is None:
            raise ValueError(f"Filter on {column} cannot be None")
        if isinstance(value, (list, tuple, set, frozenset)):
            conditions.append(f"{column} = ANY(${i})")
            values.append(list(value))
        else:
            conditions.append(f"{column} = ${i}")
            values.append(value)

    return ' WHERE ' + ' AND '.join(conditions), values

class RowStore:
    """Generic row access over an asyncpg pool."""

    def __init__(self, pool):
        self.pool = pool

    @asynccontextmanager
    async def _connection(self):
        """Acquire a connection and translate driver errors."""
        try:
            async with self.pool.acquire() as conn:
                yield conn
        except asyncpg.exceptions.UniqueViolationError as e:
            raise DuplicateRowError(str(e), constraint=e.constraint_name)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(f"Row store error: {e}")
            raise DatabaseError(f"Database operation failed: {e}")

    async def fetch(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Select rows matching every filter.

        Args:
            table: Table name
            filters: Column to value mapping
            order_by: Optional column to sort by
            descending: Sort newest/largest first
            limit: Optional maximum number of rows

        Returns:
            List of rows as dicts
        """
        where, values = _build_where(filters)
        query = f'SELECT * FROM {_check_identifier(table)}{where}'
        if order_by:
            query += f' ORDER BY {_check_identifier(order_by)} {"DESC" if descending else "ASC"}'
        if limit is not None:
            values.append(limit)
            query += f' LIMIT ${len(values)}'

        async with self._connection() as conn:
            rows = await conn.fetch(query, *values)
        return [dict(row) for row in rows]

    async def fetch_one(
        self,
        table: str,
        filters: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Select a single row, or None if nothing matches."""
        where, values = _build_where(filters)
        async with self._connection() as conn:
            row = await conn.fetchrow(
                f'SELECT * FROM {_check_identifier(table)}{where} LIMIT 1',
                *values
            )
        return dict(row) if row else None

    async def exists(self, table: str, filters: Dict[str, Any]) -> bool:
        """Check whether any row matches the filters."""
        where, values = _build_where(filters)
        async with self._connection() as conn:
            return bool(await conn.fetchval(
                f'SELECT EXISTS(SELECT 1 FROM {_check_identifier(table)}{where})',
                *values
            ))

    async def insert(self, table: str, values: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row and return it as stored.

        Raises:
            DuplicateRowError: If a unique constraint is violated
        """
        columns = [_check_identifier(column) for column in values]
        placeholders = [f'${i}' for i in range(1, len(columns) + 1)]
        async with self._connection() as conn:
            row = await conn.fetchrow(
                f'''
                INSERT INTO {_check_identifier(table)} ({', '.join(columns)})
                VALUES ({', '.join(placeholders)})
                RETURNING *
                ''',
                *values.values()
            )
        return dict(row)

    async def update(
        self,
        table: str,
        values: Dict[str, Any],
        filters: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Update rows matching the filters.

        Returns:
            The first updated row, or None if nothing matched
        """
        if not values:
            raise ValueError("Nothing to update")
        if not filters:
            raise ValueError("Refusing to update without filters")

        assignments = [
            f"{_check_identifier(column)} = ${i}"
            for i, column in enumerate(values, start=1)
        ]
        where, filter_values = _build_where(filters, start=len(values) + 1)
        async with self._connection() as conn:
            row = await conn.fetchrow(
                f'''
                UPDATE {_check_identifier(table)}
                SET {', '.join(assignments)}{where}
                RETURNING *
                ''',
                *values.values(),
                *filter_values
            )
        return dict(row) if row else None

__all__ = ['RowStore']
