"""Database module for managing connections to Postgres.

This module handles:
- Database connection pool initialization
- Schema management
- Connection lifecycle
"""

import asyncio
import logging
import ssl
from typing import Optional, Dict, Any
import backoff
import asyncpg

from .exceptions import DatabaseError, DatabaseSchemaError, DuplicateRowError
from .lib.schema_manager import SchemaManager
from .store import RowStore

logger = logging.getLogger(__name__)

_pool: Optional[asyncpg.Pool] = None
_schema_manager: Optional[SchemaManager] = None
_pool_lock: Optional[asyncio.Lock] = None

def _get_ssl_context() -> ssl.SSLContext:
    """Create SSL context for hosted Postgres connections."""
    ssl_context = ssl.create_default_context()
    ssl_context.verify_mode = ssl.CERT_REQUIRED
    ssl_context.check_hostname = True
    return ssl_context

def _get_connection_kwargs(use_ssl: bool) -> Dict[str, Any]:
    """Get connection kwargs for the pool.

    Args:
        use_ssl: Whether to require a verified TLS connection

    Returns:
        Dict of connection parameters
    """
    kwargs: Dict[str, Any] = {
        'server_settings': {
            'statement_timeout': '60000',  # 1 minute
            'timezone': 'UTC'
        }
    }
    if use_ssl:
        kwargs['ssl'] = _get_ssl_context()
    return kwargs

@backoff.on_exception(
    backoff.expo,
    (asyncpg.exceptions.PostgresConnectionError, asyncpg.exceptions.CannotConnectNowError, OSError),
    max_tries=5
)
async def init_db(db_url: Optional[str] = None, force_recreate: bool = False) -> None:
    """Initialize the database connection pool and schema.

    Args:
        db_url: Optional database URL. If not provided, will use settings.
        force_recreate: If True, drop and recreate all tables

    Raises:
        ValueError: If database URL is not provided
        Exception: If initialization fails after retries
    """
    global _pool, _schema_manager

    # Import here to avoid circular imports
    from ..config import settings_conf

    url = db_url or settings_conf.get('db_url')
    if not url:
        raise ValueError("Database URL not provided")

    try:
        _pool = await asyncpg.create_pool(
            url,
            min_size=settings_conf['db_min_pool_size'],
            max_size=settings_conf['db_max_pool_size'],
            max_inactive_connection_lifetime=300.0,  # 5 minutes
            command_timeout=60.0,
            **_get_connection_kwargs(settings_conf['db_ssl'])
        )

        _schema_manager = SchemaManager(_pool)
        await _schema_manager.initialize(force_recreate=force_recreate)
        logger.info("Database initialized")

    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        if _pool:
            await _pool.close()
            _pool = None
        raise

def _get_pool_lock() -> asyncio.Lock:
    global _pool_lock
    if _pool_lock is None:
        _pool_lock = asyncio.Lock()
    return _pool_lock

async def get_pool() -> asyncpg.Pool:
    """Get the database connection pool, creating it on first use.

    Returns:
        The connection pool

    Raises:
        DatabaseError: If the pool cannot be initialized
    """
    if _pool:
        return _pool

    # Concurrent first requests share one init_db call
    async with _get_pool_lock():
        if not _pool:
            try:
                await init_db()
            except Exception as e:
                raise DatabaseError(f"Failed to initialize database pool: {e}") from e

    if not _pool:
        raise DatabaseError("Failed to initialize database pool")
    return _pool

async def get_store() -> RowStore:
    """Get a row store bound to the shared pool."""
    return RowStore(await get_pool())

async def close() -> None:
    """Close the database connection pool."""
    global _pool, _schema_manager, _pool_lock

    if _pool:
        await _pool.close()
        _pool = None
        _schema_manager = None
        _pool_lock = None
        logger.info("Database pool closed")

# Export public interface
__all__ = [
    'init_db', 'get_pool', 'get_store', 'close', 'RowStore',
    'DatabaseError', 'DatabaseSchemaError', 'DuplicateRowError'
]
