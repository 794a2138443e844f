"""Gigs marketplace backend.

Subpackages:
- config: settings loading
- database: connection pool, schema and row store
- auth: session token verification
- profiles: user profile lookup
- listings: service catalog
- orders: order ledger and lifecycle rules
- api: HTTP endpoints
"""

__version__ = "1.0.0"
