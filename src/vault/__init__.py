# Vault: local archive/watchlist/config store + best-effort cloud mirror
"""
Vault module for persisting scan results.

The local SQLite store is authoritative; the Supabase mirror is an optional,
best-effort replica activated by stored credentials.
"""

from .local_store import LocalStore
from .remote_sync import CloudContext, RemoteSync, listing_to_remote_row

__all__ = [
    "CloudContext",
    "LocalStore",
    "RemoteSync",
    "listing_to_remote_row",
]
