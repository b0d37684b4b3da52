"""Supabase client for the shipment record store."""

import logging
from functools import lru_cache

from supabase import Client, create_client

from ..config import settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get cached Supabase client instance.

    Returns:
        Supabase Client instance if configured, None otherwise.
        Note: This does not test the connection - actual queries may fail with network errors.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("Supabase credentials not configured (missing URL or key)")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logger.error(f"Failed to create Supabase client: {e}")
        return None


# Expected table layout (one row per shipment, full record kept as jsonb):
#
# create table trackings (
#     id text primary key,
#     tracking_id text not null unique,
#     created_at timestamptz not null default now(),
#     document jsonb not null
# );
# create index trackings_tracking_id_lower on trackings (lower(tracking_id));
