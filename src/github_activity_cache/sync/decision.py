"""Entry decision of the sync state machine."""

from .enums import SyncMode


def decide_sync_mode(
    has_metadata: bool,
    is_stale: bool,
    *,
    force_full_sync: bool = False,
    force_refresh: bool = False,
) -> SyncMode:
    """Choose how to serve a data request.

    Rules, first match wins:
        1. no metadata          -> COLD_START (runs a full sync)
        2. force_full_sync      -> FULL
        3. fresh, not forced    -> CACHE_HIT
        4. otherwise            -> INCREMENTAL

    Args:
        has_metadata: Whether a previous sync was persisted
        is_stale: Whether the cache is older than its TTL
        force_full_sync: Caller asked for a full re-fetch
        force_refresh: Caller asked to refresh even if fresh

    Returns:
        SyncMode to execute
    """
    if not has_metadata:
        return SyncMode.COLD_START
    if force_full_sync:
        return SyncMode.FULL
    if not force_refresh and not is_stale:
        return SyncMode.CACHE_HIT
    return SyncMode.INCREMENTAL
