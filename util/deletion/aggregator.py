from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from util.guid import parse_guids


@dataclass
class AggregatedWatchlist:
    """Every GUID wanted by at least one user, plus bookkeeping about the rows read."""

    guids: Set[str] = field(default_factory=set)
    items: int = 0
    malformed: int = 0

    def __len__(self) -> int:
        return len(self.guids)


def _row_user_id(row: Dict[str, Any]) -> Optional[Any]:
    user_id = row.get("user_id")
    if isinstance(user_id, dict):
        return user_id.get("id")
    return user_id


def _sync_enabled_user_ids(user_store: Any, logger: Any) -> Set[Any]:
    users = user_store.get_all_users() or []
    enabled = {user["id"] for user in users if user.get("can_sync") is not False}
    logger.info(
        f"Found {len(enabled)} users with sync enabled out of {len(users)} total users"
    )
    return enabled


def get_all_watchlist_items(
    watchlist_store: Any,
    user_store: Any,
    respect_user_sync_setting: bool,
    logger: Any,
) -> AggregatedWatchlist:
    """Build the set of GUIDs currently on any user's watchlist.

    Args:
        watchlist_store: Provides get_all_show_watchlist_items / get_all_movie_watchlist_items.
        user_store: Provides get_all_users, consulted only when respecting sync settings.
        respect_user_sync_setting (bool): Only count rows of users whose can_sync is not False.
        logger: Logger instance.

    Returns:
        AggregatedWatchlist: The GUID set with item and malformed counters.
    """
    rows: List[Dict[str, Any]] = list(
        watchlist_store.get_all_show_watchlist_items() or []
    )
    rows.extend(watchlist_store.get_all_movie_watchlist_items() or [])

    if respect_user_sync_setting:
        enabled = _sync_enabled_user_ids(user_store, logger)
        rows = [row for row in rows if _row_user_id(row) in enabled]
        logger.info(f"Found {len(rows)} watchlist items from users with sync enabled")
    else:
        logger.info(f"Found {len(rows)} watchlist items from all users")

    aggregated = AggregatedWatchlist(items=len(rows))
    for row in rows:
        guids = parse_guids(row.get("guids"))
        if not guids:
            aggregated.malformed += 1
            logger.debug(
                f"Watchlist item \"{row.get('title', 'unknown')}\" has no parseable GUIDs: {row.get('guids')!r}"
            )
            continue
        aggregated.guids.update(guids)

    if aggregated.malformed:
        logger.warning(
            f"Skipped {aggregated.malformed} watchlist items with missing or malformed GUIDs"
        )
    logger.info(
        f"Collected {len(aggregated.guids)} unique GUIDs from {aggregated.items} watchlist items"
    )
    return aggregated


class WatchlistAggregator:
    """Binds the watchlist and user stores so callers only choose the sync filter."""

    def __init__(self, watchlist_store: Any, user_store: Any, logger: Any):
        self.watchlist_store = watchlist_store
        self.user_store = user_store
        self.logger = logger

    def get_all_watchlist_items(self, respect_user_sync_setting: bool) -> AggregatedWatchlist:
        return get_all_watchlist_items(
            self.watchlist_store,
            self.user_store,
            respect_user_sync_setting,
            self.logger,
        )

