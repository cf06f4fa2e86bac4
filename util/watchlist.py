import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from plexapi.myplex import MyPlexAccount


def watchlist_item_to_row(item: Any) -> Dict[str, Any]:
    """Convert a plexapi watchlist entry into a watchlist_items row."""
    guids = [guid.id for guid in getattr(item, "guids", None) or []]
    if getattr(item, "guid", None):
        guids.append(item.guid)
    return {
        "key": str(getattr(item, "ratingKey", None) or item.guid),
        "title": item.title,
        "type": "show" if item.type == "show" else "movie",
        "guids": guids,
    }


class WatchlistRefresher:
    """
    Pulls Plex watchlists into the database. The first token belongs to the server
    owner, every further token to another user.
    """

    def __init__(
        self,
        db: Any,
        tokens: List[str],
        logger: Any,
        account_factory: Callable[..., Any] = MyPlexAccount,
    ):
        self.db = db
        self.tokens = [t for t in tokens or [] if t]
        self.logger = logger
        self.account_factory = account_factory

    def _pull(self, token: str, is_primary: bool) -> int:
        account = self.account_factory(token=token)
        username = account.username or account.title
        user_id = self.db.users.upsert_user(username, is_primary_token=is_primary)
        rows = [watchlist_item_to_row(item) for item in account.watchlist()]
        stored = self.db.watchlist.sync_user_watchlist(user_id, rows)
        self.logger.info(f"Refreshed {stored} watchlist items for user \"{username}\"")
        return stored

    def get_self_watchlist(self) -> int:
        if not self.tokens:
            raise ValueError("No Plex token configured for the server owner")
        return self._pull(self.tokens[0], True)

    def get_others_watchlists(self) -> int:
        return sum(self._pull(token, False) for token in self.tokens[1:])


def refresh_watchlists(
    refresher: Any,
    logger: Any,
    max_retries: int = 2,
    base_delay: float = 1.0,
    sleep: Optional[Callable[[float], None]] = None,
) -> None:
    """
    Refresh the owner's and everyone else's watchlists concurrently.

    Retries up to max_retries times with exponential backoff, then re-raises the
    last error.
    """
    sleep = sleep or time.sleep
    for attempt in range(max_retries + 1):
        try:
            with ThreadPoolExecutor(max_workers=2, thread_name_prefix="watchlist") as executor:
                own = executor.submit(refresher.get_self_watchlist)
                others = executor.submit(refresher.get_others_watchlists)
                own.result()
                others.result()
            return
        except Exception as e:
            if attempt >= max_retries:
                logger.error(f"Watchlist refresh failed after {max_retries + 1} attempts: {e}")
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(
                f"Watchlist refresh failed ({e}), retrying in {delay:g}s ({attempt + 1}/{max_retries})..."
            )
            sleep(delay)
