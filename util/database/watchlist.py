import datetime
import json
from typing import Any, Dict, Iterable, List

from .db_base import DatabaseBase

SHOW = "show"
MOVIE = "movie"


class WatchlistItems(DatabaseBase):
    """
    Watchlist rows as last pulled from Plex, one per (user, item key).
    """

    def _get_by_type(self, item_type: str) -> List[Dict[str, Any]]:
        with self.lock, self.conn:
            cur = self.conn.execute(
                "SELECT * FROM watchlist_items WHERE type=? ORDER BY id", (item_type,)
            )
            return cur.fetchall()

    def get_all_show_watchlist_items(self) -> List[Dict[str, Any]]:
        return self._get_by_type(SHOW)

    def get_all_movie_watchlist_items(self) -> List[Dict[str, Any]]:
        return self._get_by_type(MOVIE)

    def get_watchlist_items_by_user(self, user_id: int) -> List[Dict[str, Any]]:
        with self.lock, self.conn:
            cur = self.conn.execute(
                "SELECT * FROM watchlist_items WHERE user_id=? ORDER BY id", (user_id,)
            )
            return cur.fetchall()

    def sync_user_watchlist(self, user_id: int, items: Iterable[Dict[str, Any]]) -> int:
        """
        Replace a user's watchlist with items, keeping status fields of keys already stored.

        Each item needs "key", "title", "type" and "guids" (a list).

        Returns:
            int: Number of rows stored for the user.
        """
        now = datetime.datetime.now(datetime.timezone.utc).isoformat()
        items = [item for item in items if item.get("key")]
        keys = [str(item["key"]) for item in items]
        with self.lock, self.conn:
            if keys:
                placeholders = ",".join("?" for _ in keys)
                self.conn.execute(
                    f"DELETE FROM watchlist_items WHERE user_id=? AND key NOT IN ({placeholders})",
                    (user_id, *keys),
                )
            else:
                self.conn.execute("DELETE FROM watchlist_items WHERE user_id=?", (user_id,))
            for item in items:
                self.conn.execute(
                    """
                    INSERT INTO watchlist_items (user_id, key, title, type, guids, status, added)
                    VALUES (?, ?, ?, ?, ?, 'pending', ?)
                    ON CONFLICT(user_id, key) DO UPDATE SET
                        title=excluded.title,
                        type=excluded.type,
                        guids=excluded.guids
                    """,
                    (
                        user_id,
                        str(item["key"]),
                        item.get("title"),
                        item.get("type"),
                        json.dumps(list(item.get("guids") or [])),
                        now,
                    ),
                )
        return len(items)

