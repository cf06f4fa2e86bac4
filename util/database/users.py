import datetime
from typing import Any, Dict, List, Optional

from .db_base import DatabaseBase


def _row_to_user(row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    user = dict(row)
    user["can_sync"] = bool(user.get("can_sync"))
    user["is_primary_token"] = bool(user.get("is_primary_token"))
    return user


class Users(DatabaseBase):
    """
    Plex users whose watchlists feed delete sync.
    """

    def get_all_users(self) -> List[Dict[str, Any]]:
        with self.lock, self.conn:
            cur = self.conn.execute("SELECT * FROM users ORDER BY id")
            return [_row_to_user(row) for row in cur.fetchall()]

    def get_user(self, user_id: int) -> Optional[Dict[str, Any]]:
        with self.lock, self.conn:
            cur = self.conn.execute("SELECT * FROM users WHERE id=?", (user_id,))
            return _row_to_user(cur.fetchone())

    def get_user_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        with self.lock, self.conn:
            cur = self.conn.execute(
                "SELECT * FROM users WHERE username=? COLLATE NOCASE", (username,)
            )
            return _row_to_user(cur.fetchone())

    def upsert_user(self, username: str, is_primary_token: bool = False) -> int:
        """
        Insert the user if unknown and return its id. An existing can_sync setting is kept.
        """
        now = datetime.datetime.now(datetime.timezone.utc).isoformat()
        with self.lock, self.conn:
            self.conn.execute(
                """
                INSERT INTO users (username, can_sync, is_primary_token, created_at, updated_at)
                VALUES (?, 1, ?, ?, ?)
                ON CONFLICT(username) DO UPDATE SET
                    is_primary_token=excluded.is_primary_token,
                    updated_at=excluded.updated_at
                """,
                (username, int(is_primary_token), now, now),
            )
            cur = self.conn.execute("SELECT id FROM users WHERE username=?", (username,))
            return cur.fetchone()["id"]

    def set_can_sync(self, user_id: int, can_sync: bool) -> None:
        with self.lock, self.conn:
            self.conn.execute(
                "UPDATE users SET can_sync=?, updated_at=? WHERE id=?",
                (
                    int(can_sync),
                    datetime.datetime.now(datetime.timezone.utc).isoformat(),
                    user_id,
                ),
            )
