import os
from typing import Any, Optional

from .db_base import DatabaseBase
from .run_state import RunState
from .users import Users
from .watchlist import WatchlistItems


class PulsarrDB:
    def __init__(self, logger: Any = None, db_path: Optional[str] = None):
        self.logger = logger
        if not db_path:
            from util.helper import get_config_dir

            db_path = os.path.join(get_config_dir(), "pulsarr.db")
        self.db_path = db_path

        DatabaseBase.init_schema(db_path)

        self.users = Users(db_path)
        self.watchlist = WatchlistItems(db_path)
        self.run_state = RunState(db_path)

    def close_all(self):
        if self.logger:
            self.logger.debug("[DATABASE] Closing database connections")
        self.users.close()
        self.watchlist.close()
        self.run_state.close()


__all__ = [
    "DatabaseBase",
    "PulsarrDB",
    "RunState",
    "Users",
    "WatchlistItems",
]
