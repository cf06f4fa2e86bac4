import datetime
from typing import Any, Dict, List, Optional

from .db_base import DatabaseBase


def _utcnow() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


class RunState(DatabaseBase):
    """
    Last run of each module: when it started, who started it and how it ended.
    """

    def record_run_start(self, module_name: str, run_by: str = "manual") -> None:
        with self.lock, self.conn:
            self.conn.execute(
                """
                INSERT INTO run_state (module_name, last_run, last_run_by)
                VALUES (?, ?, ?)
                ON CONFLICT(module_name) DO UPDATE SET
                    last_run=excluded.last_run,
                    last_run_by=excluded.last_run_by,
                    last_run_successful=NULL,
                    last_run_status=NULL,
                    last_run_message=NULL,
                    last_duration=NULL
                """,
                (module_name, _utcnow(), run_by),
            )

    def record_run_finish(
        self,
        module_name: str,
        success: bool,
        status: Optional[str] = None,
        message: Optional[str] = None,
        duration: Optional[int] = None,
        run_by: Optional[str] = None,
    ) -> None:
        """
        Store the outcome of a run. A finish without a recorded start still creates the row.
        """
        with self.lock, self.conn:
            self.conn.execute(
                """
                INSERT INTO run_state (
                    module_name, last_run, last_run_successful, last_run_status,
                    last_run_message, last_duration, last_run_by
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(module_name) DO UPDATE SET
                    last_run_successful=excluded.last_run_successful,
                    last_run_status=excluded.last_run_status,
                    last_run_message=excluded.last_run_message,
                    last_duration=excluded.last_duration,
                    last_run_by=COALESCE(excluded.last_run_by, run_state.last_run_by)
                """,
                (module_name, _utcnow(), int(success), status, message, duration, run_by),
            )

    def get_run_state(self, module_name: str) -> Optional[Dict[str, Any]]:
        with self.lock, self.conn:
            cur = self.conn.execute(
                "SELECT * FROM run_state WHERE module_name=?", (module_name,)
            )
            return cur.fetchone()

    def get_all(self) -> List[Dict[str, Any]]:
        with self.lock, self.conn:
            return self.conn.execute("SELECT * FROM run_state ORDER BY module_name").fetchall()
