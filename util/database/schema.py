def init_db_schema(conn):
    with conn:
        # Plex users known to the watchlist refresh
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                username TEXT NOT NULL UNIQUE,
                can_sync INTEGER DEFAULT 1,
                is_primary_token INTEGER DEFAULT 0,
                created_at TEXT,
                updated_at TEXT
            );
            """
        )
        # One row per item on a user's watchlist; guids holds a JSON array
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS watchlist_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                key TEXT NOT NULL,
                title TEXT,
                type TEXT,
                guids TEXT,
                status TEXT DEFAULT 'pending',
                series_status TEXT,
                movie_status TEXT,
                sonarr_instance_id TEXT,
                radarr_instance_id TEXT,
                added TEXT,
                UNIQUE(user_id, key)
            );
            """
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_watchlist_items_type ON watchlist_items(type);"
        )
        # Last run bookkeeping per module
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS run_state (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                module_name TEXT NOT NULL UNIQUE,
                last_run TEXT,
                last_run_successful INTEGER DEFAULT 0,
                last_run_status TEXT,
                last_run_message TEXT,
                last_duration INTEGER,
                last_run_by TEXT
            );
            """
        )
