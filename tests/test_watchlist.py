import os
import sys
from types import SimpleNamespace

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from util.database import PulsarrDB
from util.watchlist import WatchlistRefresher, refresh_watchlists, watchlist_item_to_row


class DummyLogger:
    def __init__(self):
        self.logs = []

    def info(self, msg, *args, **kwargs): self.logs.append(f"INFO: {msg}")
    def debug(self, msg, *args, **kwargs): self.logs.append(f"DEBUG: {msg}")
    def warning(self, msg, *args, **kwargs): self.logs.append(f"WARNING: {msg}")
    def error(self, msg, *args, **kwargs): self.logs.append(f"ERROR: {msg}")


def plex_item(key, title, type_, *guids):
    return SimpleNamespace(
        ratingKey=key,
        title=title,
        type=type_,
        guid=f"plex://{type_}/{key}",
        guids=[SimpleNamespace(id=g) for g in guids],
    )


class FakeAccount:
    WATCHLISTS = {
        "owner-token": ("owner", [plex_item("a1", "Heat", "movie", "tmdb://949")]),
        "guest-token": ("guest", [plex_item("b1", "Lost", "show", "tvdb://73739")]),
    }

    def __init__(self, token):
        self.username, self._items = self.WATCHLISTS[token]
        self.title = self.username

    def watchlist(self):
        return self._items


def test_watchlist_item_to_row():
    row = watchlist_item_to_row(plex_item("k", "Lost", "show", "tvdb://73739"))
    assert row == {
        "key": "k",
        "title": "Lost",
        "type": "show",
        "guids": ["tvdb://73739", "plex://show/k"],
    }


def test_refresher_stores_owner_and_others(tmp_path):
    db = PulsarrDB(db_path=str(tmp_path / "pulsarr.db"))
    try:
        refresher = WatchlistRefresher(
            db, ["owner-token", "guest-token"], DummyLogger(), account_factory=FakeAccount
        )
        refresh_watchlists(refresher, DummyLogger())

        users = {u["username"]: u for u in db.users.get_all_users()}
        assert users["owner"]["is_primary_token"] is True
        assert users["guest"]["is_primary_token"] is False
        assert [r["title"] for r in db.watchlist.get_all_movie_watchlist_items()] == ["Heat"]
        assert [r["title"] for r in db.watchlist.get_all_show_watchlist_items()] == ["Lost"]
    finally:
        db.close_all()


class FlakyRefresher:
    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    def get_self_watchlist(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError("plex.tv unreachable")
        return 1

    def get_others_watchlists(self):
        return 0


def test_refresh_retries_with_backoff():
    delays = []
    refresher = FlakyRefresher(failures=2)
    refresh_watchlists(refresher, DummyLogger(), max_retries=2, base_delay=1.0, sleep=delays.append)

    assert refresher.calls == 3
    assert delays == [1.0, 2.0]


def test_refresh_gives_up_after_retries():
    logger = DummyLogger()
    delays = []
    with pytest.raises(ConnectionError):
        refresh_watchlists(FlakyRefresher(failures=5), logger, max_retries=2, sleep=delays.append)
    assert len(delays) == 2
    assert any(log.startswith("ERROR: Watchlist refresh failed after 3 attempts") for log in logger.logs)


def test_refresher_without_tokens_fails():
    refresher = WatchlistRefresher(None, [], DummyLogger(), account_factory=FakeAccount)
    with pytest.raises(ValueError):
        refresher.get_self_watchlist()
    assert refresher.get_others_watchlists() == 0
