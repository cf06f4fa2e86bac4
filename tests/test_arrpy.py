import os
import sys

import pytest
import requests

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from util.arrpy import ArrRequestError, InventoryItem, RadarrClient, SonarrClient


class DummyLogger:
    def __init__(self):
        self.logs = []

    def info(self, msg, *args, **kwargs): self.logs.append(f"INFO: {msg}")
    def debug(self, msg, *args, **kwargs): self.logs.append(f"DEBUG: {msg}")
    def warning(self, msg, *args, **kwargs): self.logs.append(f"WARNING: {msg}")
    def error(self, msg, *args, **kwargs): self.logs.append(f"ERROR: {msg}")


class FakeResponse:
    def __init__(self, data=None, status_code=200):
        self.data = data
        self.status_code = status_code
        self.text = str(data)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.data


class FakeSession:
    def __init__(self, routes):
        self.routes = routes
        self.headers = {}
        self.calls = []

    def request(self, method, endpoint, params=None, json=None, timeout=None):
        self.calls.append((method, endpoint, params))
        path = endpoint.split("/api/v3", 1)[1]
        handler = self.routes.get((method, path))
        if handler is None:
            return FakeResponse(None, 404)
        return handler(params) if callable(handler) else handler


STATUS = {("GET", "/system/status"): FakeResponse({"appName": "Radarr", "version": "5.0"})}


def make_client(cls, routes):
    session = FakeSession({**STATUS, **routes})
    client = cls("http://arr:7878/", "secret", DummyLogger(), session=session)
    client.retry_delay = 0
    return client, session


def test_connects_and_sets_api_header():
    client, session = make_client(RadarrClient, {})
    assert client.is_connected()
    assert client.url == "http://arr:7878"
    assert session.headers["X-Api-Key"] == "secret"


def test_fetch_movies_builds_guids():
    movies = [
        {"id": 7, "title": "Heat", "tmdbId": 949, "imdbId": "tt0113277"},
        {"id": 8, "title": "Blank", "tmdbId": 0, "imdbId": None},
    ]
    client, _ = make_client(RadarrClient, {("GET", "/movie"): FakeResponse(movies)})

    items = client.fetch_movies("hd", bypass_exclusions=True)

    assert items[0].guids == ["imdb:tt0113277", "tmdb:949", "radarr:7"]
    assert items[0].instance_id == "hd"
    assert items[1].guids == ["radarr:8"]


def test_fetch_movies_honours_exclusions():
    movies = [{"id": 1, "title": "A", "tmdbId": 1}, {"id": 2, "title": "B", "tmdbId": 2}]
    client, _ = make_client(
        RadarrClient,
        {
            ("GET", "/movie"): FakeResponse(movies),
            ("GET", "/exclusions"): FakeResponse([{"tmdbId": 2}]),
        },
    )
    assert [m.title for m in client.fetch_movies("hd")] == ["A"]


def test_fetch_series_marks_status():
    series = [
        {"id": 3, "title": "Done", "tvdbId": 10, "status": "ended"},
        {"id": 4, "title": "Airing", "tvdbId": 11, "status": "upcoming"},
    ]
    client, _ = make_client(SonarrClient, {("GET", "/series"): FakeResponse(series)})

    items = client.fetch_series("main", bypass_exclusions=True)

    assert [i.series_status for i in items] == ["ended", "continuing"]
    assert "tvdb:10" in items[0].guids and "sonarr:3" in items[0].guids


def test_fetch_failure_raises():
    client, _ = make_client(RadarrClient, {("GET", "/movie"): FakeResponse(None, 500)})
    with pytest.raises(ArrRequestError):
        client.fetch_movies("hd", bypass_exclusions=True)


def test_delete_movie_uses_radarr_id():
    client, session = make_client(RadarrClient, {("DELETE", "/movie/7"): FakeResponse(None)})
    client.delete_from_radarr(InventoryItem(title="Heat", guids=["tmdb:949", "radarr:7"]), False)

    method, endpoint, params = session.calls[-1]
    assert method == "DELETE"
    assert endpoint.endswith("/api/v3/movie/7")
    assert params == {"deleteFiles": "false", "addImportExclusion": "false"}


def test_delete_series_looks_up_by_tvdb():
    client, session = make_client(
        SonarrClient,
        {
            ("GET", "/series"): lambda params: FakeResponse([{"id": 42}] if params else []),
            ("DELETE", "/series/42"): FakeResponse(None),
        },
    )
    client.delete_from_sonarr(InventoryItem(title="Show", guids=["tvdb:81189"]), True)

    assert session.calls[-2][2] == {"tvdbId": 81189}
    assert session.calls[-1][2]["deleteFiles"] == "true"


def test_delete_failure_raises():
    client, _ = make_client(RadarrClient, {("DELETE", "/movie/7"): FakeResponse(None, 500)})
    with pytest.raises(ArrRequestError):
        client.delete_from_radarr(InventoryItem(title="Heat", guids=["radarr:7"]), True)


def test_delete_without_identifiers_raises():
    client, _ = make_client(RadarrClient, {})
    with pytest.raises(ValueError):
        client.delete_from_radarr(InventoryItem(title="Unknown", guids=["imdb:tt1"]), True)
