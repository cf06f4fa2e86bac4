import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Union

import requests

from util.guid import extract_radarr_id, extract_sonarr_id, extract_tmdb_id, extract_tvdb_id

logging.getLogger("requests").setLevel(logging.WARNING)
logging.getLogger("urllib3").setLevel(logging.WARNING)


class ArrRequestError(RuntimeError):
    """Raised when a request that callers cannot proceed without fails after all retries."""


@dataclass
class InventoryItem:
    """One series or movie as listed by a Sonarr/Radarr instance."""

    title: str
    guids: List[str] = field(default_factory=list)
    instance_id: Optional[Union[int, str]] = None
    series_status: Optional[str] = None
    arr_id: Optional[int] = None


def _build_guids(**ids: Any) -> List[str]:
    guids = []
    for namespace, value in ids.items():
        if value in (None, "", 0, "0"):
            continue
        guids.append(f"{namespace}:{str(value).lower()}")
    return guids


class BaseARRClient:
    """
    Base class for interacting with ARR (Radarr/Sonarr) instances, providing
    request retries, error reporting and instance metadata.
    """

    instance_type: Optional[str] = None

    def __init__(
        self,
        url: str,
        api: str,
        logger: Any,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Args:
            url (str): The base URL of the ARR instance.
            api (str): The API key for authentication.
            logger (Any): Logger instance to capture output.
            session (Optional[requests.Session]): Session to reuse, mainly for tests.
        """
        self.logger = logger
        self.max_retries = 5
        self.retry_delay = 1
        self.timeout = 60
        self.url = url.rstrip("/")
        self.api = api
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/json",
                "Content-Type": "application/json",
                "X-Api-Key": api,
            }
        )
        self.connect_status = False
        self.instance_name = None
        self.app_name = None
        self.app_version = None
        status = self.get_system_status()
        if not status:
            return
        self.app_name = status.get("appName")
        self.app_version = status.get("version")
        self.instance_name = status.get("instanceName")
        self.connect_status = True
        self.logger.debug(f"Connected to {self.app_name} v{self.app_version} at {self.url}")

    def is_connected(self) -> bool:
        return self.connect_status

    def get_system_status(self) -> Optional[dict]:
        return self.make_get_request(f"{self.url}/api/v3/system/status")

    def make_get_request(
        self,
        endpoint: str,
        params: Optional[dict] = None,
        raise_on_error: bool = False,
    ) -> Any:
        return self._request_with_retries(
            "GET", endpoint, params=params, raise_on_error=raise_on_error
        )

    def make_delete_request(
        self,
        endpoint: str,
        params: Optional[dict] = None,
        raise_on_error: bool = False,
    ) -> Any:
        return self._request_with_retries(
            "DELETE", endpoint, params=params, raise_on_error=raise_on_error
        )

    def _request_with_retries(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json: Any = None,
        raise_on_error: bool = False,
    ) -> Any:
        """
        Perform an HTTP request with retry logic.

        Args:
            method (str): HTTP method.
            endpoint (str): API endpoint.
            params (Optional[dict]): Query string parameters.
            json (Any): JSON payload.
            raise_on_error (bool): Raise ArrRequestError instead of returning None on final failure.

        Returns:
            Any: The response object for DELETE, the decoded JSON otherwise.
        """
        response = None
        for i in range(self.max_retries):
            try:
                response = self.session.request(
                    method, endpoint, params=params, json=json, timeout=self.timeout
                )
                response.raise_for_status()
                return response if method == "DELETE" else response.json()
            except (requests.exceptions.RequestException, ValueError) as ex:
                if i < self.max_retries - 1:
                    self.logger.warning(
                        f"{method} request failed ({ex}), retrying ({i + 1}/{self.max_retries})..."
                    )
                    time.sleep(self.retry_delay)
                    continue
                self._handle_request_exception(method, endpoint, ex, response, json)
                if raise_on_error:
                    raise ArrRequestError(
                        f"{method} {endpoint} failed after {self.max_retries} retries: {ex}"
                    ) from ex
        return None

    def _handle_request_exception(
        self,
        method: str,
        endpoint: str,
        ex: Exception,
        response: Any,
        payload: Any = None,
    ) -> None:
        status_code = getattr(response, "status_code", None) or "No response"
        hint = (
            self._get_error_hint(status_code)
            if isinstance(status_code, int)
            else "No HTTP response received, check URL"
        )
        self.logger.error(f"{method} request failed after {self.max_retries} retries.")
        self.logger.error(f"Endpoint: {endpoint}")
        if payload:
            self.logger.error(f"Payload: {payload}")
        if response is not None and hasattr(response, "text"):
            self.logger.error(f"Response: {response.text} Code: {status_code}")
        self.logger.error(f"Status: {status_code}, Error: {ex}")
        self.logger.error(f"\nHint: {hint}\n")

    def _get_error_hint(self, status_code: int) -> str:
        hints = {
            400: "Bad Request – likely malformed or missing parameters.",
            401: "Unauthorized – check that your API key is correct.",
            403: "Forbidden – the API key may not have the necessary permissions.",
            404: "Not Found – the endpoint may be incorrect or the resource doesn't exist.",
            429: "Too Many Requests – you may have hit a rate limit.",
            500: "Internal Server Error – something went wrong on the server.",
            503: "Service Unavailable – the server is currently down or overloaded.",
        }
        return hints.get(status_code, "Unknown error – check logs for more info.")


class RadarrClient(BaseARRClient):
    """Radarr client: movie inventory and movie deletion."""

    instance_type = "Radarr"

    def get_media(self) -> List[dict]:
        return self.make_get_request(f"{self.url}/api/v3/movie", raise_on_error=True) or []

    def get_excluded_tmdb_ids(self) -> Set[int]:
        exclusions = self.make_get_request(f"{self.url}/api/v3/exclusions") or []
        return {e.get("tmdbId") for e in exclusions if e.get("tmdbId")}

    def to_item(self, movie: Dict[str, Any], instance_id: Union[int, str]) -> InventoryItem:
        return InventoryItem(
            title=movie.get("title", ""),
            guids=_build_guids(
                imdb=movie.get("imdbId"),
                tmdb=movie.get("tmdbId"),
                radarr=movie.get("id"),
            ),
            instance_id=instance_id,
            arr_id=movie.get("id"),
        )

    def fetch_movies(
        self, instance_id: Union[int, str], bypass_exclusions: bool = False
    ) -> List[InventoryItem]:
        """
        List every movie on the instance as inventory items.

        Args:
            instance_id: Identifier recorded on each item for later deletion.
            bypass_exclusions (bool): Include movies on the instance's exclusion list.
        """
        movies = self.get_media()
        if not bypass_exclusions:
            excluded = self.get_excluded_tmdb_ids()
            movies = [m for m in movies if m.get("tmdbId") not in excluded]
        return [self.to_item(movie, instance_id) for movie in movies]

    def lookup_movie_id(self, item: InventoryItem) -> int:
        movie_id = extract_radarr_id(item.guids)
        if movie_id:
            return movie_id
        tmdb_id = extract_tmdb_id(item.guids)
        if tmdb_id:
            matches = self.make_get_request(
                f"{self.url}/api/v3/movie", params={"tmdbId": tmdb_id}, raise_on_error=True
            ) or []
            if matches:
                return matches[0]["id"]
        raise ValueError(f"Could not find Radarr id for movie \"{item.title}\"")

    def delete_from_radarr(self, item: InventoryItem, delete_files: bool) -> None:
        movie_id = self.lookup_movie_id(item)
        self.make_delete_request(
            f"{self.url}/api/v3/movie/{movie_id}",
            params={
                "deleteFiles": str(bool(delete_files)).lower(),
                "addImportExclusion": "false",
            },
            raise_on_error=True,
        )
        self.logger.info(f"Deleted movie \"{item.title}\" from Radarr ({self.url})")


class SonarrClient(BaseARRClient):
    """Sonarr client: series inventory and series deletion."""

    instance_type = "Sonarr"

    def get_media(self) -> List[dict]:
        return self.make_get_request(f"{self.url}/api/v3/series", raise_on_error=True) or []

    def get_excluded_tvdb_ids(self) -> Set[int]:
        exclusions = self.make_get_request(f"{self.url}/api/v3/importlistexclusion") or []
        return {e.get("tvdbId") for e in exclusions if e.get("tvdbId")}

    def to_item(self, series: Dict[str, Any], instance_id: Union[int, str]) -> InventoryItem:
        status = "ended" if series.get("status") == "ended" else "continuing"
        return InventoryItem(
            title=series.get("title", ""),
            guids=_build_guids(
                imdb=series.get("imdbId"),
                tmdb=series.get("tmdbId"),
                tvdb=series.get("tvdbId"),
                sonarr=series.get("id"),
            ),
            instance_id=instance_id,
            series_status=status,
            arr_id=series.get("id"),
        )

    def fetch_series(
        self, instance_id: Union[int, str], bypass_exclusions: bool = False
    ) -> List[InventoryItem]:
        series = self.get_media()
        if not bypass_exclusions:
            excluded = self.get_excluded_tvdb_ids()
            series = [s for s in series if s.get("tvdbId") not in excluded]
        return [self.to_item(show, instance_id) for show in series]

    def lookup_series_id(self, item: InventoryItem) -> int:
        series_id = extract_sonarr_id(item.guids)
        if series_id:
            return series_id
        tvdb_id = extract_tvdb_id(item.guids)
        if tvdb_id:
            matches = self.make_get_request(
                f"{self.url}/api/v3/series", params={"tvdbId": tvdb_id}, raise_on_error=True
            ) or []
            if matches:
                return matches[0]["id"]
        raise ValueError(f"Could not find Sonarr id for series \"{item.title}\"")

    def delete_from_sonarr(self, item: InventoryItem, delete_files: bool) -> None:
        series_id = self.lookup_series_id(item)
        self.make_delete_request(
            f"{self.url}/api/v3/series/{series_id}",
            params={
                "deleteFiles": str(bool(delete_files)).lower(),
                "addImportListExclusion": "false",
            },
            raise_on_error=True,
        )
        self.logger.info(f"Deleted series \"{item.title}\" from Sonarr ({self.url})")

