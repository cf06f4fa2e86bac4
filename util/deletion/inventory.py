from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, List

from util.arrpy import InventoryItem


@dataclass
class Inventory:
    series: List[InventoryItem] = field(default_factory=list)
    movies: List[InventoryItem] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.series) + len(self.movies)


def fetch_inventory(
    sonarr_manager: Any,
    radarr_manager: Any,
    logger: Any,
    bypass_exclusions: bool = True,
) -> Inventory:
    """Fetch all series and all movies concurrently.

    Both fetches must succeed: the first exception raised by either one is
    re-raised so no decision is ever made on a partial library listing.
    """
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="inventory") as executor:
        series_future = executor.submit(sonarr_manager.fetch_all_series, bypass_exclusions)
        movies_future = executor.submit(radarr_manager.fetch_all_movies, bypass_exclusions)
        series = series_future.result()
        movies = movies_future.result()

    logger.info(f"Found {len(series)} series and {len(movies)} movies across all instances")
    return Inventory(series=list(series), movies=list(movies))
