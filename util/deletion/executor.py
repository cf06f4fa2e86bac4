from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Set

from util.constants import default_protection_playlist_name
from util.deletion.results import (
    Aborted,
    CategoryResult,
    DeletedItem,
    DeletionResult,
    Proceed,
    StageOutcome,
)
from util.guid import parse_guids
from util.helper import progress

MOVIE = "movie"
SHOW = "show"


@dataclass(frozen=True)
class DeletionPolicy:
    delete_movie: bool = False
    delete_ended_show: bool = False
    delete_continuing_show: bool = False
    delete_files: bool = True
    protection_enabled: bool = False
    protection_playlist_name: str = default_protection_playlist_name

    @property
    def any_enabled(self) -> bool:
        return self.delete_movie or self.delete_ended_show or self.delete_continuing_show

    def allows_show(self, series_status: Optional[str]) -> bool:
        if series_status != "ended":
            return self.delete_continuing_show
        return self.delete_ended_show


def _describe(item: Any) -> str:
    return f"\"{item.title}\" (instance: {item.instance_id}, guids: {item.guids})"


def _process_items(
    kind: str,
    items: Iterable[Any],
    watchlist_guids: Set[str],
    policy: DeletionPolicy,
    get_service: Callable[[Any], Any],
    dry_run: bool,
    logger: Any,
    protected_guids: Optional[Set[str]],
) -> CategoryResult:
    bucket = CategoryResult()
    items = list(items)
    label = "movie" if kind == MOVIE else "show"

    with progress(
        items,
        desc=f"Processing {label}s",
        total=len(items),
        unit=label,
        logger=logger,
        leave=False,
    ) as bar:
        for item in bar:
            guids = parse_guids(item.guids)
            if watchlist_guids.intersection(guids):
                continue

            if not guids:
                logger.warning(f"Skipping {label} {_describe(item)}: no identifiable GUIDs")
                bucket.skipped += 1
                continue

            if kind == SHOW and not policy.allows_show(item.series_status):
                status = "ended" if item.series_status == "ended" else "continuing"
                logger.debug(
                    f"Skipping {status} show \"{item.title}\": deletion of {status} shows is disabled"
                )
                bucket.skipped += 1
                continue

            service = get_service(item.instance_id) if item.instance_id is not None else None
            if service is None:
                logger.warning(
                    f"Skipping {label} {_describe(item)}: no {'Radarr' if kind == MOVIE else 'Sonarr'} "
                    "service found for its instance"
                )
                bucket.skipped += 1
                continue

            if policy.protection_enabled and protected_guids.intersection(guids):
                logger.info(
                    f"Not deleting {label} \"{item.title}\": protected by playlist "
                    f"\"{policy.protection_playlist_name}\""
                )
                bucket.protected += 1
                continue

            record = DeletedItem(
                title=item.title,
                guid=guids[0],
                instance=str(item.instance_id),
            )
            if dry_run:
                logger.info(f"[DRY RUN] Would delete {label} \"{item.title}\" from instance {item.instance_id}")
            else:
                try:
                    if kind == MOVIE:
                        service.delete_from_radarr(item, policy.delete_files)
                    else:
                        service.delete_from_sonarr(item, policy.delete_files)
                except Exception as e:
                    logger.error(f"Error deleting {label} {_describe(item)}: {e}")
                    bucket.skipped += 1
                    continue
            bucket.deleted += 1
            bucket.items.append(record)

    summary = (
        f"{label} deletion summary: {bucket.deleted} "
        f"{'identified for deletion' if dry_run else 'deleted'}, {bucket.skipped} skipped"
    )
    if policy.protection_enabled:
        summary += (
            f", {bucket.protected} protected by playlist \"{policy.protection_playlist_name}\""
        )
    logger.info(summary)
    return bucket


def execute_deletion(
    series: Iterable[Any],
    movies: Iterable[Any],
    watchlist_guids: Set[str],
    policy: DeletionPolicy,
    sonarr_manager: Any,
    radarr_manager: Any,
    dry_run: bool,
    logger: Any,
    protected_guids: Optional[Set[str]] = None,
) -> StageOutcome:
    """Classify every inventory item and delete the ones nobody wants.

    Watchlisted items are kept and never counted. Anything that cannot be
    deleted safely is counted as skipped, protected items are counted as
    protected, and the rest is deleted (only recorded when ``dry_run``).
    A failed delete call is logged and counted as skipped.

    Args:
        protected_guids (Optional[Set[str]]): Resolved protection set. Required when
            ``policy.protection_enabled``; without it the run is aborted before any
            item is touched.

    Returns:
        Proceed | Aborted: The accumulated result, or the reason the run was aborted.
    """
    if policy.protection_enabled and protected_guids is None:
        return Aborted(
            "Plex playlist protection is enabled but protected items were never resolved. "
            "Aborting delete sync to avoid deleting protected content."
        )

    result = DeletionResult()

    if policy.delete_movie:
        result.movies = _process_items(
            MOVIE,
            movies,
            watchlist_guids,
            policy,
            radarr_manager.get_radarr_service,
            dry_run,
            logger,
            protected_guids,
        )
    else:
        logger.info("Movie deletion disabled in configuration, skipping")

    result.shows = _process_items(
        SHOW,
        series,
        watchlist_guids,
        policy,
        sonarr_manager.get_sonarr_service,
        dry_run,
        logger,
        protected_guids,
    )

    return Proceed(result)

