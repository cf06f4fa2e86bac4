import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Set

from util.constants import default_max_deletion_prevention
from util.guid import has_matching_guids


@dataclass(frozen=True)
class SafetyCheck:
    safe: bool
    message: str
    candidates: int = 0
    total: int = 0
    percentage: float = 0.0


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def parse_max_deletion_prevention(value: Any) -> Optional[float]:
    """Return the ceiling as a float, or None when it is not a percentage in [0, 100]."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return float(default_max_deletion_prevention)
    if isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(parsed) or parsed < 0 or parsed > 100:
        return None
    return parsed


def count_deletion_candidates(items: Iterable[Any], watchlist_guids: Set[str]) -> int:
    return sum(1 for item in items if not has_matching_guids(item.guids, watchlist_guids))


def perform_safety_check(
    series: Iterable[Any],
    movies: Iterable[Any],
    watchlist_guids: Set[str],
    max_deletion_prevention: Any,
    logger: Any,
) -> SafetyCheck:
    """Refuse the run when too large a share of the library would be removed.

    Every inventory item that shares no GUID with the watchlist set is a candidate
    deletion. The run is unsafe when candidates make up more than
    ``max_deletion_prevention`` percent of the whole inventory. An empty inventory
    counts as 0% and passes.
    """
    series = list(series)
    movies = list(movies)
    total = len(series) + len(movies)
    candidates = count_deletion_candidates(series, watchlist_guids)
    candidates += count_deletion_candidates(movies, watchlist_guids)
    percentage = (candidates / total) * 100 if total else 0.0

    if not total:
        logger.warning(
            "No series or movies found in any instance; safety check passes with nothing to delete"
        )

    max_pct = parse_max_deletion_prevention(max_deletion_prevention)
    if max_pct is None:
        return SafetyCheck(
            safe=False,
            message=(
                f'Invalid maxDeletionPrevention value: "{max_deletion_prevention}". '
                "Please set a percentage between 0 and 100 inclusive."
            ),
            candidates=candidates,
            total=total,
            percentage=percentage,
        )

    logger.info(
        f"Delete sync would remove {candidates} of {total} items ({percentage:.2f}%), "
        f"maximum allowed is {_format_number(max_pct)}%"
    )
    if percentage > max_pct:
        return SafetyCheck(
            safe=False,
            message=(
                f"Safety check failed: Would delete {candidates} out of {total} eligible items "
                f"({percentage:.2f}%), which exceeds maximum allowed percentage of "
                f"{_format_number(max_pct)}%."
            ),
            candidates=candidates,
            total=total,
            percentage=percentage,
        )
    return SafetyCheck(
        safe=True,
        message="Safety check passed",
        candidates=candidates,
        total=total,
        percentage=percentage,
    )
