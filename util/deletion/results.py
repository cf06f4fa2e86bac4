from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass(frozen=True)
class DeletedItem:
    title: str
    guid: str
    instance: str

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "guid": self.guid, "instance": self.instance}


@dataclass
class CategoryResult:
    """Counters and delete records for one content class (movies or shows)."""

    deleted: int = 0
    skipped: int = 0
    protected: int = 0
    items: List[DeletedItem] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.deleted + self.skipped + self.protected

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deleted": self.deleted,
            "skipped": self.skipped,
            "protected": self.protected,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class TotalResult:
    deleted: int = 0
    skipped: int = 0
    protected: int = 0

    @property
    def processed(self) -> int:
        return self.deleted + self.skipped + self.protected

    def to_dict(self) -> Dict[str, int]:
        return {
            "deleted": self.deleted,
            "skipped": self.skipped,
            "processed": self.processed,
            "protected": self.protected,
        }


@dataclass
class DeletionResult:
    """Outcome of one delete sync run.

    ``to_dict`` produces the externally reported shape; the totals are always
    derived from the movie and show buckets so the counters cannot drift apart.
    """

    movies: CategoryResult = field(default_factory=CategoryResult)
    shows: CategoryResult = field(default_factory=CategoryResult)
    safety_triggered: bool = False
    safety_message: Optional[str] = None

    @property
    def total(self) -> TotalResult:
        return TotalResult(
            deleted=self.movies.deleted + self.shows.deleted,
            skipped=self.movies.skipped + self.shows.skipped,
            protected=self.movies.protected + self.shows.protected,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "total": self.total.to_dict(),
            "movies": self.movies.to_dict(),
            "shows": self.shows.to_dict(),
        }
        if self.safety_triggered:
            data["safetyTriggered"] = True
            data["safetyMessage"] = self.safety_message
        return data


@dataclass(frozen=True)
class Proceed:
    result: DeletionResult


@dataclass(frozen=True)
class Aborted:
    reason: str


StageOutcome = Union[Proceed, Aborted]


def create_empty_result() -> DeletionResult:
    return DeletionResult()


def create_safety_triggered_result(
    message: str, series_count: int, movie_count: int
) -> DeletionResult:
    """Build the result of an aborted run: nothing deleted, every inventory item skipped."""
    return DeletionResult(
        movies=CategoryResult(skipped=movie_count),
        shows=CategoryResult(skipped=series_count),
        safety_triggered=True,
        safety_message=message,
    )
