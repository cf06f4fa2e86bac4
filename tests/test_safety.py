import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from util.arrpy import InventoryItem
from util.deletion.safety import parse_max_deletion_prevention, perform_safety_check


class DummyLogger:
    def __init__(self):
        self.logs = []

    def info(self, msg, *args, **kwargs): self.logs.append(f"INFO: {msg}")
    def debug(self, msg, *args, **kwargs): self.logs.append(f"DEBUG: {msg}")
    def warning(self, msg, *args, **kwargs): self.logs.append(f"WARNING: {msg}")
    def error(self, msg, *args, **kwargs): self.logs.append(f"ERROR: {msg}")


def movies(count, watched):
    """count movies, the first `watched` of which are on a watchlist."""
    return [InventoryItem(title=f"Movie {i}", guids=[f"tmdb:{i}"], instance_id="radarr") for i in range(count)], {
        f"tmdb:{i}" for i in range(watched)
    }


def test_fails_when_candidates_exceed_limit():
    items, guids = movies(100, 49)
    check = perform_safety_check([], items, guids, 50, DummyLogger())

    assert not check.safe
    assert check.candidates == 51
    assert check.message == (
        "Safety check failed: Would delete 51 out of 100 eligible items (51.00%), "
        "which exceeds maximum allowed percentage of 50%."
    )


def test_passes_when_candidates_below_limit():
    items, guids = movies(100, 51)
    check = perform_safety_check([], items, guids, 50, DummyLogger())

    assert check.safe
    assert check.candidates == 49
    assert check.percentage == pytest.approx(49.0)


def test_exact_limit_passes():
    items, guids = movies(10, 5)
    assert perform_safety_check([], items, guids, 50, DummyLogger()).safe


def test_series_and_movies_share_the_denominator():
    series = [InventoryItem(title="Show", guids=["tvdb:1"], instance_id="sonarr", series_status="ended")]
    items, guids = movies(3, 3)
    check = perform_safety_check(series, items, guids, 20, DummyLogger())

    assert check.total == 4
    assert check.candidates == 1
    assert not check.safe


def test_empty_inventory_is_safe():
    logger = DummyLogger()
    check = perform_safety_check([], [], {"tmdb:1"}, 10, logger)

    assert check.safe
    assert check.percentage == 0
    assert any(log.startswith("WARNING: No series or movies") for log in logger.logs)


@pytest.mark.parametrize("value", [-1, 101, "abc", float("nan"), True, [10]])
def test_invalid_limit_fails(value):
    items, guids = movies(10, 10)
    check = perform_safety_check([], items, guids, value, DummyLogger())

    assert not check.safe
    assert check.message.startswith(f'Invalid maxDeletionPrevention value: "{value}"')


@pytest.mark.parametrize("value,expected", [
    (None, 10.0),
    ("", 10.0),
    ("  ", 10.0),
    (0, 0.0),
    (100, 100.0),
    ("25", 25.0),
    (12.5, 12.5),
])
def test_parse_max_deletion_prevention(value, expected):
    assert parse_max_deletion_prevention(value) == expected
