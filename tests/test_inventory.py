import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from util.arrpy import ArrRequestError, InventoryItem
from util.deletion.inventory import fetch_inventory
from util.instances import RadarrManager, SonarrManager


class DummyLogger:
    def __init__(self):
        self.logs = []

    def info(self, msg, *args, **kwargs): self.logs.append(f"INFO: {msg}")
    def debug(self, msg, *args, **kwargs): self.logs.append(f"DEBUG: {msg}")
    def warning(self, msg, *args, **kwargs): self.logs.append(f"WARNING: {msg}")
    def error(self, msg, *args, **kwargs): self.logs.append(f"ERROR: {msg}")


class FakeClient:
    def __init__(self, titles, fail=False):
        self.titles = titles
        self.fail = fail
        self.bypass = None

    def _items(self, instance_id, bypass_exclusions=False):
        if self.fail:
            raise ArrRequestError("instance down")
        self.bypass = bypass_exclusions
        return [InventoryItem(title=t, guids=[f"tmdb:{i}"], instance_id=instance_id) for i, t in enumerate(self.titles)]

    fetch_movies = _items
    fetch_series = _items


def test_fetch_inventory_merges_instances():
    logger = DummyLogger()
    first, second = FakeClient(["A", "B"]), FakeClient(["C"])
    sonarr = SonarrManager({}, logger, clients={"main": FakeClient(["Show"])})
    radarr = RadarrManager({}, logger, clients={"hd": first, "4k": second})

    inventory = fetch_inventory(sonarr, radarr, logger)

    assert [s.title for s in inventory.series] == ["Show"]
    assert sorted(m.title for m in inventory.movies) == ["A", "B", "C"]
    assert {m.instance_id for m in inventory.movies} == {"hd", "4k"}
    assert inventory.total == 4
    assert first.bypass is True
    assert "INFO: Found 1 series and 3 movies across all instances" in logger.logs


def test_fetch_inventory_failure_propagates():
    logger = DummyLogger()
    sonarr = SonarrManager({}, logger, clients={"main": FakeClient(["Show"])})
    radarr = RadarrManager({}, logger, clients={"hd": FakeClient([], fail=True)})

    with pytest.raises(ArrRequestError):
        fetch_inventory(sonarr, radarr, logger)


def test_manager_lookup_by_instance_id():
    client = FakeClient([])
    radarr = RadarrManager({}, DummyLogger(), clients={"1": client})
    assert radarr.get_radarr_service(1) is client
    assert radarr.get_radarr_service("2") is None
    assert radarr.get_radarr_service(None) is None


def test_manager_skips_unconfigured_instances():
    logger = DummyLogger()
    manager = SonarrManager(
        {"sonarr": {"main": {"url": "", "api": ""}}}, logger, ["main", "missing"]
    )
    assert manager.clients == {}
    assert "ERROR: [sonarr] Instance 'missing' not found in config." in logger.logs
