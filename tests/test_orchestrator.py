import os
import sys
from datetime import datetime

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from main import parse_args
from util.orchestrator import PulsarrOrchestrator, check_schedule


class DummyLogger:
    def __init__(self):
        self.logs = []

    def info(self, msg, *args, **kwargs): self.logs.append(f"INFO: {msg}")
    def debug(self, msg, *args, **kwargs): self.logs.append(f"DEBUG: {msg}")
    def warning(self, msg, *args, **kwargs): self.logs.append(f"WARNING: {msg}")
    def error(self, msg, *args, **kwargs): self.logs.append(f"ERROR: {msg}")


# Wednesday
NOW = datetime(2024, 5, 15, 3, 30)


@pytest.mark.parametrize("schedule,expected", [
    ("hourly(30)", True),
    ("hourly(15)", False),
    ("daily(01:00|03:30)", True),
    ("daily(03:31)", False),
    ("weekly(wednesday@03:30)", True),
    ("weekly(saturday@03:30)", False),
    ("monthly(15@03:30)", True),
    ("monthly(1@03:30)", False),
    ("range(05/01-05/31)", True),
    ("range(01/01-02/01)", False),
    ("cron(30 3 * * *)", True),
    ("cron(0 4 * * *)", False),
])
def test_check_schedule(schedule, expected):
    assert check_schedule("delete_sync", schedule, DummyLogger(), now=NOW) is expected


@pytest.mark.parametrize("schedule", ["daily", "daily(25:99:00)", "yearly(1)"])
def test_invalid_schedule_is_not_due(schedule):
    logger = DummyLogger()
    assert check_schedule("delete_sync", schedule, logger, now=NOW) is False
    assert any(log.startswith("ERROR:") for log in logger.logs)


class FakeProc:
    def __init__(self, alive=True):
        self.alive = alive

    def is_alive(self):
        return self.alive


class RecordingOrchestrator(PulsarrOrchestrator):
    def __init__(self, logger):
        self.logger = logger
        self.running = {}
        self._last_minute = {}
        self.launched = []

    def launch_module(self, name, origin="manual"):
        self.launched.append((name, origin))
        return {"proc": FakeProc(), "origin": origin}


def test_tick_launches_due_module_once_per_minute():
    orchestrator = RecordingOrchestrator(DummyLogger())
    schedule = {"delete_sync": "daily(03:30)"}

    orchestrator.tick(schedule, now=NOW)
    orchestrator.running["delete_sync"]["proc"].alive = False
    orchestrator.tick(schedule, now=NOW.replace(second=5))

    assert orchestrator.launched == [("delete_sync", "scheduled")]
    assert orchestrator.running == {}


def test_tick_ignores_disabled_and_unknown_modules():
    logger = DummyLogger()
    orchestrator = RecordingOrchestrator(logger)
    orchestrator.tick({"delete_sync": None, "poster_renamerr": "hourly(30)"}, now=NOW)

    assert orchestrator.launched == []
    assert "ERROR: Unknown module in schedule: poster_renamerr" in logger.logs


def test_parse_args_dry_run():
    args = parse_args(["delete_sync", "--dry-run"])
    assert args.modules == ["delete_sync"]
    assert args.dry_run is True
