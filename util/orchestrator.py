# util/orchestrator.py

import multiprocessing
import time
from datetime import datetime
from typing import Any, Dict, Optional

from croniter import croniter
from dateutil import tz
from prettytable import PrettyTable

from modules import MODULES
from util.config import Config
from util.database import PulsarrDB

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def run_and_track(target_func, module_name, origin):
    db = PulsarrDB()
    start_time = time.monotonic()
    success = False
    try:
        target_func()
        success = True
        status = "success"
        message = "Completed successfully"
    except Exception as e:
        status = "error"
        message = str(e)
    duration = int(time.monotonic() - start_time)
    try:
        db.run_state.record_run_finish(
            module_name,
            success=success,
            status=status,
            message=message,
            duration=duration,
            run_by=origin,
        )
    finally:
        db.close_all()


def _hh_mm(value: str):
    hour, minute = map(int, value.split(":"))
    return hour, minute


def check_schedule(script_name: str, schedule: str, logger: Any, now: Optional[datetime] = None) -> bool:
    """
    Return True when schedule is due at the current minute.

    Supported forms: hourly(MM), daily(HH:MM|HH:MM), weekly(day@HH:MM|...),
    monthly(DD@HH:MM), range(MM/DD-MM/DD|...) and cron(<expression>).
    """
    now = now or datetime.now(tz.tzlocal())
    try:
        frequency, data = schedule.split("(", 1)
    except ValueError:
        logger.error(f"Invalid schedule format: {schedule} for script: {script_name}")
        return False
    frequency = frequency.strip().lower()
    data = data.rstrip().rstrip(")")

    try:
        if frequency == "hourly":
            return int(data) == now.minute

        if frequency == "daily":
            return any(_hh_mm(t) == (now.hour, now.minute) for t in data.split("|"))

        if frequency == "weekly":
            current_day = WEEKDAYS[now.weekday()]
            for entry in data.split("|"):
                day, time_ = entry.split("@")
                if day.strip().lower() == current_day and _hh_mm(time_) == (now.hour, now.minute):
                    return True
            return False

        if frequency == "monthly":
            day_str, time_str = data.split("@")
            return now.day == int(day_str) and _hh_mm(time_str) == (now.hour, now.minute)

        if frequency == "range":
            for start_end in data.split("|"):
                start, end = start_end.split("-")
                start_month, start_day = map(int, start.split("/"))
                end_month, end_day = map(int, end.split("/"))
                if (start_month, start_day) <= (now.month, now.day) <= (end_month, end_day):
                    return True
            return False

        if frequency == "cron":
            current = now.replace(second=0, microsecond=0)
            due = croniter.match(data, current)
            logger.debug(f"Cron '{data}' for {script_name} at {current}: due={due}")
            return due

        logger.error(f"Unknown schedule frequency '{frequency}' for script: {script_name}")
        return False

    except (ValueError, KeyError) as e:
        logger.error(f"Invalid schedule: {schedule} for script: {script_name}")
        logger.error(f"Error: {e}", exc_info=True)
        return False


def print_schedule_table(logger, schedule):
    if logger is None:
        return
    logger.info("=" * 64)
    logger.info("Current Pulsarr Schedule")
    table = PrettyTable(["Module", "Schedule"])
    table.align = "l"
    table.padding_width = 1
    for module_name, schedule_time in schedule.items():
        table.add_row([module_name, schedule_time or "disabled"])
    logger.info("\n" + str(table))
    logger.info("=" * 64)


class PulsarrOrchestrator:
    """
    Runs modules once from the command line, or on their configured schedule.
    """

    def __init__(self, logger, db: Optional[PulsarrDB] = None):
        self.logger = logger
        self.running: Dict[str, Dict[str, Any]] = {}
        self.db = db or PulsarrDB(logger=logger)
        self._last_minute: Dict[str, str] = {}

    def _log(self, level, *args, **kwargs):
        if self.logger:
            log_method = getattr(self.logger, level, None)
            if log_method:
                log_method(*args, **kwargs)

    def run(self, args):
        self._log("debug", f"[ORCH] run() entry with args: {args}")
        try:
            if args.modules:
                self.run_cli_modules(args.modules)
            else:
                self._log("info", "[GENERAL] Starting Pulsarr delete sync scheduler...")
                self.run_schedule()
        except Exception as e:
            self._log("error", f"[ORCH] FATAL error in run(): {e}", exc_info=True)
            raise

    def run_cli_modules(self, modules):
        self._log("info", f"[ORCH] CLI mode: Running modules {modules}")
        for name in modules:
            self.launch_module(name)
        for proc in multiprocessing.active_children():
            proc.join()
        self._log("info", "[ORCH] All CLI modules completed.")

    def run_schedule(self):
        schedule = Config("schedule").data

        self._log("info", "[SCHEDULER] Starting scheduler loop...")
        print_schedule_table(self.logger, schedule)
        self._log("info", "[SCHEDULER] Waiting for scheduled modules...")
        start_time = time.monotonic()
        while True:
            self.tick(schedule)
            time.sleep(5)
            elapsed = int(time.monotonic() - start_time)
            if elapsed % 60 < 5:
                self._log(
                    "debug",
                    f"[SCHEDULER] Scheduler is alive. Uptime: {elapsed // 60}m {elapsed % 60}s",
                )

    def tick(self, schedule, now: Optional[datetime] = None):
        """Run due modules and clean up finished ones."""
        now = now or datetime.now(tz.tzlocal())
        minute_key = now.strftime("%Y-%m-%d %H:%M")
        for name, sched in schedule.items():
            if not sched:
                continue
            if name not in MODULES:
                self._log("error", f"Unknown module in schedule: {name}")
                continue
            entry = self.running.get(name)
            if entry is not None and entry["proc"].is_alive():
                continue
            # a 5 second tick sees the same minute several times
            if self._last_minute.get(name) == minute_key:
                continue
            if check_schedule(name, sched, self.logger, now=now):
                self._last_minute[name] = minute_key
                self._log("info", f"[SCHEDULER] Running scheduled module: {name}")
                launched = self.launch_module(name, origin="scheduled")
                if launched is not None:
                    self.running[name] = launched

        for name in list(self.running):
            entry = self.running[name]
            if not entry["proc"].is_alive():
                self._log("info", f"[{entry['origin'].upper()}] Module {name} finished")
                del self.running[name]

    def launch_module(self, name, origin="manual"):
        if name not in MODULES:
            self._log("error", f"Unknown module: {name}")
            return None

        target_func = MODULES[name]
        self._log("info", f"[{origin.upper()}] Launching module '{name}'...")
        try:
            self.db.run_state.record_run_start(name, run_by=origin)
            proc = multiprocessing.Process(
                target=run_and_track, args=(target_func, name, origin)
            )
            proc.start()
        except (OSError, RuntimeError) as e:
            self._log(
                "error",
                f"[{origin.upper()}] Failed to launch module '{name}': {e}",
                exc_info=True,
            )
            return None
        self._log(
            "info",
            f"[{origin.upper()}] Process for '{name}' started: alive={proc.is_alive()}",
        )
        return {"proc": proc, "origin": origin}

