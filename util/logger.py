import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from util.helper import create_bar, create_table, get_log_dir
from util.version import get_version

LOG_FORMAT = "%(asctime)s %(levelname)s %(source_tag)s[%(filename)s]: %(message)s"
DATE_FORMAT = "%m/%d/%y %I:%M:%S %p"


class SafeFormatter(logging.Formatter):
    """Formatter that renders an optional [SOURCE] tag set by adapters."""

    def format(self, record):
        source = getattr(record, "source", None)
        record.source_tag = f"[{source}]" if source else ""
        return super().format(record)


def ensure_log_dir_and_rotate(log_file_path: str, max_logs: int = 9) -> None:
    os.makedirs(os.path.dirname(log_file_path), exist_ok=True)
    if not os.path.isfile(log_file_path):
        return
    for i in range(max_logs - 1, 0, -1):
        old = f"{log_file_path}.{i}"
        if os.path.exists(old):
            os.replace(old, f"{log_file_path}.{i + 1}")
    os.replace(log_file_path, f"{log_file_path}.1")


def console_enabled() -> bool:
    return os.environ.get("LOG_TO_CONSOLE", "").lower() in ("1", "true", "yes")


class Logger:
    """Per-module logger with a rotated log file, console output and source adapters."""

    _initialized: Dict[Any, bool] = {}

    def __init__(
        self,
        log_level: str,
        module_name: str,
        log_file: Optional[str] = None,
        max_logs: int = 9,
        extra: Optional[Dict[str, Any]] = None,
    ):
        log_level = (log_level or "INFO").upper()
        self.module_name = module_name
        self._extra = extra or {}
        self._logger = logging.getLogger(module_name)
        self.start_time = datetime.now()

        key = (module_name, log_file)
        if key in Logger._initialized:
            return
        Logger._initialized[key] = True

        log_file_path = log_file or os.path.join(
            get_log_dir(module_name), f"{module_name}.log"
        )
        ensure_log_dir_and_rotate(log_file_path, max_logs)

        self._logger.setLevel(getattr(logging, log_level, logging.INFO))
        self._logger.propagate = False

        if not self._logger.handlers:
            file_handler = RotatingFileHandler(
                log_file_path, mode="a", backupCount=max_logs
            )
            file_handler.setFormatter(SafeFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
            self._logger.addHandler(file_handler)

            if module_name == "general" or console_enabled():
                console = logging.StreamHandler()
                console.setLevel(self._logger.level)
                console.addFilter(lambda record: record.levelno < logging.ERROR)
                console.setFormatter(logging.Formatter("%(message)s"))
                self._logger.addHandler(console)

            error_console = logging.StreamHandler()
            error_console.setLevel(logging.ERROR)
            error_console.setFormatter(
                logging.Formatter(f"%(levelname)s [{module_name.upper()}]: %(message)s")
            )
            self._logger.addHandler(error_console)

        self._logger.info(
            create_bar(
                f"{module_name.replace('_', ' ').upper()} Version: {get_version()}"
            )
        )

    def get_adapter(self, extra: Optional[Dict[str, Any]] = None) -> logging.LoggerAdapter:
        ctx = dict(self._extra)
        if extra:
            ctx.update(extra)
        ctx["source"] = (ctx.get("source") or self.module_name).upper()
        return logging.LoggerAdapter(self._logger, ctx)

    def log_outro(self) -> None:
        duration = datetime.now() - self.start_time
        hours, remainder = divmod(duration.total_seconds(), 3600)
        minutes, seconds = divmod(remainder, 60)
        formatted_duration = f"{int(hours)}h {int(minutes)}m {int(seconds)}s"
        module_name = self.module_name.replace("_", " ").upper()
        self._logger.info(create_bar(f"{module_name} | Run Time: {formatted_duration}"))

    def __getattr__(self, name):
        return getattr(self._logger, name)
