import copy
import math
import os
import re
from pathlib import Path
from typing import Any, List, Optional

import yaml
from tqdm import tqdm

SECRET_KEYS = ("api", "token", "password", "apikey")


def print_settings(logger: Any, module_config: Any) -> None:
    """Log a module's settings as YAML with tokens, API keys and webhooks redacted."""
    logger.debug(create_table([["Script Settings"]]))

    raw = {
        k: v
        for k, v in vars(module_config).items()
        if k not in ("module_name", "instances_config")
    }
    sanitized = copy.deepcopy(raw)
    redact_secrets(sanitized)

    try:
        yaml_output = yaml.dump(
            {getattr(module_config, "module_name", "settings"): sanitized},
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )
        logger.debug("\n" + yaml_output)
    except yaml.YAMLError:
        logger.warning(
            "Failed to render config as YAML; falling back to key:value lines."
        )
        for key, value in sanitized.items():
            logger.debug(f"{key}: {value}")

    logger.debug(create_bar("-"))


def redact_secrets(obj: Any) -> None:
    """Recursively redact tokens, API keys, passwords and webhooks in place."""
    if isinstance(obj, dict):
        for key, val in obj.items():
            kl = str(key).lower()
            if val is None:
                continue
            if any(secret in kl for secret in SECRET_KEYS):
                if isinstance(val, list):
                    obj[key] = ["[redacted]" for _ in val]
                else:
                    obj[key] = redact_sensitive_info(str(val), password=True)
            elif "webhook" in kl or kl == "urls":
                if isinstance(val, list):
                    obj[key] = [redact_sensitive_info(str(v)) for v in val]
                else:
                    obj[key] = redact_sensitive_info(str(val))
            else:
                redact_secrets(val)
    elif isinstance(obj, list):
        for item in obj:
            if isinstance(item, (dict, list)):
                redact_secrets(item)


def create_table(data: List[List[Any]]) -> str:
    """Create a formatted table string from 2D data list.

    Args:
        data (List[List[Any]]): Data to create the table from.

    Returns:
        str: Formatted table string.
    """
    if not data:
        return "No data provided."

    num_rows = len(data)
    num_cols = len(data[0])

    col_widths = [
        max(len(str(data[row][col])) for row in range(num_rows))
        for col in range(num_cols)
    ]
    col_widths = [max(width + 2, 5) for width in col_widths]

    total_width = sum(col_widths) + num_cols - 1
    min_width = 76

    if total_width < min_width:
        additional_width = min_width - total_width
        extra_width_per_col = additional_width // num_cols
        remainder = additional_width % num_cols
        for i in range(num_cols):
            col_widths[i] += extra_width_per_col
            if remainder > 0:
                col_widths[i] += 1
                remainder -= 1

    total_width = sum(col_widths) + num_cols - 1

    table = "\n" + "_" * (total_width + 2) + "\n"
    for row in range(num_rows):
        table += "|"
        for col in range(num_cols):
            cell_content = str(data[row][col])
            padding = col_widths[col] - len(cell_content)
            left_padding = padding // 2
            right_padding = padding - left_padding
            table += f"{' ' * left_padding}{cell_content}{' ' * right_padding}|"
        table += "\n"
        if row < num_rows - 1:
            table += "|" + "-" * total_width + "|\n"

    table += "‾" * (total_width + 2)
    return table


def create_bar(middle_text: str) -> str:
    """Create a separation bar with text centered.

    Args:
        middle_text (str): Text to place in center of bar.

    Returns:
        str: Formatted separation bar.
    """
    total_length = 80
    if len(middle_text) == 1:
        remaining_length = total_length - len(middle_text) - 2
        return f"\n{middle_text}{middle_text * remaining_length}\n"
    remaining_length = total_length - len(middle_text) - 4
    left_side_length = math.floor(remaining_length / 2)
    right_side_length = remaining_length - left_side_length
    return f"\n{'*' * left_side_length} {middle_text} {'*' * right_side_length}\n"


def redact_sensitive_info(text: str, password: bool = False) -> str:
    """Mask a Discord webhook path or URL credentials (Apprise URLs); password=True masks everything."""
    if password:
        return "[redacted]"

    text = re.sub(
        r"https://discord(?:app)?\.com/api/webhooks/[^/]+/\S+",
        r"https://discord.com/api/webhooks/[redacted]",
        text,
    )
    text = re.sub(r"(://)[^:/@\s]+:[^@\s]+@", r"\1[redacted]@", text)
    return text


def progress(
    iterable: Any,
    desc: Optional[str] = None,
    total: Optional[int] = None,
    unit: Optional[str] = None,
    logger: Optional[Any] = None,
    leave: bool = True,
    **kwargs: Any,
) -> Any:
    """Wrap tqdm to toggle progress bars based on LOG_TO_CONSOLE env var.

    Returns:
        tqdm or DummyProgress: Progress bar or dummy context manager.
    """
    log_console = os.environ.get("LOG_TO_CONSOLE", "").lower() in ("1", "true", "yes")

    class DummyProgress:
        def __init__(self, iterable: Any) -> None:
            self.iterable = iterable

        def __enter__(self) -> "DummyProgress":
            return self

        def __exit__(self, exc_type, exc_val, exc_tb) -> None:
            pass

        def __iter__(self):
            return iter(self.iterable)

        def update(self, n: int = 1) -> None:
            pass

    if not log_console:
        return DummyProgress(iterable)
    return tqdm(iterable, desc=desc, total=total, unit=unit, leave=leave, **kwargs)


def get_log_dir(module_name: str) -> str:
    """Return the log directory for a given module."""
    log_base = os.getenv("LOG_DIR")
    if log_base:
        log_dir = Path(log_base) / module_name
    else:
        log_dir = Path(__file__).resolve().parents[1] / "logs" / module_name
    os.makedirs(log_dir, exist_ok=True)
    return str(log_dir)


def get_config_dir() -> str:
    """
    Return the path to the config directory, using DOCKER_ENV/CONFIG_DIR if set,
    otherwise using the standard project layout.
    """
    if os.environ.get("DOCKER_ENV"):
        config_dir = os.getenv("CONFIG_DIR", "/config")
    else:
        config_dir = os.getenv(
            "CONFIG_DIR", str(Path(__file__).resolve().parents[1] / "config")
        )
    Path(config_dir).mkdir(parents=True, exist_ok=True)
    return str(config_dir)
