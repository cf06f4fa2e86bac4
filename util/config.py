import json
import os
import pathlib
import sys
from copy import deepcopy
from typing import Any, Dict, List, Optional, Tuple

import yaml

from util.helper import get_config_dir

TEMPLATE_PATH = pathlib.Path(__file__).parent / "template" / "config_template.json"


def get_config_path() -> str:
    """Return the path of config.yml inside the config directory."""
    return os.path.join(get_config_dir(), "config.yml")


def load_template() -> Dict[str, Any]:
    with open(TEMPLATE_PATH, "r", encoding="utf-8") as tf:
        return json.load(tf)


def ensure_config_file(path: str) -> None:
    """Write the default configuration to path if no file exists yet."""
    if os.path.exists(path):
        return
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as wf:
        yaml.safe_dump(load_template(), wf, sort_keys=False)


class Config:
    """Loads one section of config.yml and exposes its keys as attributes."""

    def __init__(self, module_name: str, path: Optional[str] = None):
        path = path or get_config_path()
        ensure_config_file(path)
        config = load_user_config(path)
        self.module_name = module_name

        # "schedule" only carries module -> schedule string pairs
        if module_name == "schedule":
            self.data = dict(config.get("schedule") or {})
            for k, v in self.data.items():
                setattr(self, k, v)
            self.notifications = {}
            return

        mod_cfg = config.get(module_name, {}) or {}
        for k, v in mod_cfg.items():
            setattr(self, k, v)
        self.instances_config = config.get("instances", {}) or {}
        self.notifications = (config.get("notifications", {}) or {}).get(
            module_name, {}
        ) or {}


def load_user_config(path: str) -> Dict[str, Any]:
    """
    Load YAML configuration from the specified file path.

    Args:
        path (str): Path to the YAML configuration file.

    Returns:
        dict: Parsed configuration dictionary, or empty dict if file is missing or invalid.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except FileNotFoundError:
        sys.stderr.write("[CONFIG] config file not found\n")
        return {}
    except yaml.YAMLError as e:
        sys.stderr.write(f"[CONFIG] Error parsing config file: {e}\n")
        return {}


def _reconcile_config_data(
    template_data: Dict[str, Any], user_data: Dict[str, Any]
) -> Tuple[Dict[str, Any], List[str], List[str]]:
    """
    Recursively reconcile user configuration with a template.

    Empty dicts in the template (instance maps, schedule) accept any user keys.

    Returns:
        Tuple containing reconciled dictionary, list of added keys, and list of removed keys.
    """
    reconciled: Dict[str, Any] = {}
    added: List[str] = []
    removed: List[str] = []

    for key, template_value in template_data.items():
        if key not in user_data:
            reconciled[key] = deepcopy(template_value)
            added.append(key)
            continue
        user_value = user_data[key]
        if not isinstance(template_value, dict):
            reconciled[key] = user_value
        elif not isinstance(user_value, dict):
            reconciled[key] = deepcopy(template_value)
        elif not template_value:
            reconciled[key] = deepcopy(user_value)
        else:
            rec, add, rem = _reconcile_config_data(template_value, user_value)
            reconciled[key] = rec
            added.extend(f"{key}.{k}" for k in add)
            removed.extend(f"{key}.{k}" for k in rem)

    removed.extend(key for key in user_data if key not in template_data)
    return reconciled, added, removed


def manage_config(logger: Any, path: Optional[str] = None) -> None:
    """
    Update the user's config.yml based on config_template.json, logging added and removed keys.
    """
    path = path or get_config_path()
    try:
        template_data = load_template()
    except FileNotFoundError:
        logger.error(f"[CONFIG] Template configuration file not found at {TEMPLATE_PATH}")
        return
    except json.JSONDecodeError as e:
        logger.error(f"[CONFIG] Could not parse template {TEMPLATE_PATH}: {e}")
        return

    user_data: Dict[str, Any] = {}
    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                user_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"[CONFIG] Could not parse user configuration file {path}: {e}")
            logger.warning(
                "[CONFIG] Proceeding with an empty user configuration for reconciliation."
            )
    if not isinstance(user_data, dict):
        logger.warning(
            f"User configuration at {path} is not a dictionary. Treating as empty."
        )
        user_data = {}

    reconciled, added_keys, removed_keys = _reconcile_config_data(
        template_data, user_data
    )

    try:
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                reconciled,
                f,
                sort_keys=False,
                indent=2,
                default_flow_style=False,
                allow_unicode=True,
            )
    except OSError as e:
        logger.error(f"[CONFIG] Could not write to configuration file {path}: {e}")
        return
    logger.info(f"[CONFIG] Configuration file {path} reconciled with template.")
    if added_keys:
        logger.info(f"[CONFIG] Keys ADDED to config: {added_keys}")
    if removed_keys:
        logger.info(f"[CONFIG] Keys REMOVED from config: {removed_keys}")
