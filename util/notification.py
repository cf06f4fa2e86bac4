import json
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import requests
from apprise import Apprise
from ratelimit import limits, sleep_and_retry

from util.constants import apprise_notify_modes, dm_notify_modes, webhook_notify_modes
from util.notification_formatting import (
    apprise_notify_type,
    delete_sync_headline,
    format_delete_sync_fields,
    format_delete_sync_text,
)


class NotificationManager:
    """Sends module summaries to the Discord webhook and Apprise targets of a module."""

    def __init__(self, config, logger, module_name="delete_sync"):
        self.config = config
        self.logger = logger
        self.module_name = module_name

    # ========== Helper/Utility Methods ==========

    @staticmethod
    def extract_error(resp: requests.Response) -> str:
        try:
            data = resp.json()
            if isinstance(data, dict):
                return str(data.get("message") or data.get("error") or resp.text)
            return resp.text
        except ValueError:
            return resp.text

    @staticmethod
    def build_discord_payload(
        title: str,
        description: str,
        fields: List[Dict[str, Any]],
        color: int,
        timestamp: Optional[str] = None,
    ) -> Dict[str, Any]:
        timestamp = timestamp or datetime.now(timezone.utc).isoformat()
        return {
            "username": "Pulsarr",
            "embeds": [
                {
                    "title": title,
                    "description": description,
                    "color": color,
                    "timestamp": timestamp,
                    "fields": fields,
                    "footer": {
                        "text": f"Delete sync operation completed at {datetime.now():%Y-%m-%d %H:%M:%S}"
                    },
                }
            ],
        }

    @staticmethod
    @sleep_and_retry
    @limits(calls=5, period=5)
    def safe_post(url: str, payload: Dict[str, Any]) -> requests.Response:
        return requests.post(url, json=payload, timeout=30)

    def send_and_log_response(
        self, label: str, hook: str, payload: Dict[str, Any]
    ) -> Tuple[bool, str]:
        try:
            resp = self.safe_post(hook, payload)
        except requests.exceptions.RequestException as e:
            self.logger.error(f"[Notification] {label} send exception: {e}", exc_info=True)
            return False, str(e)
        if resp.status_code not in (200, 204):
            err = self.extract_error(resp)
            self.logger.error(
                f"[Notification] ❌ {label} failed ({resp.status_code}): {err}\n"
                f"Payload:\n{json.dumps(payload, indent=2)}"
            )
            return False, err
        self.logger.info(f"[Notification] ✅ {label} notification sent.")
        return True, "Notification sent successfully."

    # ========== Send Methods ==========

    def send_discord_notification(
        self, hook: str, result: Dict[str, Any], dry_run: bool
    ) -> Tuple[bool, str]:
        title, description, color = delete_sync_headline(result, dry_run)
        payload = self.build_discord_payload(
            title, description, format_delete_sync_fields(result), color
        )
        return self.send_and_log_response("Discord", hook, payload)

    def send_apprise_notification(
        self,
        label: str,
        apprise: Apprise,
        title: str,
        body: str,
        notify_type: str = "info",
    ) -> Tuple[bool, str]:
        sent = apprise.notify(title=title, body=body, notify_type=notify_type)
        if sent:
            self.logger.info(f"[Notification] ✅ {label} sent via Apprise.")
            return True, "Notification sent via Apprise."
        self.logger.error(f"[Notification] ❌ {label} failed via Apprise.")
        return False, f"{label} failed via Apprise"

    # ========== Target Management ==========

    def collect_valid_targets(self) -> Dict[str, Any]:
        """Return {"discord": webhook_url, "apprise": [urls]} for the configured targets."""
        targets: Dict[str, Any] = {}
        notification_targets = getattr(self.config, "notifications", None) or {}
        for ttype, target in notification_targets.items():
            if not isinstance(target, dict):
                self.logger.warning(f"Invalid config structure for {ttype}: expected dict.")
                continue
            if ttype == "discord":
                hook = (target.get("webhook") or "").rstrip("/")
                if hook:
                    targets["discord"] = hook
                else:
                    self.logger.warning("Invalid Discord configuration")
            elif ttype == "apprise":
                urls = target.get("urls") or []
                urls = [urls] if isinstance(urls, str) else list(urls)
                if urls:
                    targets["apprise"] = urls
                else:
                    self.logger.warning("Invalid Apprise configuration")
            else:
                self.logger.warning(f"Unknown notification type: {ttype}")
        return targets

    # ========== Main Dispatch ==========

    def _dispatch(self, target: str, data: Any, result: Dict[str, Any], dry_run: bool) -> Dict[str, Any]:
        entry: Dict[str, Any] = {"type": target, "ok": False, "message": None, "error": None}
        try:
            if target == "discord":
                ok, msg = self.send_discord_notification(data, result, dry_run)
            else:
                apprise = Apprise()
                for url in data:
                    apprise.add(url)
                title, body = format_delete_sync_text(result, dry_run)
                ok, msg = self.send_apprise_notification(
                    "Delete Sync", apprise, title, body, apprise_notify_type(result, dry_run)
                )
            entry["ok"] = ok
            entry["message"] = msg
            if not ok:
                entry["error"] = msg
        except Exception as ex:
            tb_str = traceback.format_exc()
            entry["error"] = f"Exception for {target}: {ex}"
            self.logger.error(f"[Notification] Exception for {target}: {ex}\n{tb_str}")
        return entry

    def send_delete_sync_notification(
        self,
        result: Dict[str, Any],
        dry_run: bool,
        mode: Optional[str] = None,
        notify_only_on_deletion: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        Route a delete sync result to the channels selected by the notify mode.

        Channel failures are logged and reported in the returned dict, never raised.

        Args:
            result (dict): DeletionResult.to_dict() output.
            dry_run (bool): Whether the run was a simulation.
            mode (Optional[str]): none, all, discord-only, apprise-only, webhook-only, ...
            notify_only_on_deletion (Optional[bool]): Stay silent when nothing was deleted.

        Returns:
            dict: {"success", "results", "error"}.
        """
        if mode is None:
            mode = getattr(self.config, "delete_sync_notify", "none")
        mode = (mode or "none").lower()
        if notify_only_on_deletion is None:
            notify_only_on_deletion = getattr(
                self.config, "delete_sync_notify_only_on_deletion", False
            )

        if mode == "none":
            self.logger.debug("Delete sync notifications are disabled")
            return {"success": True, "results": [], "error": None}
        if (
            notify_only_on_deletion
            and not result.get("safetyTriggered")
            and result["total"]["deleted"] == 0
        ):
            self.logger.info("Nothing was deleted; skipping delete sync notification")
            return {"success": True, "results": [], "error": None}

        targets = self.collect_valid_targets()
        results: List[Dict[str, Any]] = []
        if mode in webhook_notify_modes:
            if "discord" in targets:
                results.append(self._dispatch("discord", targets["discord"], result, dry_run))
            else:
                self.logger.warning("Webhook notifications requested but no Discord webhook is configured")
        if mode in dm_notify_modes:
            self.logger.info(
                "Discord direct messages need a Discord bot, which is not configured; skipping"
            )
        if mode in apprise_notify_modes:
            if "apprise" in targets:
                results.append(self._dispatch("apprise", targets["apprise"], result, dry_run))
            else:
                self.logger.warning("Apprise notifications requested but no Apprise URLs are configured")

        errors = [r["error"] for r in results if r.get("error")]
        return {
            "success": not errors,
            "results": results,
            "error": "; ".join(errors) or None,
        }
