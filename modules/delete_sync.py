import os
import threading
from dataclasses import dataclass
from typing import Any, Optional

from util.config import Config
from util.constants import default_max_deletion_prevention, default_protection_playlist_name
from util.database import PulsarrDB
from util.deletion import (
    Aborted,
    DeletionPolicy,
    DeletionResult,
    Inventory,
    WatchlistAggregator,
    create_empty_result,
    create_safety_triggered_result,
    execute_deletion,
    fetch_inventory,
    perform_safety_check,
)
from util.helper import create_table, print_settings
from util.instances import RadarrManager, SonarrManager
from util.logger import Logger
from util.notification import NotificationManager
from util.plex import PlexClient
from util.watchlist import WatchlistRefresher, refresh_watchlists

EMPTY_WATCHLIST_MESSAGE = (
    "No watchlist items found - this could be an error condition. "
    "Aborting delete sync to prevent mass deletion."
)


TRUE_STRINGS = ("true", "yes", "on", "1")
FALSE_STRINGS = ("false", "no", "off", "0")


def to_bool(name: str, value: Any) -> bool:
    """Parse a boolean setting, accepting strings such as "false" or "yes"."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
    raise ValueError(f"Invalid boolean for {name}: {value!r}")


@dataclass(frozen=True)
class DeleteSyncConfig:
    delete_movie: bool = False
    delete_ended_show: bool = False
    delete_continuing_show: bool = False
    delete_files: bool = True
    respect_user_sync_setting: bool = True
    delete_sync_notify: str = "none"
    delete_sync_notify_only_on_deletion: bool = False
    enable_plex_playlist_protection: bool = False
    plex_protection_playlist_name: str = default_protection_playlist_name
    max_deletion_prevention: Any = default_max_deletion_prevention
    dry_run: bool = True

    @classmethod
    def from_config(cls, config: Any) -> "DeleteSyncConfig":
        values = {}
        for name, default in cls.__dataclass_fields__.items():
            value = getattr(config, name, None)
            if value is None:
                value = default.default
            elif default.type in (bool, "bool"):
                value = to_bool(name, value)
            values[name] = value
        return cls(**values)

    @property
    def policy(self) -> DeletionPolicy:
        return DeletionPolicy(
            delete_movie=self.delete_movie,
            delete_ended_show=self.delete_ended_show,
            delete_continuing_show=self.delete_continuing_show,
            delete_files=self.delete_files,
            protection_enabled=self.enable_plex_playlist_protection,
            protection_playlist_name=self.plex_protection_playlist_name
            or default_protection_playlist_name,
        )


@dataclass
class DeleteSyncDeps:
    """Everything delete sync talks to, passed in explicitly."""

    watchlist_store: Any
    user_store: Any
    sonarr_manager: Any
    radarr_manager: Any
    watchlist_refresh: Any
    logger: Any
    plex_protection: Optional[Any] = None
    notifier: Optional[Any] = None


class DeleteSyncService:
    """
    Removes library content that no user has on their watchlist, guarded by
    protection playlists and a mass deletion circuit breaker.
    """

    def __init__(self, config: DeleteSyncConfig, deps: DeleteSyncDeps):
        self.config = config
        self.deps = deps
        self.logger = deps.logger
        self.aggregator = WatchlistAggregator(deps.watchlist_store, deps.user_store, deps.logger)
        self._lock = threading.Lock()

    def run(self, dry_run: bool = False) -> DeletionResult:
        """
        Run one delete sync pass.

        Only one pass runs at a time; a call made while another is in progress
        returns an empty result immediately. Aborted passes return a result with
        safety_triggered set and perform no deletions.
        """
        if not self._lock.acquire(blocking=False):
            self.logger.warning("Delete-sync already in progress – ignoring duplicate trigger")
            self.logger.info("Duplicate delete-sync run skipped")
            return create_empty_result()
        try:
            return self._run(dry_run)
        except Exception:
            self.logger.error("Error in delete sync operation:", exc_info=True)
            raise
        finally:
            self._clear_caches()
            self._lock.release()

    def _clear_caches(self) -> None:
        if self.deps.plex_protection is not None:
            self.deps.plex_protection.clear_workflow_caches()

    def _run(self, dry_run: bool) -> DeletionResult:
        policy = self.config.policy
        self.logger.info(f"Starting delete sync operation{' (DRY RUN)' if dry_run else ''}")
        self._clear_caches()

        if not policy.any_enabled:
            self.logger.info("Delete sync is not enabled in configuration, skipping operation")
            return create_empty_result()

        plex = self.deps.plex_protection
        if policy.protection_enabled:
            if plex is None:
                return self._abort(
                    "Plex playlist protection is enabled but no Plex server is configured", dry_run
                )
            if not plex.is_initialized():
                self.logger.info(
                    "Plex playlist protection enabled but not initialized - initializing now"
                )
                if not plex.initialize():
                    return self._abort(
                        "Plex playlist protection is enabled but the Plex server failed to initialize",
                        dry_run,
                    )

        self._log_configuration(dry_run)

        try:
            refresh_watchlists(self.deps.watchlist_refresh, self.logger)
        except Exception as e:
            return self._abort(f"Failed to refresh watchlists: {e}", dry_run)

        watchlist = self.aggregator.get_all_watchlist_items(
            self.config.respect_user_sync_setting
        )
        if not watchlist.guids:
            return self._abort(EMPTY_WATCHLIST_MESSAGE, dry_run)
        self.logger.info(
            f"Found {len(watchlist.guids)} unique GUIDs across all watchlists"
            f"{' (respecting user sync settings)' if self.config.respect_user_sync_setting else ''}"
        )

        try:
            inventory = fetch_inventory(
                self.deps.sonarr_manager, self.deps.radarr_manager, self.logger
            )
        except Exception as e:
            return self._abort(f"Failed to fetch content from Sonarr/Radarr: {e}", dry_run)

        safety = perform_safety_check(
            inventory.series,
            inventory.movies,
            watchlist.guids,
            self.config.max_deletion_prevention,
            self.logger,
        )
        if not safety.safe:
            return self._abort(safety.message, dry_run, inventory)

        protected_guids = None
        if policy.protection_enabled:
            try:
                playlists = plex.get_or_create_protection_playlists(True)
            except Exception as e:
                return self._abort(f"Error retrieving protection playlists: {e}", dry_run, inventory)
            if not playlists:
                return self._abort(
                    f"Could not find or create any \"{policy.protection_playlist_name}\" "
                    "protection playlists. Aborting delete sync to protect content.",
                    dry_run,
                    inventory,
                )
            try:
                protected_guids = plex.get_protected_items()
            except Exception as e:
                return self._abort(
                    f"Error retrieving protected items from playlists: {e}", dry_run, inventory
                )
            self.logger.info(
                f"Loaded {len(protected_guids)} protected GUIDs from \"{policy.protection_playlist_name}\" playlists"
            )

        outcome = execute_deletion(
            inventory.series,
            inventory.movies,
            watchlist.guids,
            policy,
            self.deps.sonarr_manager,
            self.deps.radarr_manager,
            dry_run,
            self.logger,
            protected_guids=protected_guids,
        )
        if isinstance(outcome, Aborted):
            return self._abort(outcome.reason, dry_run, inventory)

        result = outcome.result
        self.logger.info(
            f"Delete sync operation{' (DRY RUN)' if dry_run else ''} completed successfully"
        )
        self._notify(result, dry_run)
        return result

    def _abort(
        self, reason: str, dry_run: bool, inventory: Optional[Inventory] = None
    ) -> DeletionResult:
        inventory = inventory or Inventory()
        self.logger.error(reason)
        self.logger.error("Delete operation aborted to prevent mass deletion.")
        result = create_safety_triggered_result(
            reason, len(inventory.series), len(inventory.movies)
        )
        self._notify(result, dry_run)
        return result

    def _notify(self, result: DeletionResult, dry_run: bool) -> None:
        notifier = self.deps.notifier
        if notifier is None:
            return
        try:
            notifier.send_delete_sync_notification(
                result.to_dict(),
                dry_run,
                mode=self.config.delete_sync_notify,
                notify_only_on_deletion=self.config.delete_sync_notify_only_on_deletion,
            )
        except Exception as e:
            self.logger.error(f"Error sending delete sync notification: {e}")

    def _log_configuration(self, dry_run: bool) -> None:
        policy = self.config.policy
        self.logger.info(
            "Delete configuration: "
            f"movies={policy.delete_movie}, ended shows={policy.delete_ended_show}, "
            f"continuing shows={policy.delete_continuing_show}, delete files={policy.delete_files}, "
            f"respect user sync={self.config.respect_user_sync_setting}, "
            f"playlist protection={policy.protection_enabled}, "
            f"max deletion={self.config.max_deletion_prevention}%, dry run={dry_run}"
        )


def summary_rows(result: DeletionResult):
    total = result.total
    return [
        ["", "Deleted", "Skipped", "Protected", "Processed"],
        ["Movies", result.movies.deleted, result.movies.skipped, result.movies.protected, result.movies.processed],
        ["TV Shows", result.shows.deleted, result.shows.skipped, result.shows.protected, result.shows.processed],
        ["Total", total.deleted, total.skipped, total.protected, total.processed],
    ]


def build_plex_client(config: Config, settings: DeleteSyncConfig, logger: Any) -> Optional[PlexClient]:
    name = getattr(config, "plex_instance", None)
    if not name:
        return None
    info = (config.instances_config.get("plex") or {}).get(name)
    if not info:
        logger.error(f"Plex instance '{name}' not found in config.")
        return None
    return PlexClient(
        info.get("url"),
        info.get("api"),
        logger,
        playlist_name=settings.plex_protection_playlist_name,
        protection_enabled=settings.enable_plex_playlist_protection,
    )


def plex_tokens(config: Config) -> list:
    tokens = list(getattr(config, "plex_tokens", None) or [])
    if tokens:
        return tokens
    name = getattr(config, "plex_instance", None)
    info = (config.instances_config.get("plex") or {}).get(name) if name else None
    return [info["api"]] if info and info.get("api") else []


def main() -> None:
    """
    Run delete sync once using the delete_sync section of config.yml.
    """
    config = Config("delete_sync")
    logger = Logger(getattr(config, "log_level", "info"), config.module_name)
    db = None
    try:
        if str(getattr(config, "log_level", "info")).lower() == "debug":
            print_settings(logger, config)

        settings = DeleteSyncConfig.from_config(config)
        dry_run = settings.dry_run or os.environ.get("DRY_RUN", "").strip().lower() in TRUE_STRINGS
        if dry_run:
            table = [["Dry Run"], ["NO CHANGES WILL BE MADE"]]
            logger.info(create_table(table))

        db = PulsarrDB(logger=logger, db_path=getattr(config, "database_path", None) or None)
        deps = DeleteSyncDeps(
            watchlist_store=db.watchlist,
            user_store=db.users,
            sonarr_manager=SonarrManager(
                config.instances_config, logger, getattr(config, "sonarr_instances", None)
            ),
            radarr_manager=RadarrManager(
                config.instances_config, logger, getattr(config, "radarr_instances", None)
            ),
            watchlist_refresh=WatchlistRefresher(db, plex_tokens(config), logger),
            logger=logger,
            plex_protection=build_plex_client(config, settings, logger),
            notifier=NotificationManager(config, logger, module_name=config.module_name),
        )

        result = DeleteSyncService(settings, deps).run(dry_run=dry_run)

        logger.info(create_table([["Delete Sync Summary"]]))
        logger.info(create_table(summary_rows(result)))
        if result.safety_triggered:
            logger.warning(f"Safety triggered: {result.safety_message}")
        for label, bucket in (("Movie", result.movies), ("Show", result.shows)):
            for item in bucket.items:
                logger.info(
                    f"{label} {'to delete' if dry_run else 'deleted'}: {item.title} ({item.guid}) on {item.instance}"
                )
    except KeyboardInterrupt:
        print("Keyboard Interrupt detected. Exiting...")
    except Exception:
        logger.error("\n\nAn error occurred:\n", exc_info=True)
        raise
    finally:
        if db is not None:
            db.close_all()
        logger.log_outro()
