from typing import Any, Dict, Iterable, List, Optional, Type, Union

from util.arrpy import BaseARRClient, InventoryItem, RadarrClient, SonarrClient


class ArrInstanceManager:
    """Holds one client per configured Radarr/Sonarr instance, keyed by instance name."""

    client_class: Type[BaseARRClient] = BaseARRClient
    instance_type: str = ""

    def __init__(
        self,
        instances_config: Dict[str, Any],
        logger: Any,
        instance_names: Optional[Iterable[str]] = None,
        clients: Optional[Dict[str, BaseARRClient]] = None,
    ):
        self.logger = logger
        self.clients: Dict[str, BaseARRClient] = dict(clients or {})
        if clients is not None:
            return
        configured = (instances_config or {}).get(self.instance_type, {}) or {}
        names = list(instance_names or []) or list(configured)
        for name in names:
            info = configured.get(name)
            if not info:
                logger.error(f"[{self.instance_type}] Instance '{name}' not found in config.")
                continue
            url, api = info.get("url"), info.get("api")
            if not url or not api:
                logger.warning(
                    f"[{self.instance_type}] Instance '{name}' missing URL or API key. Skipping."
                )
                continue
            client = self.client_class(url, api, logger)
            if not client.is_connected():
                logger.error(
                    f"[{self.instance_type}] Connection failed for '{name}'. Skipping."
                )
                continue
            self.clients[name] = client

    def get_service(self, instance_id: Union[int, str, None]) -> Optional[BaseARRClient]:
        if instance_id is None:
            return None
        return self.clients.get(str(instance_id))

    def _fetch_all(self, fetch_name: str, bypass_exclusions: bool) -> List[InventoryItem]:
        items: List[InventoryItem] = []
        for name, client in self.clients.items():
            fetched = getattr(client, fetch_name)(name, bypass_exclusions=bypass_exclusions)
            self.logger.debug(
                f"[{self.instance_type}] Fetched {len(fetched)} items from '{name}'"
            )
            items.extend(fetched)
        return items


class SonarrManager(ArrInstanceManager):
    client_class = SonarrClient
    instance_type = "sonarr"

    def fetch_all_series(self, bypass_exclusions: bool = False) -> List[InventoryItem]:
        """Return every series across all instances; any instance failure propagates."""
        return self._fetch_all("fetch_series", bypass_exclusions)

    def get_sonarr_service(self, instance_id: Union[int, str, None]) -> Optional[SonarrClient]:
        return self.get_service(instance_id)


class RadarrManager(ArrInstanceManager):
    client_class = RadarrClient
    instance_type = "radarr"

    def fetch_all_movies(self, bypass_exclusions: bool = False) -> List[InventoryItem]:
        """Return every movie across all instances; any instance failure propagates."""
        return self._fetch_all("fetch_movies", bypass_exclusions)

    def get_radarr_service(self, instance_id: Union[int, str, None]) -> Optional[RadarrClient]:
        return self.get_service(instance_id)
