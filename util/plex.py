from typing import Any, Dict, List, Optional, Set

import requests
from plexapi import utils as plexutils
from plexapi.exceptions import PlexApiException
from plexapi.server import PlexServer

from util.constants import default_protection_playlist_name, episode_like_types
from util.guid import parse_guids
from util.helper import progress

OWNER = "owner"


class ProtectionError(RuntimeError):
    """Raised when the set of protected content cannot be determined."""


class PlexClient:
    """
    Connection to one Plex server and the per-user protection playlists on it.
    """

    def __init__(
        self,
        url: str,
        api_token: str,
        logger: Any,
        playlist_name: str = default_protection_playlist_name,
        protection_enabled: bool = False,
        server: Optional[PlexServer] = None,
    ):
        self.url = url
        self.api_token = api_token
        self.logger = logger
        self.playlist_name = playlist_name or default_protection_playlist_name
        self.protection_enabled = protection_enabled
        self.plex = server
        self._playlist_map: Optional[Dict[str, str]] = None
        self._protected_items: Optional[Set[str]] = None
        self._user_servers: Dict[str, Any] = {}
        if self.plex is None:
            self.connect()

    def connect(self) -> None:
        """
        Attempts to connect to the Plex server.
        """
        try:
            self.plex = PlexServer(self.url, self.api_token)
            _ = self.plex.version
            self.logger.debug(f"Connected to Plex at {self.url}")
        except Exception as e:
            self.logger.error(f"Failed to connect to Plex: {e}")
            self.plex = None

    def is_connected(self) -> bool:
        return self.plex is not None

    def is_initialized(self) -> bool:
        return self.is_connected()

    def initialize(self) -> bool:
        if not self.is_connected():
            self.connect()
        return self.is_connected()

    def clear_workflow_caches(self) -> None:
        """Forget playlists, protected GUIDs and user connections from the last run."""
        self._playlist_map = None
        self._protected_items = None
        self._user_servers = {}

    def get_plex_users(self) -> List[str]:
        """Return the owner followed by every user the server is shared with."""
        usernames = [OWNER]
        account = self.plex.myPlexAccount()
        for user in account.users():
            name = user.username or user.title
            if name and name.lower() not in (OWNER, "admin"):
                usernames.append(name)
        return usernames

    def _server_for(self, username: str) -> Any:
        if username == OWNER:
            return self.plex
        if username not in self._user_servers:
            self._user_servers[username] = self.plex.switchUser(username)
        return self._user_servers[username]

    def find_user_playlist(self, username: str, title: str) -> Optional[str]:
        for playlist in self._server_for(username).playlists():
            if playlist.title == title:
                return str(playlist.ratingKey)
        return None

    def create_user_playlist(self, username: str, title: str) -> Optional[str]:
        """Create an empty video playlist as username and return its ratingKey."""
        server = self._server_for(username)
        key = "/playlists" + plexutils.joinArgs(
            {"title": title, "type": "video", "smart": 0, "uri": "library://all"}
        )
        data = server.query(key, method=server._session.post)
        if data is None or len(data) == 0:
            return None
        rating_key = data[0].attrib.get("ratingKey")
        return str(rating_key) if rating_key else None

    def get_or_create_protection_playlists(self, create_if_missing: bool = True) -> Dict[str, str]:
        """
        Find (and optionally create) every user's protection playlist.

        Args:
            create_if_missing (bool): Create the playlist for users that do not have one.

        Returns:
            Dict[str, str]: username -> playlist ratingKey, cached until clear_workflow_caches.
        """
        if self._playlist_map is not None:
            return self._playlist_map

        playlist_map: Dict[str, str] = {}
        try:
            users = self.get_plex_users()
        except (PlexApiException, requests.exceptions.RequestException) as e:
            self.logger.error(f"Could not list Plex users: {e}")
            users = [OWNER]
        self.logger.info(f"Checking protection playlists for {len(users)} users")

        for username in users:
            try:
                playlist_id = self.find_user_playlist(username, self.playlist_name)
                if playlist_id:
                    self.logger.debug(
                        f"Found existing \"{self.playlist_name}\" playlist for user \"{username}\" with ID: {playlist_id}"
                    )
                    playlist_map[username] = playlist_id
                    continue
                if not create_if_missing:
                    self.logger.debug(
                        f"No \"{self.playlist_name}\" playlist found for user \"{username}\" and creation is disabled"
                    )
                    continue
                playlist_id = self.create_user_playlist(username, self.playlist_name)
                if playlist_id:
                    self.logger.info(
                        f"Created \"{self.playlist_name}\" playlist for user \"{username}\" with ID: {playlist_id}"
                    )
                    playlist_map[username] = playlist_id
                else:
                    self.logger.warning(
                        f"Failed to create \"{self.playlist_name}\" playlist for user \"{username}\""
                    )
            except Exception as e:
                self.logger.error(
                    f"Error processing protection playlist for user \"{username}\": {e}"
                )

        self.logger.info(
            f"Successfully processed protection playlists for {len(playlist_map)} of {len(users)} users"
        )
        self._playlist_map = playlist_map
        return playlist_map

    def _item_guids(self, item: Any) -> List[str]:
        target = item.show() if item.type in episode_like_types else item
        raw = [guid.id for guid in getattr(target, "guids", None) or []]
        if not raw:
            target.reload()
            raw = [guid.id for guid in getattr(target, "guids", None) or []]
        if getattr(target, "guid", None):
            raw.append(target.guid)
        return parse_guids(raw)

    def get_protected_items(self) -> Set[str]:
        """
        Collect the GUIDs of everything in any user's protection playlist.

        Episodes and seasons protect their whole show. The set is cached until
        clear_workflow_caches.

        Raises:
            ProtectionError: If protection is disabled, no playlist exists, or Plex fails.
        """
        if self._protected_items is not None:
            self.logger.debug("Using cached protected items from current workflow")
            return self._protected_items
        if not self.protection_enabled:
            raise ProtectionError("Plex playlist protection is disabled")

        playlist_map = self.get_or_create_protection_playlists(True)
        if not playlist_map:
            raise ProtectionError(
                f"No \"{self.playlist_name}\" playlists found or created for any users"
            )

        protected: Set[str] = set()
        try:
            for username, playlist_id in playlist_map.items():
                playlist = self._server_for(username).fetchItem(int(playlist_id))
                items = playlist.items()
                if not items:
                    self.logger.debug(f"Protection playlist for user \"{username}\" is empty")
                    continue
                self.logger.info(
                    f"Processing {len(items)} protected items from playlist \"{self.playlist_name}\" for user \"{username}\""
                )
                with progress(
                    items,
                    desc=f"Reading protected items for {username}",
                    total=len(items),
                    unit="item",
                    logger=self.logger,
                    leave=False,
                ) as bar:
                    for item in bar:
                        guids = self._item_guids(item)
                        if not guids:
                            self.logger.warning(
                                f"Failed to retrieve GUIDs for protected item \"{item.title}\" - item may not be properly protected"
                            )
                            continue
                        protected.update(guids)
        except (PlexApiException, requests.exceptions.RequestException, ValueError) as e:
            raise ProtectionError(f"Error retrieving protected items from playlists: {e}") from e

        self.logger.info(
            f"Found a total of {len(protected)} unique protected GUIDs across all users"
        )
        self._protected_items = protected
        return protected
