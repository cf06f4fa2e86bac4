import re
from typing import FrozenSet, Pattern

# Matches a normalized GUID token: a lowercase namespace, a colon, then a non-empty id (e.g. "imdb:tt0111161", "plex:movie/5d77")
guid_token_regex: Pattern = re.compile(r"^[a-z][a-z0-9_.-]*:\S+$")

# Matches the "provider://" separator Plex uses in its Guid tags (e.g. "imdb://tt0111161")
guid_scheme_regex: Pattern = re.compile(r"^([a-z][a-z0-9_.-]*)://")

# Matches an IMDb identifier with an optional "tt" prefix, capturing the digits as group 1
imdb_digits_regex: Pattern = re.compile(r"^(?:tt)?(\d+)$")

default_protection_playlist_name: str = "Do Not Delete"

default_max_deletion_prevention: int = 10

# Notification modes that route delete sync summaries to a Discord webhook
webhook_notify_modes: FrozenSet[str] = frozenset(
    {
        "all",
        "discord-only",
        "webhook-only",
        "discord-webhook",
        "discord-both",
        "webhook",
        "both",
    }
)

# Notification modes that route delete sync summaries to Discord direct messages
dm_notify_modes: FrozenSet[str] = frozenset(
    {
        "all",
        "discord-only",
        "dm-only",
        "discord-message",
        "discord-both",
        "message",
        "both",
    }
)

# Notification modes that route delete sync summaries to Apprise
apprise_notify_modes: FrozenSet[str] = frozenset({"all", "apprise-only"})

# Plex item types whose show-level GUID identifies the protected content
episode_like_types: FrozenSet[str] = frozenset({"episode", "season"})

# Embed colours
color_safety: int = 0xFF0000
color_dry_run: int = 0x3498DB
color_success: int = 0x00FF00
