import json
from typing import Any, Iterable, List, Optional, Set

from util.constants import guid_scheme_regex, guid_token_regex, imdb_digits_regex


def normalize_guid(guid: str) -> str:
    """Lowercase a GUID and collapse "provider://id" into "provider:id"."""
    guid = str(guid).strip().lower()
    return guid_scheme_regex.sub(r"\1:", guid)


def _tokens(raw: Any) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, (list, tuple, set, frozenset)):
        return [item for item in raw if isinstance(item, str)]
    if not isinstance(raw, str):
        return []
    text = raw.strip()
    if not text:
        return []
    if text.startswith("["):
        try:
            decoded = json.loads(text)
        except ValueError:
            return []
        return _tokens(decoded) if isinstance(decoded, list) else []
    if "," in text:
        return text.split(",")
    return [text]


def parse_guids(raw: Any) -> List[str]:
    """Parse persisted or in-memory GUIDs into a list of normalized GUID strings.

    Accepts a JSON-encoded array, a list, a comma-separated string or a single GUID.
    Anything that does not look like ``namespace:id`` is dropped, so malformed input
    yields an empty list instead of raising.

    Args:
        raw (Any): GUID data as stored on a watchlist row or inventory item.

    Returns:
        List[str]: Unique normalized GUIDs in their original order.
    """
    seen: Set[str] = set()
    result: List[str] = []
    for token in _tokens(raw):
        guid = normalize_guid(token)
        if not guid or guid in seen or not guid_token_regex.match(guid):
            continue
        seen.add(guid)
        result.append(guid)
    return result


def create_guid_set(items: Iterable[Any]) -> Set[str]:
    """Union the parsed GUIDs of every raw GUID value in items."""
    guid_set: Set[str] = set()
    for raw in items:
        guid_set.update(parse_guids(raw))
    return guid_set


def has_matching_guids(first: Any, second: Any) -> bool:
    """Return True if the two GUID collections share at least one GUID."""
    if isinstance(second, (set, frozenset)):
        return any(guid in second for guid in parse_guids(first))
    return not create_guid_set([first]).isdisjoint(parse_guids(second))


def get_guid_match_score(first: Any, second: Any) -> int:
    return len(create_guid_set([first]) & create_guid_set([second]))


def extract_typed_guid(guids: Any, prefix: str) -> Optional[str]:
    """Return the first GUID starting with prefix (e.g. "tmdb:"), if any."""
    prefix = prefix.lower()
    for guid in parse_guids(guids):
        if guid.startswith(prefix):
            return guid
    return None


def _extract_int(guids: Any, prefix: str) -> int:
    guid = extract_typed_guid(guids, prefix)
    if not guid:
        return 0
    value = guid[len(prefix):]
    return int(value) if value.isdigit() else 0


def extract_tmdb_id(guids: Any) -> int:
    return _extract_int(guids, "tmdb:")


def extract_tvdb_id(guids: Any) -> int:
    return _extract_int(guids, "tvdb:")


def extract_radarr_id(guids: Any) -> int:
    return _extract_int(guids, "radarr:")


def extract_sonarr_id(guids: Any) -> int:
    return _extract_int(guids, "sonarr:")


def extract_imdb_id(guids: Any) -> int:
    """Return the numeric part of the imdb GUID ("imdb:tt0111161" -> 111161), or 0."""
    guid = extract_typed_guid(guids, "imdb:")
    if not guid:
        return 0
    match = imdb_digits_regex.match(guid[len("imdb:"):])
    return int(match.group(1)) if match else 0
