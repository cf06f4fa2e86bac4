from typing import Any, Dict, List, Tuple

from util.constants import color_dry_run, color_safety, color_success

ITEM_PREVIEW_LIMIT = 10


def delete_sync_headline(result: Dict[str, Any], dry_run: bool) -> Tuple[str, str, int]:
    """Return (title, description, colour) for a delete sync summary."""
    total = result["total"]
    if result.get("safetyTriggered"):
        title = "Delete Sync Safety Triggered"
        description = result.get("safetyMessage") or (
            "A safety check prevented the delete sync operation from running."
        )
        color = color_safety
    elif dry_run:
        title = "Delete Sync Simulation Results"
        description = "This was a dry run - no content was actually deleted."
        color = color_dry_run
    else:
        title = "Delete Sync Results"
        description = (
            "The following content was removed because it's no longer in any user's watchlist."
        )
        color = color_success
    if total.get("protected"):
        description += (
            f"\n\n{total['protected']} items were preserved because they are in protected playlists."
        )
    return title, description, color


def _summary_lines(total: Dict[str, int]) -> List[str]:
    lines = [
        f"Processed: {total['processed']} items",
        f"Deleted: {total['deleted']} items",
        f"Skipped: {total['skipped']} items",
    ]
    if total.get("protected"):
        lines.append(f"Protected: {total['protected']} items")
    return lines


def _category_fields(label: str, empty_label: str, bucket: Dict[str, Any]) -> List[Dict[str, Any]]:
    protected_info = f" ({bucket['protected']} protected)" if bucket.get("protected") else ""
    if not bucket["deleted"]:
        return [{"name": label, "value": f"No {empty_label} deleted{protected_info}", "inline": False}]

    items = bucket.get("items", [])
    preview = "\n".join(f"• {item['title']}" for item in items[:ITEM_PREVIEW_LIMIT])
    fields = [
        {
            "name": f"{label} ({bucket['deleted']} deleted{protected_info})",
            "value": preview or "None",
            "inline": False,
        }
    ]
    if len(items) > ITEM_PREVIEW_LIMIT:
        fields.append(
            {
                "name": f"{label} (continued)",
                "value": f"... and {len(items) - ITEM_PREVIEW_LIMIT} more",
                "inline": False,
            }
        )
    return fields


def format_delete_sync_fields(result: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Build the Discord embed fields for a delete sync result dict."""
    fields = [
        {"name": "Summary", "value": "\n".join(_summary_lines(result["total"])), "inline": False}
    ]
    if result.get("safetyTriggered") and result.get("safetyMessage"):
        fields.append({"name": "Safety Reason", "value": result["safetyMessage"], "inline": False})
    fields.extend(_category_fields("Movies", "movies", result["movies"]))
    fields.extend(_category_fields("TV Shows", "TV shows", result["shows"]))
    return fields


def format_delete_sync_text(result: Dict[str, Any], dry_run: bool) -> Tuple[str, str]:
    """Plain text (title, body) for Apprise targets."""
    title, description, _ = delete_sync_headline(result, dry_run)
    lines = [description, "", "Summary:"]
    lines.extend(f"  {line}" for line in _summary_lines(result["total"]))
    if result.get("safetyTriggered") and result.get("safetyMessage"):
        lines.extend(["", f"Safety Reason: {result['safetyMessage']}"])
    for label, key in (("Movies", "movies"), ("TV Shows", "shows")):
        bucket = result[key]
        if not bucket["deleted"]:
            continue
        lines.extend(["", f"{label} ({bucket['deleted']}):"])
        items = bucket.get("items", [])
        lines.extend(f"  • {item['title']}" for item in items[:ITEM_PREVIEW_LIMIT])
        if len(items) > ITEM_PREVIEW_LIMIT:
            lines.append(f"  ... and {len(items) - ITEM_PREVIEW_LIMIT} more")
    return title, "\n".join(lines)


def apprise_notify_type(result: Dict[str, Any], dry_run: bool) -> str:
    if result.get("safetyTriggered"):
        return "failure"
    if dry_run:
        return "info"
    return "success"
