import subprocess
from pathlib import Path

BASE = Path(__file__).parents[1] / "VERSION"


def get_version() -> str:
    """Return the VERSION file contents, suffixed with branch and commit count inside a git checkout."""
    try:
        base_version = BASE.read_text().strip()
    except FileNotFoundError:
        base_version = "0.0.0"
    try:
        branch, commit_count = (
            subprocess.check_output(cmd, stderr=subprocess.DEVNULL).decode().strip()
            for cmd in (
                ["git", "rev-parse", "--abbrev-ref", "HEAD"],
                ["git", "rev-list", "--count", "HEAD"],
            )
        )
    except (OSError, subprocess.CalledProcessError):
        return base_version
    return f"{base_version}.{branch}{commit_count}"
