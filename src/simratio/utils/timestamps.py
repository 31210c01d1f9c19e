"""UTC timestamps for audit events and manifests."""

from datetime import UTC, datetime
from pathlib import Path

__all__ = ["get_iso_timestamp", "get_file_mtime"]


def get_iso_timestamp() -> str:
    """Get current UTC time as ISO8601 with microseconds and a ``Z`` suffix.

    Returns
    -------
    str
        Timestamp such as "2026-02-03T12:34:56.123456Z".
    """
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def get_file_mtime(file_path: Path) -> str | None:
    """Get file modification time as ISO8601, truncated to seconds.

    Parameters
    ----------
    file_path : Path
        Path to file.

    Returns
    -------
    str | None
        Timestamp, or None when the file cannot be stat'ed.
    """
    try:
        mtime = datetime.fromtimestamp(file_path.stat().st_mtime, UTC)
    except (OSError, ValueError):
        return None
    return mtime.replace(microsecond=0).isoformat().replace("+00:00", "Z")
