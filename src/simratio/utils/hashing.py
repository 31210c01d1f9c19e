"""File digests recorded in run manifests."""

import hashlib
from pathlib import Path

__all__ = ["format_sha256", "calculate_file_sha256"]

_CHUNK_SIZE = 8192


def format_sha256(hex_digest: str) -> str:
    """Prefix a hex digest with ``sha256:``."""
    return f"sha256:{hex_digest}"


def calculate_file_sha256(path: Path) -> str:
    """Calculate the SHA256 digest of a training, ratio or count file.

    Parameters
    ----------
    path : Path
        File to hash.

    Returns
    -------
    str
        Digest with "sha256:" prefix.

    Raises
    ------
    FileNotFoundError
        If file does not exist.
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    sha256_hash = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            sha256_hash.update(chunk)

    return format_sha256(sha256_hash.hexdigest())
