"""Shared helpers for file access, hashing and stamping audit events."""

from simratio.utils.files import read_text_utf8
from simratio.utils.hashing import calculate_file_sha256, format_sha256
from simratio.utils.timestamps import get_file_mtime, get_iso_timestamp

__all__ = [
    "calculate_file_sha256",
    "format_sha256",
    "get_file_mtime",
    "get_iso_timestamp",
    "read_text_utf8",
]
