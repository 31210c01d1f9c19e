"""UTF-8 text loading for records, training pairs and ratio files."""

from pathlib import Path

from simratio.errors import ErrorKind, RatiosError

__all__ = ["read_text_utf8"]


def read_text_utf8(path: Path, description: str) -> str:
    """Read a whole file as UTF-8 text.

    Parameters
    ----------
    path : Path
        File to read.
    description : str
        What the file holds, used in error messages (e.g. "ratio file").

    Returns
    -------
    str
        Decoded file content.

    Raises
    ------
    RatiosError
        IO_FAILURE if the file cannot be read, or if it is not valid UTF-8;
        the decode message names the path and line of the bad byte.
    """
    try:
        file_bytes = path.read_bytes()
    except OSError as e:
        raise RatiosError(ErrorKind.IO_FAILURE, f"Cannot read {description} {path}: {e}") from e

    try:
        return file_bytes.decode("utf-8")
    except UnicodeDecodeError as e:
        line_num = file_bytes.count(b"\n", 0, e.start) + 1
        raise RatiosError(
            ErrorKind.IO_FAILURE,
            f"{path}:{line_num}: {description} is not valid UTF-8 ({e.reason})",
        ) from e
