"""Error taxonomy for ratio construction and smoothing.

Every failure raised by simratio is a ``RatiosError`` tagged with an
``ErrorKind``. Callers branch on ``error.kind`` instead of catching a
hierarchy of exception classes.
"""

from enum import StrEnum

__all__ = ["ErrorKind", "RatiosError"]


class ErrorKind(StrEnum):
    """Failure kinds."""

    UNKNOWN_UID = "unknown_uid"
    PARTIAL_PROFILE_MISSING = "partial_profile_missing"
    NOT_READY = "not_ready"
    MALFORMED_CONFIGURATION = "malformed_configuration"
    LATTICE_TOO_LARGE = "lattice_too_large"
    SOLVER_FAILURE = "solver_failure"
    IO_FAILURE = "io_failure"


class RatiosError(Exception):
    """Raised when a ratio table cannot be built, smoothed or persisted."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        """Initialize tagged error.

        Parameters
        ----------
        kind : ErrorKind
            Failure kind.
        message : str
            Diagnostic message.
        """
        super().__init__(message)
        self.kind = kind

    def __str__(self) -> str:
        """Prefix the message with the failure kind."""
        return f"[{self.kind.value}] {super().__str__()}"
