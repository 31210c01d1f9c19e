"""Data models for audit events and round manifests."""

from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "CommandInfo",
    "EnvironmentInfo",
    "FileInfo",
    "ArtifactInfo",
    "StageInfo",
    "ErrorInfo",
    "ManifestData",
    "LogEvent",
]


@dataclass
class CommandInfo:
    """Command-line information.

    Attributes
    ----------
    argv : list[str]
        Complete command-line arguments.
    cwd : str | None
        Working directory basename.
    """

    argv: list[str]
    cwd: str | None = None


@dataclass
class EnvironmentInfo:
    """Execution environment.

    Attributes
    ----------
    python_version : str
        Python version (e.g., "3.12.3").
    platform : str
        OS and architecture.
    package_version : str
        simratio package version.
    dependencies : dict[str, str]
        Versions of the numerical and CLI stack.
    """

    python_version: str
    platform: str
    package_version: str
    dependencies: dict[str, str] = field(default_factory=dict)


@dataclass
class FileInfo:
    """Input file of a round (records, training pairs, reused ratio table).

    Attributes
    ----------
    name : str
        Filename.
    role : str
        What the file feeds: "records", "attribute_config", "nonmatch_pairs",
        "match_pairs" or "ratios" for a reused table.
    bytes : int
        File size in bytes.
    sha256 : str
        Digest with "sha256:" prefix.
    mtime : str | None
        ISO8601 modification time.
    """

    name: str
    role: str
    bytes: int
    sha256: str
    mtime: str | None = None


@dataclass
class ArtifactInfo:
    """Output artifact.

    Attributes
    ----------
    path : str
        Path relative to the output directory.
    sha256 : str
        Digest with "sha256:" prefix.
    bytes : int | None
        File size in bytes.
    entries : int | None
        Number of table lines in the artifact.
    """

    path: str
    sha256: str
    bytes: int | None = None
    entries: int | None = None


@dataclass
class StageInfo:
    """Stage execution record.

    Attributes
    ----------
    name : str
        Stage identifier.
    started_at : str
        ISO8601 start time.
    counters : dict[str, int]
        Stage-specific counters.
    finished_at : str | None
        ISO8601 end time.
    duration_seconds : float | None
        Stage duration.
    """

    name: str
    started_at: str
    counters: dict[str, int] = field(default_factory=dict)
    finished_at: str | None = None
    duration_seconds: float | None = None


@dataclass
class ErrorInfo:
    """Error record.

    Attributes
    ----------
    timestamp : str
        ISO8601 time of the error.
    exception_class : str
        Exception class name.
    message : str
        Error message.
    kind : str | None
        ``ErrorKind`` value for ``RatiosError``.
    stage : str | None
        Stage where the error occurred.
    traceback : str | None
        Stack trace.
    """

    timestamp: str
    exception_class: str
    message: str
    kind: str | None = None
    stage: str | None = None
    traceback: str | None = None


@dataclass
class ManifestData:
    """Complete round manifest.

    Attributes
    ----------
    manifest_version : str
        Schema version.
    run_id : str
        Unique run identifier.
    created_at : str
        ISO8601 start time.
    status : str
        "success", "failed" or "partial".
    command : CommandInfo
        Command-line information.
    environment : EnvironmentInfo
        Execution environment.
    parameters : dict[str, Any]
        Configuration snapshot.
    inputs : list[FileInfo]
        Input files.
    stages : list[StageInfo]
        Stage records.
    outputs : list[ArtifactInfo]
        Output artifacts.
    finished_at : str | None
        ISO8601 end time.
    duration_seconds : float | None
        Total duration.
    errors : list[ErrorInfo]
        Error records.
    """

    manifest_version: str
    run_id: str
    created_at: str
    status: str
    command: CommandInfo
    environment: EnvironmentInfo
    parameters: dict[str, Any]
    inputs: list[FileInfo] = field(default_factory=list)
    stages: list[StageInfo] = field(default_factory=list)
    outputs: list[ArtifactInfo] = field(default_factory=list)
    finished_at: str | None = None
    duration_seconds: float | None = None
    errors: list[ErrorInfo] = field(default_factory=list)


@dataclass
class LogEvent:
    """Structured log event.

    Attributes
    ----------
    ts : str
        ISO8601 timestamp with microseconds (UTC).
    run_id : str
        Unique run identifier.
    level : str
        "DEBUG", "INFO", "WARN" or "ERROR".
    event : str
        Event type identifier.
    data : dict[str, Any]
        Event payload.
    stage : str | None
        Current stage.
    uid : str | None
        Record uid if the event concerns one record.
    """

    ts: str
    run_id: str
    level: str
    event: str
    data: dict[str, Any]
    stage: str | None = None
    uid: str | None = None
