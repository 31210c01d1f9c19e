"""Structured audit logger for JSONL event logging.

Events are appended one JSON object per line and flushed after each
write, so a crashed round still leaves a readable trail.
"""

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

from simratio.audit.models import LogEvent
from simratio.utils import get_iso_timestamp

__all__ = ["AuditLogger"]


class AuditLogger:
    """JSONL audit logger with persistent file handle.

    Attributes
    ----------
    run_id : str
        Unique run identifier.
    log_path : Path
        Path to JSONL log file.
    current_stage : str | None
        Stage attached to events that do not name one.
    """

    def __init__(self, run_id: str, log_path: Path) -> None:
        """Initialize audit logger and open file handle.

        Parameters
        ----------
        run_id : str
            Unique run identifier.
        log_path : Path
            Path to JSONL log file.
        """
        self.run_id = run_id
        self.log_path = log_path
        self.current_stage: str | None = None

        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.log_path.open("a", encoding="utf-8")

    def __enter__(self) -> "AuditLogger":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager and close file."""
        self.close()

    def close(self) -> None:
        """Flush and close the log file handle."""
        if not self._file.closed:
            self._file.flush()
            self._file.close()

    def set_stage(self, stage: str | None) -> None:
        """Set current stage context."""
        self.current_stage = stage

    def event(
        self,
        event_type: str,
        data: dict[str, Any] | None = None,
        level: str = "INFO",
        stage: str | None = None,
        uid: str | None = None,
    ) -> None:
        """Write structured event to log.

        Parameters
        ----------
        event_type : str
            Event type identifier (e.g., "stage_started").
        data : dict[str, Any] | None, optional
            Event payload.
        level : str, optional
            Log level ("DEBUG", "INFO", "WARN", "ERROR").
        stage : str | None, optional
            Stage identifier, uses current_stage if not provided.
        uid : str | None, optional
            Record uid if the event concerns one record.
        """
        log_event = LogEvent(
            ts=get_iso_timestamp(),
            run_id=self.run_id,
            level=level,
            event=event_type,
            data=data if data is not None else {},
            stage=stage if stage is not None else self.current_stage,
            uid=uid,
        )
        json.dump(asdict(log_event), self._file, ensure_ascii=False, separators=(",", ":"))
        self._file.write("\n")
        self._file.flush()

    def run_started(self, command: list[str], parameters: dict[str, Any]) -> None:
        """Log run_started event."""
        self.event("run_started", data={"command": command, "parameters": parameters})

    def run_finished(self, status: str, duration_seconds: float) -> None:
        """Log run_finished event.

        Parameters
        ----------
        status : str
            Run status ("success", "failed", "partial").
        duration_seconds : float
            Total execution time in seconds.
        """
        self.event(
            "run_finished",
            data={"status": status, "duration_seconds": duration_seconds},
        )

    def stage_started(self, stage: str) -> None:
        """Log stage_started event and make ``stage`` current."""
        self.set_stage(stage)
        self.event("stage_started", stage=stage)

    def stage_finished(
        self,
        stage: str,
        duration_seconds: float,
        counters: dict[str, int] | None = None,
    ) -> None:
        """Log stage_finished event.

        Parameters
        ----------
        stage : str
            Stage identifier.
        duration_seconds : float
            Stage execution time in seconds.
        counters : dict[str, int] | None, optional
            Stage-specific counters.
        """
        data: dict[str, Any] = {"duration_seconds": duration_seconds}
        if counters:
            data["counters"] = counters

        self.event("stage_finished", data=data, stage=stage)

    def pair_skipped(
        self,
        uid: str,
        group: str,
        reason: str,
        source: str,
        pair: tuple[str, str] | None = None,
    ) -> None:
        """Log a training pair excluded from the counts.

        Parameters
        ----------
        uid : str
            Offending uid: the unknown one, or the record with an empty
            group column (first uid of the pair when neither or both are).
        group : str
            Attribute group being prepared.
        reason : str
            ``ErrorKind`` value explaining the skip.
        source : str
            Training set the pair came from ("match" or "nonmatch").
        pair : tuple[str, str] | None, optional
            Both uids as listed in the training file.
        """
        data: dict[str, Any] = {"group": group, "reason": reason, "source": source}
        if pair is not None:
            data["pair"] = list(pair)
        self.event(
            "training_pair_skipped",
            data=data,
            level="WARN",
            uid=uid,
        )

    def artifact_written(
        self,
        path: str,
        sha256: str,
        entries: int | None = None,
    ) -> None:
        """Log artifact_written event."""
        data: dict[str, Any] = {"path": path, "sha256": sha256}
        if entries is not None:
            data["entries"] = entries
        self.event("artifact_written", data=data)

    def error(
        self,
        exception_class: str,
        message: str,
        kind: str | None = None,
        stage: str | None = None,
        traceback: str | None = None,
    ) -> None:
        """Log error event."""
        data: dict[str, Any] = {"exception_class": exception_class, "message": message}
        if kind is not None:
            data["kind"] = kind
        if traceback is not None:
            data["traceback"] = traceback

        self.event("error", data=data, stage=stage, level="ERROR")
