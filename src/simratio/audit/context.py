"""Run context manager for audit logging and manifest tracking."""

import sys
import traceback
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from simratio.audit.helpers import (
    generate_run_id,
    get_dependency_versions,
    get_package_version,
    get_platform_info,
    get_python_version,
)
from simratio.audit.logger import AuditLogger
from simratio.audit.manifest import ManifestWriter
from simratio.audit.models import CommandInfo, EnvironmentInfo, ErrorInfo, StageInfo
from simratio.errors import RatiosError
from simratio.utils import get_iso_timestamp

__all__ = ["RunContext"]

_TRACKED_DEPENDENCIES = ["numpy", "scipy", "jsonschema", "click"]


class RunContext:
    """Lifecycle of one disambiguation round: events, stages and manifest.

    Attributes
    ----------
    run_id : str
        Unique run identifier.
    output_dir : Path
        Output directory for all artifacts.
    audit_logger : AuditLogger
        Structured event logger.
    manifest_writer : ManifestWriter
        Manifest builder and writer.
    start_time : datetime
        Run start timestamp.
    """

    def __init__(
        self,
        run_id: str,
        output_dir: Path,
        audit_logger: AuditLogger,
        manifest_writer: ManifestWriter,
    ) -> None:
        """Initialize run context."""
        self.run_id = run_id
        self.output_dir = output_dir
        self.audit_logger = audit_logger
        self.manifest_writer = manifest_writer
        self.start_time = datetime.now(UTC)
        self._stage_start_times: dict[str, datetime] = {}

    @classmethod
    def start(
        cls,
        output_dir: Path,
        parameters: dict[str, Any],
        command_argv: list[str] | None = None,
    ) -> "RunContext":
        """Start a new run context.

        Parameters
        ----------
        output_dir : Path
            Output directory for run artifacts.
        parameters : dict[str, Any]
            Configuration snapshot for the manifest.
        command_argv : list[str] | None, optional
            Command-line arguments, uses sys.argv if None.

        Returns
        -------
        RunContext
            Initialized run context.
        """
        run_id = generate_run_id()
        output_dir.mkdir(parents=True, exist_ok=True)

        command = CommandInfo(argv=command_argv or sys.argv, cwd=Path.cwd().name or None)
        environment = EnvironmentInfo(
            python_version=get_python_version(),
            platform=get_platform_info(),
            package_version=get_package_version(),
            dependencies=get_dependency_versions(_TRACKED_DEPENDENCIES),
        )

        audit_logger = AuditLogger(run_id=run_id, log_path=output_dir / "events.jsonl")
        manifest_writer = ManifestWriter(
            run_id=run_id,
            output_dir=output_dir,
            command=command,
            environment=environment,
            parameters=parameters,
        )

        audit_logger.run_started(command=command.argv, parameters=parameters)

        return cls(
            run_id=run_id,
            output_dir=output_dir,
            audit_logger=audit_logger,
            manifest_writer=manifest_writer,
        )

    def register_input(self, path: Path, role: str) -> None:
        """Record an input file in the manifest."""
        self.manifest_writer.add_input_file(path, role)

    def register_artifact(self, path: Path, entries: int | None = None) -> None:
        """Record an output file in the manifest and the event log."""
        artifact = self.manifest_writer.add_output_artifact(path, entries=entries)
        self.audit_logger.artifact_written(
            path=artifact.path, sha256=artifact.sha256, entries=entries
        )

    def start_stage(self, stage_name: str) -> None:
        """Start a round stage."""
        self._stage_start_times[stage_name] = datetime.now(UTC)
        self.manifest_writer.add_stage(StageInfo(name=stage_name, started_at=get_iso_timestamp()))
        self.audit_logger.stage_started(stage=stage_name)

    def finish_stage(self, stage_name: str, counters: dict[str, int] | None = None) -> None:
        """Finish a round stage.

        Raises
        ------
        ValueError
            If stage was not started.
        """
        start_time = self._stage_start_times.pop(stage_name, None)
        if start_time is None:
            raise ValueError(f"Stage not started: {stage_name}")

        duration = (datetime.now(UTC) - start_time).total_seconds()
        self.manifest_writer.finish_stage(stage_name, duration_seconds=duration, counters=counters)
        self.audit_logger.stage_finished(
            stage=stage_name, duration_seconds=duration, counters=counters
        )
        self.audit_logger.set_stage(None)

    def record_error(
        self,
        exception: BaseException,
        stage: str | None = None,
        include_traceback: bool = False,
    ) -> None:
        """Record an error in logs and manifest.

        Parameters
        ----------
        exception : BaseException
            Exception that occurred.
        stage : str | None, optional
            Stage where the error occurred, by default the current stage.
        include_traceback : bool, optional
            Whether to include the stack trace, by default False.
        """
        exception_class = type(exception).__name__
        message = str(exception)
        kind = exception.kind.value if isinstance(exception, RatiosError) else None
        stage = stage if stage is not None else self.audit_logger.current_stage

        tb = None
        if include_traceback:
            tb = "".join(
                traceback.format_exception(type(exception), exception, exception.__traceback__)
            )

        self.manifest_writer.add_error(
            ErrorInfo(
                timestamp=get_iso_timestamp(),
                exception_class=exception_class,
                message=message,
                kind=kind,
                stage=stage,
                traceback=tb,
            )
        )
        self.audit_logger.error(
            exception_class=exception_class,
            message=message,
            kind=kind,
            stage=stage,
            traceback=tb,
        )

    def finish(self, status: str = "success") -> None:
        """Finish the run and write the manifest.

        The audit logger is closed before the events file is hashed so the
        digest covers the complete log.
        """
        duration = (datetime.now(UTC) - self.start_time).total_seconds()
        self.audit_logger.run_finished(status=status, duration_seconds=duration)
        self.audit_logger.close()

        events_path = self.output_dir / "events.jsonl"
        if events_path.exists():
            self.manifest_writer.add_output_artifact(events_path)

        self.manifest_writer.finish(status=status, duration_seconds=duration)

    def __enter__(self) -> "RunContext":
        """Enter context manager."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit context manager, recording errors if present."""
        if exc_type is not None:
            self.record_error(exc_val, include_traceback=True)
            self.finish(status="failed")
        else:
            self.finish(status="success")
