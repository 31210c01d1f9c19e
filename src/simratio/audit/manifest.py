"""Manifest writer for round execution metadata."""

import json
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any

from simratio.audit.models import (
    ArtifactInfo,
    CommandInfo,
    EnvironmentInfo,
    ErrorInfo,
    FileInfo,
    ManifestData,
    StageInfo,
)
from simratio.utils import calculate_file_sha256, get_file_mtime, get_iso_timestamp

__all__ = ["MANIFEST_VERSION", "ManifestWriter"]

MANIFEST_VERSION = "1.0.0"


class ManifestWriter:
    """Builds a round manifest and writes it atomically to ``run.json``.

    Attributes
    ----------
    manifest : ManifestData
        Manifest being built.
    output_dir : Path
        Directory holding the manifest and the artifacts it lists.
    """

    def __init__(
        self,
        run_id: str,
        output_dir: Path,
        command: CommandInfo,
        environment: EnvironmentInfo,
        parameters: dict[str, Any],
    ) -> None:
        """Initialize manifest writer."""
        self.output_dir = output_dir
        self.manifest_path = output_dir / "run.json"
        self.manifest = ManifestData(
            manifest_version=MANIFEST_VERSION,
            run_id=run_id,
            created_at=get_iso_timestamp(),
            status="partial",
            command=command,
            environment=environment,
            parameters=parameters,
        )
        self._stage_index: dict[str, StageInfo] = {}

    def _get_stage(self, stage_name: str) -> StageInfo:
        stage = self._stage_index.get(stage_name)
        if stage is None:
            raise ValueError(f"Stage not found: {stage_name}")
        return stage

    def add_input_file(self, path: Path, role: str) -> None:
        """Register an input file with its size and digest."""
        self.manifest.inputs.append(
            FileInfo(
                name=path.name,
                role=role,
                bytes=path.stat().st_size,
                sha256=calculate_file_sha256(path),
                mtime=get_file_mtime(path),
            )
        )

    def add_stage(self, stage: StageInfo) -> None:
        """Add stage execution record."""
        self.manifest.stages.append(stage)
        self._stage_index[stage.name] = stage

    def finish_stage(
        self,
        stage_name: str,
        duration_seconds: float,
        counters: dict[str, int] | None = None,
    ) -> None:
        """Mark stage as finished and merge its counters.

        Raises
        ------
        ValueError
            If stage not found.
        """
        stage = self._get_stage(stage_name)
        stage.finished_at = get_iso_timestamp()
        stage.duration_seconds = duration_seconds
        if counters:
            stage.counters.update(counters)

    def add_output_artifact(self, path: Path, entries: int | None = None) -> ArtifactInfo:
        """Hash an output file and register it.

        Parameters
        ----------
        path : Path
            Artifact path inside the output directory.
        entries : int | None, optional
            Number of table lines in the artifact.

        Returns
        -------
        ArtifactInfo
            Registered artifact.
        """
        try:
            relative = str(path.relative_to(self.output_dir))
        except ValueError:
            relative = str(path)

        artifact = ArtifactInfo(
            path=relative,
            sha256=calculate_file_sha256(path),
            bytes=path.stat().st_size,
            entries=entries,
        )
        self.manifest.outputs.append(artifact)
        return artifact

    def add_error(self, error: ErrorInfo) -> None:
        """Add error record."""
        self.manifest.errors.append(error)

    def finish(self, status: str, duration_seconds: float | None = None) -> None:
        """Finalize manifest and write it."""
        self.manifest.status = status
        self.manifest.finished_at = get_iso_timestamp()
        self.manifest.duration_seconds = duration_seconds
        self._write_manifest_atomic(self.manifest_path)

    def _write_manifest_atomic(self, path: Path) -> None:
        """Write to temp, fsync, rename."""
        temp_path = path.with_suffix(".tmp")
        with temp_path.open("w", encoding="utf-8") as f:
            json.dump(asdict(self.manifest), f, indent=2, ensure_ascii=False)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        temp_path.replace(path)

    def to_dict(self) -> dict[str, Any]:
        """Manifest as dictionary."""
        return asdict(self.manifest)
