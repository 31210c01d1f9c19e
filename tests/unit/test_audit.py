"""Tests for the audit logger, manifest writer and run context."""

import json
from pathlib import Path

import jsonschema
import pytest

from simratio.audit import AuditLogger, ManifestWriter, RunContext, generate_run_id
from simratio.audit.models import CommandInfo, EnvironmentInfo
from simratio.errors import ErrorKind, RatiosError

_SCHEMAS_DIR = Path(__file__).parent.parent.parent / "schemas"


@pytest.fixture
def logger(tmp_path: Path) -> AuditLogger:
    """Create a logger that auto-closes after test."""
    lg = AuditLogger(run_id="test_run", log_path=tmp_path / "events.jsonl")
    yield lg
    lg.close()


@pytest.fixture(scope="module")
def manifest_schema() -> dict:
    """Load run manifest JSON schema."""
    with (_SCHEMAS_DIR / "run_manifest.schema.json").open() as f:
        return json.load(f)


@pytest.fixture(scope="module")
def event_schema() -> dict:
    """Load log event JSON schema."""
    with (_SCHEMAS_DIR / "log_event.schema.json").open() as f:
        return json.load(f)


def _read_events(path: Path) -> list[dict]:
    """Read all JSONL events from file."""
    with path.open() as f:
        return [json.loads(line) for line in f if line.strip()]


# ---------------------------------------------------------------------------
# AuditLogger
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_logger_event_writes_valid_jsonl(logger: AuditLogger) -> None:
    """Test event() writes a JSONL line with the event envelope."""
    logger.event("ratios_merged", data={"entries": 6}, uid="r1")

    events = _read_events(logger.log_path)

    assert len(events) == 1
    evt = events[0]
    assert evt["run_id"] == "test_run"
    assert evt["event"] == "ratios_merged"
    assert evt["level"] == "INFO"
    assert evt["data"] == {"entries": 6}
    assert evt["uid"] == "r1"
    assert evt["ts"].endswith("Z")


@pytest.mark.unit
def test_logger_stage_context(logger: AuditLogger) -> None:
    """Test the current stage is attached until cleared."""
    logger.stage_started("merge")
    logger.event("ev1")
    logger.event("ev2", stage="override")
    logger.set_stage(None)
    logger.event("ev3")

    events = _read_events(logger.log_path)

    assert [e["stage"] for e in events] == ["merge", "merge", "override", None]


@pytest.mark.unit
def test_logger_pair_skipped(logger: AuditLogger) -> None:
    """Test skipped training pairs are WARN events keyed by uid."""
    logger.pair_skipped(uid="r9", group="personal", reason="unknown_uid", source="match")

    evt = _read_events(logger.log_path)[0]

    assert evt["event"] == "training_pair_skipped"
    assert evt["level"] == "WARN"
    assert evt["uid"] == "r9"
    assert evt["data"] == {"group": "personal", "reason": "unknown_uid", "source": "match"}


@pytest.mark.unit
def test_logger_pair_skipped_records_pair(logger: AuditLogger) -> None:
    """Test both uids of a skipped pair are kept in the payload."""
    logger.pair_skipped(
        uid="r7",
        group="personal",
        reason="partial_profile_missing",
        source="nonmatch",
        pair=("r1", "r7"),
    )

    evt = _read_events(logger.log_path)[0]

    assert evt["uid"] == "r7"
    assert evt["data"]["pair"] == ["r1", "r7"]


@pytest.mark.unit
def test_logger_error_and_artifact(logger: AuditLogger) -> None:
    """Test error and artifact events carry optional fields only when set."""
    logger.error(exception_class="RatiosError", message="boom", kind="io_failure")
    logger.artifact_written(path="ratios.txt", sha256="sha256:" + "0" * 64)

    error, artifact = _read_events(logger.log_path)

    assert error["level"] == "ERROR"
    assert error["data"] == {
        "exception_class": "RatiosError",
        "message": "boom",
        "kind": "io_failure",
    }
    assert artifact["data"] == {"path": "ratios.txt", "sha256": "sha256:" + "0" * 64}


@pytest.mark.unit
def test_logger_context_manager_closes(tmp_path: Path) -> None:
    """Test the file is closed on exit and close() is idempotent."""
    with AuditLogger(run_id="r", log_path=tmp_path / "sub" / "events.jsonl") as lg:
        lg.event("x")

    lg.close()
    assert len(_read_events(tmp_path / "sub" / "events.jsonl")) == 1


@pytest.mark.unit
def test_generate_run_id_is_unique() -> None:
    """Test run ids differ between calls."""
    assert generate_run_id() != generate_run_id()


# ---------------------------------------------------------------------------
# ManifestWriter
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_manifest_writer_inputs_outputs(tmp_path: Path) -> None:
    """Test inputs and artifacts are hashed and written atomically."""
    input_file = tmp_path / "match_pairs.txt"
    input_file.write_text("a b\n", encoding="utf-8")
    output_dir = tmp_path / "out"
    output_dir.mkdir()
    artifact = output_dir / "ratios.txt"
    artifact.write_text("a|ratio\n0|1.0\n", encoding="utf-8")

    writer = ManifestWriter(
        run_id="run",
        output_dir=output_dir,
        command=CommandInfo(argv=["simratio", "train"]),
        environment=EnvironmentInfo(python_version="3.12", platform="x", package_version="0"),
        parameters={"laplace_base": 1},
    )
    writer.add_input_file(input_file, role="match_pairs")
    info = writer.add_output_artifact(artifact, entries=1)
    writer.finish(status="success", duration_seconds=0.5)

    assert info.path == "ratios.txt"
    data = json.loads((output_dir / "run.json").read_text(encoding="utf-8"))
    assert data["status"] == "success"
    assert data["inputs"][0]["role"] == "match_pairs"
    assert data["inputs"][0]["sha256"].startswith("sha256:")
    assert data["outputs"][0]["entries"] == 1
    assert not (output_dir / "run.tmp").exists()


@pytest.mark.unit
def test_manifest_writer_unknown_stage(tmp_path: Path) -> None:
    """Test finishing a stage that was never added."""
    writer = ManifestWriter(
        run_id="run",
        output_dir=tmp_path,
        command=CommandInfo(argv=[]),
        environment=EnvironmentInfo(python_version="3", platform="x", package_version="0"),
        parameters={},
    )

    with pytest.raises(ValueError):
        writer.finish_stage("merge", duration_seconds=0.0)


# ---------------------------------------------------------------------------
# RunContext and schemas
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_run_context_success(tmp_path: Path, manifest_schema: dict, event_schema: dict) -> None:
    """Test a successful run writes a valid manifest and event log."""
    output_dir = tmp_path / "output"

    with RunContext.start(output_dir, parameters={"smooth_joint": True}, command_argv=["t"]) as run:
        run.start_stage("merge")
        run.audit_logger.pair_skipped(uid="r1", group="g", reason="unknown_uid", source="match")
        run.finish_stage("merge", counters={"entries": 6})

    manifest = json.loads((output_dir / "run.json").read_text(encoding="utf-8"))
    jsonschema.validate(instance=manifest, schema=manifest_schema)
    assert manifest["status"] == "success"
    assert manifest["stages"][0]["counters"] == {"entries": 6}
    assert manifest["outputs"][-1]["path"] == "events.jsonl"
    assert set(manifest["environment"]["dependencies"]) == {"numpy", "scipy", "jsonschema", "click"}

    events = _read_events(output_dir / "events.jsonl")
    for event in events:
        jsonschema.validate(instance=event, schema=event_schema)
    assert [e["event"] for e in events][0] == "run_started"
    assert [e["event"] for e in events][-1] == "run_finished"


@pytest.mark.unit
def test_run_context_records_error_kind(tmp_path: Path, manifest_schema: dict) -> None:
    """Test an exception inside the context fails the run with its kind."""
    output_dir = tmp_path / "output"

    with pytest.raises(RatiosError):
        with RunContext.start(output_dir, parameters={}) as run:
            run.start_stage("load_records")
            raise RatiosError(ErrorKind.IO_FAILURE, "records.csv:3: bad row")

    manifest = json.loads((output_dir / "run.json").read_text(encoding="utf-8"))
    jsonschema.validate(instance=manifest, schema=manifest_schema)
    assert manifest["status"] == "failed"
    error = manifest["errors"][0]
    assert error["kind"] == "io_failure"
    assert error["stage"] == "load_records"
    assert "Traceback" in error["traceback"]


@pytest.mark.unit
def test_run_context_finish_unknown_stage(tmp_path: Path) -> None:
    """Test finishing a stage that was not started."""
    run = RunContext.start(tmp_path / "output", parameters={})

    with pytest.raises(ValueError):
        run.finish_stage("merge")
    run.finish(status="failed")


@pytest.mark.unit
def test_schemas_reject_invalid_documents(manifest_schema: dict, event_schema: dict) -> None:
    """Test schemas reject bad status, level and missing fields."""
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(
            instance={"ts": "t", "run_id": "r", "level": "LOUD", "event": "e", "data": {}},
            schema=event_schema,
        )

    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(instance={"run_id": "r", "status": "done"}, schema=manifest_schema)
