"""Tests for CLI module."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from simratio.cli.main import cli


@pytest.fixture
def runner() -> CliRunner:
    """Provide Click test CLI runner."""
    return CliRunner()


def _train_args(round_inputs: dict[str, Path], output_dir: Path) -> list[str]:
    return [
        "train",
        "--records",
        str(round_inputs["records"]),
        "--nonmatch",
        str(round_inputs["nonmatch"]),
        "--match",
        str(round_inputs["match"]),
        "--attribute-config",
        str(round_inputs["attribute_config"]),
        "-o",
        str(output_dir),
    ]


# ---------------------------------------------------------------------------
# Top-level CLI
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_cli_version_flag(runner: CliRunner) -> None:
    """Test --version flag outputs version string."""
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "simratio" in result.output


@pytest.mark.unit
def test_cli_help(runner: CliRunner) -> None:
    """Test --help output lists commands."""
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    for command in ("train", "lookup", "info"):
        assert command in result.output


@pytest.mark.unit
def test_cli_invalid_command(runner: CliRunner) -> None:
    """Test invalid command returns non-zero exit code."""
    result = runner.invoke(cli, ["invalid-command"])

    assert result.exit_code != 0


# ---------------------------------------------------------------------------
# train
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_train_writes_ratio_file(
    runner: CliRunner, tmp_path: Path, round_inputs: dict[str, Path]
) -> None:
    """Test a small training round from the command line."""
    output_dir = tmp_path / "round1"

    result = runner.invoke(cli, _train_args(round_inputs, output_dir) + ["--verbose"])

    assert result.exit_code == 0, result.output
    assert "Wrote 90 ratios" in result.output
    assert (output_dir / "ratios.txt").exists()
    assert (output_dir / "run.json").exists()
    assert (output_dir / "stats" / "personal_counts.txt").exists()


@pytest.mark.unit
def test_train_reuse_ratios(
    runner: CliRunner, tmp_path: Path, round_inputs: dict[str, Path]
) -> None:
    """Test a second run can reuse the persisted table."""
    output_dir = tmp_path / "round1"
    args = _train_args(round_inputs, output_dir) + ["--no-smooth-joint", "--no-stats"]
    runner.invoke(cli, args)

    result = runner.invoke(cli, args + ["--reuse-ratios"])

    assert result.exit_code == 0, result.output
    assert "Reused" in result.output


@pytest.mark.unit
def test_train_requires_both_shared_files(
    runner: CliRunner, tmp_path: Path, round_inputs: dict[str, Path]
) -> None:
    """Test --nonmatch without --match is a configuration error."""
    result = runner.invoke(
        cli,
        [
            "train",
            "--records",
            str(round_inputs["records"]),
            "--nonmatch",
            str(round_inputs["nonmatch"]),
            "-o",
            str(tmp_path / "out"),
        ],
    )

    assert result.exit_code == 2
    assert "Invalid configuration" in result.output


@pytest.mark.unit
def test_train_reports_round_failure(
    runner: CliRunner, tmp_path: Path, round_inputs: dict[str, Path]
) -> None:
    """Test a failing round exits with code 1."""
    args = _train_args(round_inputs, tmp_path / "out") + ["--groups", "financial"]

    result = runner.invoke(cli, args)

    assert result.exit_code == 1
    assert "Round failed" in result.output


# ---------------------------------------------------------------------------
# lookup and info
# ---------------------------------------------------------------------------


@pytest.fixture
def ratios_file(runner: CliRunner, tmp_path: Path, round_inputs: dict[str, Path]) -> Path:
    """Ratio file from a small training round."""
    output_dir = tmp_path / "trained"
    result = runner.invoke(cli, _train_args(round_inputs, output_dir))
    assert result.exit_code == 0, result.output
    return output_dir / "ratios.txt"


@pytest.mark.unit
def test_lookup_profile(
    runner: CliRunner, ratios_file: Path, round_inputs: dict[str, Path]
) -> None:
    """Test grouped and flat profile spellings give the same ratio."""
    config = ["--attribute-config", str(round_inputs["attribute_config"])]

    grouped = runner.invoke(cli, ["lookup", str(ratios_file), "4,5|2", *config])
    flat = runner.invoke(cli, ["lookup", str(ratios_file), "4,5,2", *config])

    assert grouped.exit_code == 0, grouped.output
    assert grouped.output == flat.output
    assert float(grouped.output) > 0


@pytest.mark.unit
@pytest.mark.parametrize("profile", ["9,9|9", "a,b|c"])
def test_lookup_bad_profile(runner: CliRunner, ratios_file: Path, profile: str) -> None:
    """Test unknown and unparsable profiles exit with code 1."""
    result = runner.invoke(cli, ["lookup", str(ratios_file), profile])

    assert result.exit_code == 1


@pytest.mark.unit
def test_info(runner: CliRunner, ratios_file: Path) -> None:
    """Test info lists attributes, groups and entry count."""
    result = runner.invoke(cli, ["info", str(ratios_file)])

    assert result.exit_code == 0, result.output
    assert "Attributes: firstname, lastname, location" in result.output
    assert "personal: firstname, lastname" in result.output
    assert "Entries: 90" in result.output


@pytest.mark.unit
def test_info_malformed_file(runner: CliRunner, tmp_path: Path) -> None:
    """Test malformed ratio files are reported."""
    path = tmp_path / "ratios.txt"
    path.write_text("no header here\n", encoding="utf-8")

    result = runner.invoke(cli, ["info", str(path)])

    assert result.exit_code == 1
    assert "io_failure" in result.output


@pytest.mark.unit
def test_info_non_utf8_file(runner: CliRunner, tmp_path: Path) -> None:
    """Test undecodable ratio files are reported, not raised."""
    path = tmp_path / "ratios.txt"
    path.write_bytes(b"firstname|ratio\n\xff\xfe|1.0\n")

    result = runner.invoke(cli, ["info", str(path)])

    assert result.exit_code == 1
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert "io_failure" in result.output
    assert f"{path}:2" in result.output


@pytest.mark.unit
def test_info_uses_attribute_config_group_names(
    runner: CliRunner, tmp_path: Path, round_inputs: dict[str, Path]
) -> None:
    """Test group names come from the attribute config given to info."""
    attribute_config = tmp_path / "named_groups.json"
    layout = [("firstname", "names", 4), ("lastname", "names", 5), ("location", "place", 2)]
    attributes = [
        {"name": name, "group": group, "max_similarity": top, "comparator": name}
        for name, group, top in layout
    ]
    attribute_config.write_text(json.dumps({"attributes": attributes}), encoding="utf-8")
    output_dir = tmp_path / "named"
    args = _train_args(round_inputs, output_dir)
    args[args.index("--attribute-config") + 1] = str(attribute_config)
    trained = runner.invoke(cli, args)
    assert trained.exit_code == 0, trained.output
    ratios_path = str(output_dir / "ratios.txt")

    named = runner.invoke(cli, ["info", ratios_path, "--attribute-config", str(attribute_config)])
    default = runner.invoke(cli, ["info", ratios_path])

    assert named.exit_code == 0, named.output
    assert "names: firstname, lastname" in named.output
    assert "place: location" in named.output
    assert "personal: firstname, lastname" in default.output
