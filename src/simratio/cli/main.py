"""Command-line interface for simratio.

Provides commands to train a ratio table and to query a persisted one.
"""

import importlib.metadata
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from simratio.attributes import AttributeRegistry

__all__ = ["cli"]

try:
    __version__ = importlib.metadata.version("simratio")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.1.0"  # Fallback for development


def _load_registry(attribute_config: str | None) -> "AttributeRegistry":
    from simratio.attributes import DEFAULT_REGISTRY, load_attribute_config

    if attribute_config is None:
        return DEFAULT_REGISTRY
    return load_attribute_config(attribute_config)


@click.group()
@click.version_option(version=__version__, prog_name="simratio")
def cli() -> None:
    """Similarity-profile likelihood ratios for inventor disambiguation.

    Use 'simratio COMMAND --help' for command-specific help.
    """


@cli.command()
@click.option(
    "--records",
    "records_path",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Delimited records file with a header row",
)
@click.option(
    "--nonmatch",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Known non-match uid pairs, shared by all groups",
)
@click.option(
    "--match",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Known match uid pairs, shared by all groups",
)
@click.option(
    "--group-training",
    type=(str, click.Path(exists=True, dir_okay=False), click.Path(exists=True, dir_okay=False)),
    multiple=True,
    help="GROUP NONMATCH MATCH training files for one group (repeatable)",
)
@click.option(
    "--groups",
    type=str,
    default=None,
    help="Comma-separated groups to build (default: all attribute groups)",
)
@click.option("--uid-column", type=str, default="uid", help="uid column name (default: uid)")
@click.option("--delimiter", type=str, default=",", help="Records field separator (default: ,)")
@click.option(
    "--attribute-config",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON attribute config (default: inventor attributes)",
)
@click.option(
    "--smooth-components/--no-smooth-components",
    default=True,
    help="Smooth each group table before merging (default: on)",
)
@click.option(
    "--smooth-joint/--no-smooth-joint",
    default=True,
    help="Smooth the joint table (default: on)",
)
@click.option(
    "--reuse-ratios",
    is_flag=True,
    help="Load an existing ratio file from OUTPUT_DIR instead of training",
)
@click.option("--no-stats", is_flag=True, help="Skip per-group count dumps")
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False),
    default="out",
    help="Output directory for results (default: out)",
)
@click.option(
    "--ratios-filename",
    type=str,
    default="ratios.txt",
    help="Ratio file name inside OUTPUT_DIR (default: ratios.txt)",
)
@click.option("--laplace-base", type=int, default=1, help="Laplace pseudo-count (default: 1)")
@click.option(
    "--max-lattice-nodes",
    type=int,
    default=500,
    help="Largest lattice to smooth (default: 500)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
def train(
    records_path: str,
    nonmatch: str | None,
    match: str | None,
    group_training: tuple[tuple[str, str, str], ...],
    groups: str | None,
    uid_column: str,
    delimiter: str,
    attribute_config: str | None,
    smooth_components: bool,
    smooth_joint: bool,
    reuse_ratios: bool,
    no_stats: bool,
    output_dir: str,
    ratios_filename: str,
    laplace_base: int,
    max_lattice_nodes: int,
    verbose: bool,
) -> None:
    """Build the joint ratio table from labeled training pairs.

    Outputs are written to OUTPUT_DIR with a full audit trail
    (events.jsonl and run.json).

    Examples
    --------
        simratio train --records records.csv --nonmatch x.txt --match m.txt
        simratio train --records records.csv --group-training personal xp.txt mp.txt \\
            --group-training patent xc.txt mc.txt -o round1
    """
    from simratio.config import RatiosConfig
    from simratio.engine import RoundConfig, run_round

    try:
        config = RoundConfig(
            records_path=Path(records_path),
            nonmatch_pairs=Path(nonmatch) if nonmatch else None,
            match_pairs=Path(match) if match else None,
            group_training={
                group: (Path(x_file), Path(m_file)) for group, x_file, m_file in group_training
            },
            groups=[g.strip() for g in groups.split(",") if g.strip()] if groups else None,
            uid_column=uid_column,
            record_delimiter=delimiter,
            attribute_config=Path(attribute_config) if attribute_config else None,
            smooth_components=smooth_components,
            smooth_joint=smooth_joint,
            reuse_ratios=reuse_ratios,
            write_stats=not no_stats,
            output_dir=Path(output_dir),
            ratios_filename=ratios_filename,
            ratios=RatiosConfig(laplace_base=laplace_base, max_lattice_nodes=max_lattice_nodes),
        )
    except ValueError as e:
        click.secho(f"✗ Invalid configuration: {e}", fg="red", err=True)
        sys.exit(2)

    if verbose:
        click.echo("Starting ratio round...", err=True)
        click.echo(f"  Records: {records_path}", err=True)
        click.echo(f"  Output: {output_dir}", err=True)

    result = run_round(config, command_argv=sys.argv)

    if not result.success:
        click.secho(f"✗ Round failed: {result.error_message}", fg="red", err=True)
        sys.exit(1)

    if verbose:
        click.echo("\nResults:", err=True)
        click.echo(f"  Records: {result.total_records}", err=True)
        click.echo(f"  Pairs counted: {result.pairs_counted}", err=True)
        click.echo(f"  Pairs skipped: {result.pairs_skipped}", err=True)
        for table, status in result.smoothing.items():
            click.echo(f"  Smoothing {table}: {status}", err=True)
        click.echo("\nOutputs:", err=True)
        for name, path in result.output_files.items():
            click.echo(f"  {name}: {path}", err=True)

    if result.reused_ratios:
        click.secho(
            f"✓ Reused {result.joint_entries} ratios from {result.output_files['ratios']}",
            fg="green",
        )
    else:
        click.secho(
            f"✓ Wrote {result.joint_entries} ratios to {result.output_files['ratios']} "
            f"({result.pairs_counted} pairs counted, {result.pairs_skipped} skipped)",
            fg="green",
        )


@cli.command()
@click.argument("ratios_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("profile", type=str)
@click.option(
    "--attribute-config",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON attribute config (default: inventor attributes)",
)
def lookup(ratios_file: str, profile: str, attribute_config: str | None) -> None:
    """Print the ratio of PROFILE in RATIOS_FILE.

    PROFILE is written as in the ratio file, e.g. '4,3,5|2,4,4,4', or with
    the primary delimiter only, e.g. '4,3,5,2,4,4,4'.
    """
    import jsonschema

    from simratio.config import RatiosConfig
    from simratio.errors import RatiosError
    from simratio.models.profiles import parse_profile
    from simratio.ratios import Ratios

    config = RatiosConfig()
    try:
        registry = _load_registry(attribute_config)
        ratios = Ratios.from_file(ratios_file, registry=registry, config=config)
        flat = profile.replace(config.secondary_delim, config.primary_delim)
        key = parse_profile(flat, config.primary_delim)
    except (RatiosError, ValueError, jsonschema.ValidationError) as e:
        click.secho(f"✗ Error: {e}", fg="red", err=True)
        sys.exit(1)

    try:
        value = ratios.lookup(key)
    except KeyError:
        click.secho(f"✗ Profile {key} not in {ratios_file}", fg="red", err=True)
        sys.exit(1)

    click.echo(repr(value))


@cli.command()
@click.argument("ratios_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--attribute-config",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON attribute config naming the groups (default: inventor attributes)",
)
def info(ratios_file: str, attribute_config: str | None) -> None:
    """Print attributes, groups and entry count of RATIOS_FILE."""
    import jsonschema

    from simratio.errors import RatiosError
    from simratio.ratios import Ratios

    try:
        registry = _load_registry(attribute_config)
        ratios = Ratios.from_file(ratios_file, registry=registry)
    except (RatiosError, jsonschema.ValidationError) as e:
        click.secho(f"✗ Error: {e}", fg="red", err=True)
        sys.exit(1)

    click.echo(f"Attributes: {', '.join(ratios.get_attrib_names())}")
    for group, members in ratios.groups.items():
        click.echo(f"  {group}: {', '.join(members)}")
    click.echo(f"Entries: {len(ratios)}")


if __name__ == "__main__":
    cli()
