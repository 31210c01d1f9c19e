"""Round runner: training pairs to a persisted joint ratio table.

Stages:
    load_records:       records file -> uid index
    prepare_components: training pairs -> per-group counts and ratios
    smooth_components:  optional per-group monotone smoothing
    merge:              components -> joint table
    smooth_joint:       optional joint monotone smoothing
    write_outputs:      ratio file and per-group count dumps

With ``reuse_ratios`` and an existing ratio file, the round loads the
file in a single ``load_ratios`` stage instead.
"""

from pathlib import Path

from simratio.attributes import DEFAULT_REGISTRY, AttributeRegistry, load_attribute_config
from simratio.audit.context import RunContext
from simratio.engine.config import RoundConfig, RoundResult
from simratio.models.records import Record, build_uid_index, load_records
from simratio.ratios import RatioComponent, Ratios
from simratio.smoothing.qp import QPSolver

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_registry(config: RoundConfig, ctx: RunContext) -> AttributeRegistry:
    if config.attribute_config is None:
        return DEFAULT_REGISTRY
    ctx.register_input(config.attribute_config, role="attribute_config")
    return load_attribute_config(config.attribute_config)


def _register_training_inputs(config: RoundConfig, groups: list[str], ctx: RunContext) -> None:
    registered: set[Path] = set()
    for group in groups:
        nonmatch, match = config.training_files(group)
        for path, role in ((nonmatch, "nonmatch_pairs"), (match, "match_pairs")):
            if path not in registered and path.exists():
                ctx.register_input(path, role=role)
                registered.add(path)


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


def _stage_load_ratios(
    config: RoundConfig,
    registry: AttributeRegistry,
    ctx: RunContext,
    result: RoundResult,
) -> None:
    ctx.start_stage("load_ratios")
    ctx.register_input(config.ratios_path, role="ratios")
    ratios = Ratios.from_file(
        config.ratios_path, registry=registry, config=config.ratios, logger=ctx.audit_logger
    )
    result.reused_ratios = True
    result.joint_entries = len(ratios)
    result.output_files["ratios"] = str(config.ratios_path)
    ctx.finish_stage("load_ratios", counters={"entries": len(ratios)})


def _stage_load_records(config: RoundConfig, ctx: RunContext) -> dict[str, Record]:
    ctx.start_stage("load_records")
    ctx.register_input(config.records_path, role="records")
    records = load_records(
        config.records_path, uid_column=config.uid_column, delimiter=config.record_delimiter
    )
    uid_index = build_uid_index(records)
    ctx.finish_stage("load_records", counters={"records": len(uid_index)})
    return uid_index


def _stage_prepare_components(
    config: RoundConfig,
    groups: list[str],
    uid_index: dict[str, Record],
    registry: AttributeRegistry,
    ctx: RunContext,
) -> list[RatioComponent]:
    ctx.start_stage("prepare_components")
    _register_training_inputs(config, groups, ctx)

    components: list[RatioComponent] = []
    counters = {"pairs_in": 0, "pairs_counted": 0, "pairs_skipped": 0}
    for group in groups:
        component = RatioComponent(
            uid_index, group, registry=registry, config=config.ratios, logger=ctx.audit_logger
        )
        nonmatch, match = config.training_files(group)
        component.prepare(nonmatch, match)
        components.append(component)

        counters["pairs_in"] += component.stats["pairs_in"]
        counters["pairs_counted"] += component.stats["pairs_counted"]
        counters["pairs_skipped"] += (
            component.stats["pairs_skipped_unknown_uid"]
            + component.stats["pairs_skipped_partial_profile"]
        )

    ctx.finish_stage("prepare_components", counters=counters)
    return components


def _stage_smooth_components(
    components: list[RatioComponent],
    solver: QPSolver | None,
    ctx: RunContext,
    result: RoundResult,
) -> None:
    ctx.start_stage("smooth_components")
    smoothed = 0
    for component in components:
        outcome = component.smooth(solver)
        result.smoothing[f"component:{component.group}"] = outcome.status.value
        smoothed += int(outcome.smoothed)
    ctx.finish_stage(
        "smooth_components",
        counters={"smoothed": smoothed, "skipped": len(components) - smoothed},
    )


def _stage_write_outputs(
    config: RoundConfig,
    components: list[RatioComponent],
    ratios: Ratios,
    ctx: RunContext,
    result: RoundResult,
) -> None:
    ctx.start_stage("write_outputs")
    ratios_path = ratios.write_ratios_file(config.ratios_path)
    ctx.register_artifact(ratios_path, entries=len(ratios))
    result.output_files["ratios"] = str(ratios_path)

    if config.write_stats:
        for component in components:
            stats_path = config.output_dir / "stats" / f"{component.group}_counts.txt"
            component.stats_output(stats_path)
            ctx.register_artifact(stats_path)
            result.output_files[f"counts:{component.group}"] = str(stats_path)

    ctx.finish_stage("write_outputs", counters={"files": len(result.output_files)})


def _run_stages(
    config: RoundConfig,
    ctx: RunContext,
    solver: QPSolver | None,
    result: RoundResult,
) -> None:
    """Execute the round, filling ``result`` as stages complete."""
    registry = _load_registry(config, ctx)

    if config.reuse_ratios and config.ratios_path.exists():
        _stage_load_ratios(config, registry, ctx, result)
        return

    groups = list(config.groups) if config.groups is not None else registry.group_names()

    uid_index = _stage_load_records(config, ctx)
    result.total_records = len(uid_index)

    components = _stage_prepare_components(config, groups, uid_index, registry, ctx)
    for component in components:
        result.pairs_counted += component.stats["pairs_counted"]
        result.pairs_skipped += (
            component.stats["pairs_skipped_unknown_uid"]
            + component.stats["pairs_skipped_partial_profile"]
        )

    if config.smooth_components:
        _stage_smooth_components(components, solver, ctx, result)

    ctx.start_stage("merge")
    ratios = Ratios.from_components(
        components,
        record=next(iter(uid_index.values())),
        path=config.ratios_path,
        registry=registry,
        config=config.ratios,
        logger=ctx.audit_logger,
    )
    ctx.finish_stage("merge", counters={"entries": len(ratios)})

    if config.smooth_joint:
        ctx.start_stage("smooth_joint")
        outcome = ratios.smooth(solver)
        result.smoothing["joint"] = outcome.status.value
        ctx.finish_stage("smooth_joint", counters={"total_nodes": outcome.total_nodes})

    result.joint_entries = len(ratios)
    _stage_write_outputs(config, components, ratios, ctx, result)


# ---------------------------------------------------------------------------
# Round runner
# ---------------------------------------------------------------------------


def run_round(
    config: RoundConfig,
    solver: QPSolver | None = None,
    command_argv: list[str] | None = None,
) -> RoundResult:
    """Run one disambiguation round and persist the joint ratio table.

    Every round writes ``events.jsonl`` and ``run.json`` into
    ``config.output_dir``. Failures are recorded in both and reported in
    the returned result rather than raised.

    Parameters
    ----------
    config : RoundConfig
        Round configuration.
    solver : QPSolver | None, optional
        QP backend for smoothing, by default ``ScipyQPSolver``.
    command_argv : list[str] | None, optional
        Command line recorded in the manifest, by default ``sys.argv``.

    Returns
    -------
    RoundResult
        Round outcome; ``output_files`` lists what was written.

    Examples
    --------
        >>> from simratio.engine import RoundConfig, run_round
        >>> config = RoundConfig(
        ...     records_path="records.csv",
        ...     nonmatch_pairs="x_pairs.txt",
        ...     match_pairs="m_pairs.txt",
        ... )
        >>> result = run_round(config)
        >>> if result.success:
        ...     print(result.output_files["ratios"])
    """
    ctx = RunContext.start(
        config.output_dir, parameters=config.to_dict(), command_argv=command_argv
    )
    result = RoundResult(success=False, run_id=ctx.run_id)

    try:
        _run_stages(config, ctx, solver, result)
    except Exception as e:
        result.error_message = f"{type(e).__name__}: {e}"
        ctx.record_error(e, include_traceback=True)
        ctx.finish(status="failed")
        return result

    result.success = True
    ctx.finish(status="success")
    return result
