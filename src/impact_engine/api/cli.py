"""Command-line interface for the impact engine.

Usage::

    impact-engine impact --unit CALC-TOTAL --depth 2
    impact-engine dependencies --field WS-TOTAL --format csv
    impact-engine paths -s CALC-TOTAL -t PRINT-INVOICE --strategy shortest
    impact-engine critical-fields --min-consumers 10 --sort-by ratio
    impact-engine --backend memory --graph-file graph.json summary -f text

Results go to stdout; progress messages, logs and errors go to stderr.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import click

from impact_engine import __version__
from impact_engine.api.formatters import (
    REPORT_FORMATS,
    RESULT_FORMATS,
    format_critical_fields,
    format_impact,
    format_paths,
    format_report,
)
from impact_engine.application.queries.analyze_impact import ImpactQueryInput, analyze_impact
from impact_engine.application.queries.critical_fields import (
    CriticalFieldsInput,
    field_distribution,
    rank_fields,
    summarize_critical_fields,
)
from impact_engine.application.queries.find_paths import (
    PathQueryInput,
    find_paths,
    summarize_paths,
)
from impact_engine.application.queries.impact_summary import SummaryOptions, summarize
from impact_engine.config import Settings, configure_logging, get_settings
from impact_engine.container import BACKENDS, Container, create_container
from impact_engine.domain.enums import Direction
from impact_engine.domain.exceptions import ImpactEngineError, InvalidParameterError


@click.group()
@click.version_option(version=__version__, prog_name="impact-engine")
@click.option(
    "--backend",
    type=click.Choice(BACKENDS, case_sensitive=False),
    default=None,
    help="Graph backend (default: GRAPH_BACKEND, else neo4j).",
)
@click.option(
    "--graph-file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="JSON graph snapshot for the memory backend.",
)
@click.option("--log-level", default=None, help="Log level (default: LOG_LEVEL, else WARNING).")
@click.pass_context
def cli(ctx: click.Context, backend: str | None, graph_file: Path | None, log_level: str | None) -> None:
    """impact-engine: dependency impact analysis over a unit/field graph."""
    overrides: dict = {}
    if graph_file is not None:
        overrides["graph_file"] = graph_file
        # A snapshot without an explicit backend means the memory backend
        if backend is None:
            backend = "memory"
    if backend is not None:
        overrides["graph_backend"] = backend.lower()
    if log_level is not None:
        overrides["log_level"] = log_level

    settings = get_settings().model_copy(update=overrides)
    configure_logging(settings.log_level, settings.log_json)
    ctx.obj = settings


def _fail(ctx: click.Context, exc: ImpactEngineError) -> None:
    click.echo(f"Error: {exc.message}", err=True)
    ctx.exit(1)


@contextmanager
def _container(ctx: click.Context) -> Iterator[Container]:
    """Open the configured graph; any engine error ends the command with status 1."""
    settings: Settings = ctx.obj
    try:
        with create_container(settings) as container:
            yield container
    except ImpactEngineError as exc:
        _fail(ctx, exc)


# ---------------------------------------------------------------------------
# impact / dependencies
# ---------------------------------------------------------------------------


def _chain_options(func):
    func = click.option(
        "--format", "-f", "fmt",
        type=click.Choice(RESULT_FORMATS),
        default="summary",
        show_default=True,
        help="Output format.",
    )(func)
    func = click.option(
        "--depth", "-d", type=int, default=3, show_default=True,
        help="Maximum number of field hops.",
    )(func)
    func = click.option(
        "--stdin", "use_stdin", is_flag=True,
        help="Read the identifier from stdin ('->' in it marks a unit name).",
    )(func)
    func = click.option("--field", "-o", "field_name", default=None, help="Field name to analyze.")(func)
    func = click.option("--unit", "-u", default=None, help="Unit name to analyze.")(func)
    return func


def _resolve_identifier(unit: str | None, field_name: str | None, use_stdin: bool) -> tuple[str, bool]:
    """Return ``(identifier, is_field)`` from the command options."""
    if use_stdin:
        with click.open_file("-") as stream:
            identifier = stream.read().strip()
        if not identifier:
            raise InvalidParameterError("No input received from stdin")
        return identifier, "->" not in identifier
    if unit:
        return unit, False
    if field_name:
        return field_name, True
    raise InvalidParameterError("Either --unit, --field, or --stdin must be provided")


def _run_chain_analysis(
    ctx: click.Context,
    direction: Direction,
    unit: str | None,
    field_name: str | None,
    use_stdin: bool,
    depth: int,
    fmt: str,
) -> None:
    settings: Settings = ctx.obj
    try:
        identifier, is_field = _resolve_identifier(unit, field_name, use_stdin)
        query = ImpactQueryInput(
            identifier=identifier,
            is_field=is_field,
            max_depth=depth,
            direction=direction,
            level_limit=settings.impact_level_limit,
        )
    except InvalidParameterError as exc:
        _fail(ctx, exc)
        return

    verb = "impact of" if direction is Direction.DOWNSTREAM else "dependencies of"
    click.echo(
        f"Analyzing {verb} {'field' if is_field else 'unit'}: {identifier} (max depth {depth})",
        err=True,
    )
    with _container(ctx) as container:
        edges = analyze_impact(query, container.graph, max_workers=container.max_workers)
        click.echo(f"Found {len(edges)} relationships", err=True)
        click.echo(format_impact(edges, fmt))


@cli.command()
@_chain_options
@click.pass_context
def impact(ctx, unit, field_name, use_stdin, depth, fmt):
    """Units affected downstream by a change to a unit or field."""
    _run_chain_analysis(ctx, Direction.DOWNSTREAM, unit, field_name, use_stdin, depth, fmt)


@cli.command()
@_chain_options
@click.pass_context
def dependencies(ctx, unit, field_name, use_stdin, depth, fmt):
    """Units upstream that a unit or field depends on."""
    _run_chain_analysis(ctx, Direction.UPSTREAM, unit, field_name, use_stdin, depth, fmt)


# ---------------------------------------------------------------------------
# paths
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--source", "-s", required=True, help="Source unit name.")
@click.option("--target", "-t", required=True, help="Target unit name.")
@click.option("--max-depth", "-d", type=int, default=5, show_default=True, help="Maximum unit hops.")
@click.option(
    "--strategy", "--path-type", "-p", "strategy", default="all", show_default=True,
    help="shortest, all, or longest.",
)
@click.option("--limit", "-l", type=int, default=100, show_default=True, help="Maximum paths.")
@click.option(
    "--format", "-f", "fmt",
    type=click.Choice(RESULT_FORMATS), default="summary", show_default=True,
)
@click.pass_context
def paths(ctx, source, target, max_depth, strategy, limit, fmt):
    """Dependency paths between two units."""
    try:
        query = PathQueryInput(
            source=source,
            target=target,
            max_depth=max_depth,
            strategy=strategy.lower(),
            limit=limit,
        )
    except InvalidParameterError as exc:
        _fail(ctx, exc)
        return

    click.echo(
        f"Finding {query.strategy.value} paths from {source} to {target} (max depth {max_depth})",
        err=True,
    )
    with _container(ctx) as container:
        found = find_paths(query, container.graph)
        click.echo(f"Found {len(found)} paths", err=True)
        click.echo(format_paths(found, summarize_paths(found), fmt))


# ---------------------------------------------------------------------------
# critical-fields
# ---------------------------------------------------------------------------


@cli.command("critical-fields")
@click.option("--min-consumers", "-m", type=int, default=1, show_default=True)
@click.option("--limit", "-l", type=int, default=50, show_default=True)
@click.option("--sort-by", "-s", default="consumers", show_default=True, help="consumers, producers, or ratio.")
@click.option(
    "--format", "-f", "fmt",
    type=click.Choice(RESULT_FORMATS), default="summary", show_default=True,
)
@click.pass_context
def critical_fields(ctx, min_consumers, limit, sort_by, fmt):
    """Fields ranked by how many units depend on them."""
    try:
        query = CriticalFieldsInput(
            min_consumers=min_consumers, sort_by=sort_by.lower(), limit=limit
        )
    except InvalidParameterError as exc:
        _fail(ctx, exc)
        return

    with _container(ctx) as container:
        ranked = rank_fields(query, container.graph)
        distribution = field_distribution(container.graph) if fmt != "csv" else None
        click.echo(f"Found {len(ranked)} critical fields", err=True)
        click.echo(
            format_critical_fields(ranked, summarize_critical_fields(ranked, distribution), fmt)
        )


# ---------------------------------------------------------------------------
# summary
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--format", "-f", "fmt",
    type=click.Choice(REPORT_FORMATS), default="markdown", show_default=True,
)
@click.option("--top-count", "-t", type=int, default=10, show_default=True)
@click.option("--no-distribution", is_flag=True, help="Skip the field distribution section.")
@click.option("--no-connectivity", is_flag=True, help="Skip the connectivity section.")
@click.pass_context
def summary(ctx, fmt, top_count, no_distribution, no_connectivity):
    """System-wide impact report with a fragility assessment."""
    try:
        options = SummaryOptions(
            top_count=top_count,
            include_connectivity=not no_connectivity,
            include_distribution=not no_distribution,
        )
    except InvalidParameterError as exc:
        _fail(ctx, exc)
        return

    click.echo("Generating system impact summary", err=True)
    with _container(ctx) as container:
        report = summarize(container.graph, options, max_workers=container.max_workers)
        click.echo(format_report(report, fmt))


if __name__ == "__main__":
    cli()
