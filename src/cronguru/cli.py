"""Command-line interface for cronguru."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from cronguru.api import explain
from cronguru.config import ConfigError, CronGuruConfig, load_config
from cronguru.scheduling import (
    COMMON_TIMEZONES,
    CronBuilder,
    CronDialect,
    CronError,
    CronExpression,
    TimezoneInfo,
    build_calendar,
    explain_fields,
    get_timezones_by_region,
    list_timezone_keys,
    next_runs,
    validate,
)
from cronguru.scheduling.explain import WEEKDAY_NAMES

app = typer.Typer(
    name="cronguru",
    help="Validate, explain and preview cron expressions",
    add_completion=False,
)

console = Console()

DialectOption = Annotated[
    Optional[str],
    typer.Option("--dialect", "-d", help="Cron dialect (crontab5 or crontab6)"),
]
TimezoneOption = Annotated[
    Optional[str],
    typer.Option("--tz", "-z", help="IANA timezone (e.g. Europe/Berlin)"),
]
CountOption = Annotated[
    Optional[int],
    typer.Option("--count", "-n", help="Number of upcoming runs"),
]
AfterOption = Annotated[
    Optional[datetime],
    typer.Option("--after", help="Start after this time (naive times are UTC)"),
]


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            envvar="CRONGURU_CONFIG",
            help="Configuration file (YAML, JSON or TOML)",
        ),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)"),
    ] = None,
) -> None:
    """Validate, explain and preview cron expressions."""
    try:
        config = load_config(config_file)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    level = (log_level or config.log_level).upper()
    if level not in logging.getLevelNamesMapping():
        typer.echo(f"Error: Unknown log level: {level}", err=True)
        raise typer.Exit(1)

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = config


def _config(ctx: typer.Context) -> CronGuruConfig:
    return ctx.obj if isinstance(ctx.obj, CronGuruConfig) else CronGuruConfig()


def _dialect(value: Optional[str], config: CronGuruConfig) -> CronDialect:
    if value is None:
        return config.dialect
    try:
        return CronDialect.from_string(value)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _parse(expression: str, dialect: CronDialect) -> CronExpression:
    try:
        return validate(expression, dialect)
    except CronError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command(name="validate")
def validate_cmd(
    ctx: typer.Context,
    expression: Annotated[str, typer.Argument(help="Cron expression")],
    dialect: DialectOption = None,
) -> None:
    """Validate an expression and print its canonical form."""
    expr = _parse(expression, _dialect(dialect, _config(ctx)))
    typer.echo(expr.canonical)


@app.command(name="next")
def next_cmd(
    ctx: typer.Context,
    expression: Annotated[str, typer.Argument(help="Cron expression")],
    tz: TimezoneOption = None,
    count: CountOption = None,
    dialect: DialectOption = None,
    after: AfterOption = None,
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (console, json)"),
    ] = "console",
) -> None:
    """List upcoming fire times."""
    config = _config(ctx)
    expr = _parse(expression, _dialect(dialect, config))
    timezone = tz or config.default_timezone

    try:
        runs = next_runs(
            expr,
            timezone,
            config.clamp(count),
            after,
            min_count=config.min_count,
            max_count=config.max_count,
            horizon_years=config.horizon_years,
        )
    except CronError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if format == "json":
        typer.echo(json.dumps([r.to_dict() for r in runs], indent=2))
        return

    table = Table(title=f"Next runs ({timezone})", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Local time", style="cyan", no_wrap=True)
    table.add_column("UTC", no_wrap=True)
    for i, run in enumerate(runs, 1):
        table.add_row(
            str(i),
            run.local.strftime("%Y-%m-%d %H:%M:%S %Z"),
            run.instant.strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)


@app.command(name="explain")
def explain_cmd(
    ctx: typer.Context,
    expression: Annotated[str, typer.Argument(help="Cron expression")],
    tz: TimezoneOption = None,
    count: CountOption = None,
    dialect: DialectOption = None,
    after: AfterOption = None,
    locale: Annotated[
        Optional[str],
        typer.Option("--locale", "-l", help="Description locale (e.g. en, zh-CN)"),
    ] = None,
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (console, json)"),
    ] = "console",
) -> None:
    """Describe an expression, flag pitfalls and list upcoming runs."""
    config = _config(ctx)
    result = explain(
        expression,
        timezone=tz,
        dialect=_dialect(dialect, config),
        count=count,
        locale=locale,
        after=after,
        config=config,
    )

    if format == "json":
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        if not result.ok:
            raise typer.Exit(1)
        return

    if result.expression is None:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(1)

    console.print(Panel(f"[bold]{result.expression.canonical}[/bold]", expand=False))
    console.print(result.description or "[dim]No description available[/dim]")

    for diagnostic in result.diagnostics:
        color = "yellow" if diagnostic.severity.value == "warning" else "cyan"
        console.print(f"[{color}]Note: {diagnostic.message}[/{color}]")

    if not result.ok:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(1)

    console.print()
    for run in result.occurrences:
        console.print(f"  {run.local.strftime('%Y-%m-%d %H:%M:%S %Z')}")


@app.command(name="debug")
def debug_cmd(
    ctx: typer.Context,
    expression: Annotated[str, typer.Argument(help="Cron expression")],
    dialect: DialectOption = None,
) -> None:
    """Explain an expression field by field."""
    expr = _parse(expression, _dialect(dialect, _config(ctx)))

    table = Table(title="Expression Debugger", show_header=True, header_style="bold magenta")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Token", no_wrap=True)
    table.add_column("Meaning")
    for explanation in explain_fields(expr):
        table.add_row(explanation.label, explanation.token, explanation.meaning)
    console.print(table)


@app.command(name="calendar")
def calendar_cmd(
    ctx: typer.Context,
    expression: Annotated[str, typer.Argument(help="Cron expression")],
    tz: TimezoneOption = None,
    count: CountOption = None,
    dialect: DialectOption = None,
    after: AfterOption = None,
) -> None:
    """Show upcoming runs on a month calendar."""
    config = _config(ctx)
    expr = _parse(expression, _dialect(dialect, config))
    timezone = tz or config.default_timezone

    try:
        runs = next_runs(
            expr,
            timezone,
            config.clamp(count),
            after,
            min_count=config.min_count,
            max_count=config.max_count,
            horizon_years=config.horizon_years,
        )
    except CronError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    month = build_calendar(runs)
    table = Table(title=f"{month.title} ({timezone})", show_header=True, show_lines=True)
    for name in WEEKDAY_NAMES:
        table.add_column(name[:3], justify="center")
    for week in month.weeks:
        cells = []
        for day in week:
            if not day.day:
                cells.append("")
            elif day.has_run:
                cells.append(f"[bold green]{day.day}[/bold green]\n{len(day.runs)}x")
            else:
                cells.append(str(day.day))
        table.add_row(*cells)
    console.print(table)


@app.command(name="build")
def build_cmd(
    minute: Annotated[Optional[str], typer.Option("--minute", help="Minute field")] = None,
    hour: Annotated[Optional[str], typer.Option("--hour", help="Hour field")] = None,
    day: Annotated[Optional[str], typer.Option("--day", help="Day-of-month field")] = None,
    month: Annotated[Optional[str], typer.Option("--month", help="Month field")] = None,
    weekday: Annotated[Optional[str], typer.Option("--weekday", help="Day-of-week field")] = None,
    second: Annotated[
        Optional[str],
        typer.Option("--second", help="Second field (switches to crontab6)"),
    ] = None,
    every_minutes: Annotated[
        Optional[int],
        typer.Option("--every-minutes", help="Run every N minutes"),
    ] = None,
    every_hours: Annotated[
        Optional[int],
        typer.Option("--every-hours", help="Run every N hours"),
    ] = None,
    weekdays: Annotated[
        bool,
        typer.Option("--weekdays", help="Run Monday through Friday"),
    ] = False,
) -> None:
    """Compose an expression from field options."""
    builder = CronBuilder()
    try:
        if every_minutes is not None:
            builder.every_n_minutes(every_minutes)
        if every_hours is not None:
            builder.every_n_hours(every_hours)
        if weekdays:
            builder.on_weekdays()
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    # Raw field options override the builder helpers position by position
    overrides = [minute, hour, day, month, weekday]
    fields = [o or p for o, p in zip(overrides, builder.to_string().split(" "))]
    dialect = CronDialect.CLASSIC5
    if second is not None:
        fields.insert(0, second)
        dialect = CronDialect.CLASSIC6

    expr = _parse(" ".join(fields), dialect)
    typer.echo(expr.canonical)


@app.command(name="timezones")
def timezones_cmd(
    region: Annotated[
        Optional[str],
        typer.Option("--region", "-r", help="Only list zones in this region"),
    ] = None,
    all_zones: Annotated[
        bool,
        typer.Option("--all", help="List every zone the host database knows"),
    ] = False,
) -> None:
    """List commonly used timezones."""
    if all_zones:
        zones = [
            TimezoneInfo(key, key.partition("/")[0]) for key in list_timezone_keys()
        ]
    else:
        zones = list(COMMON_TIMEZONES)
    if region:
        zones = get_timezones_by_region(region, zones)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Timezone", style="cyan", no_wrap=True)
    table.add_column("Region")
    table.add_column("Offset", justify="right")
    for info in zones:
        table.add_row(info.key, info.region, info.offset_label())
    console.print(table)


if __name__ == "__main__":
    app()
