"""Command-line interface for Hex Ontology."""

import json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from hex_ontology import __version__
from hex_ontology.config import get_settings
from hex_ontology.exceptions import ProjectFormatError
from hex_ontology.log import setup_logging

console = Console()


def _load(path: str):
    from hex_ontology.storage import load_project

    try:
        return load_project(path)
    except ProjectFormatError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default=None, help="Log level (defaults to HEXONTO_LOG_LEVEL or INFO)")
def main(log_level: str | None) -> None:
    """Hex Ontology - concept ontology and rules engine for hex wargames."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level, settings.log_file)


@main.command()
@click.argument("path", type=click.Path())
@click.option("--radius", "-r", type=int, default=4, help="Board radius of the sample project")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def init(path: str, radius: int, force: bool) -> None:
    """Write a sample project (terrain, infantry, a Motion concept)."""
    from hex_ontology.samples import build_sample_project
    from hex_ontology.storage import save_project

    target = Path(path)
    if target.exists() and not force:
        raise click.ClickException(f"{target} already exists (use --force to overwrite)")

    project = build_sample_project(radius)
    save_project(target, project)

    console.print(f"[green]OK[/green] Sample project written to {target}")
    console.print(f"  Entity types: {len(project.entity_types)}")
    console.print(f"  Concepts: {len(project.ontology.concepts)}")
    console.print(f"  Relations: {len(project.ontology.relations)}")
    console.print(f"  Constraints: {len(project.ontology.constraints)}")
    console.print(f"  Board hexes: {len(project.board.grid)}")


@main.command()
@click.argument("path", type=click.Path(exists=True))
@click.option("--output", "-o", type=click.Path(), help="Output file for the report (JSON)")
def validate(path: str, output: str | None) -> None:
    """Validate a project's ontology against its entity types."""
    from hex_ontology.ontology import validate_schema

    project = _load(path)
    report = validate_schema(project.ontology, project.entity_types)

    console.print(f"[bold]Validating:[/bold] {path}\n")

    if report.errors:
        table = Table(title="Schema Issues")
        table.add_column("Severity", style="cyan")
        table.add_column("Category")
        table.add_column("Message")
        table.add_column("Source", style="dim")

        for error in report.errors:
            severity = "[yellow]warning[/yellow]" if error.is_warning else "[red]error[/red]"
            table.add_row(severity, error.category.label, error.message, error.source_reference)

        console.print(table)
    else:
        console.print("[dim]No issues found[/dim]")

    if output:
        with open(output, "w") as f:
            json.dump(report.to_dict(), f, indent=2)
        console.print(f"\n[green]OK[/green] Report saved to {output}")

    if report.is_valid:
        warnings = len(report.warnings())
        console.print(f"\n[bold green]Schema is valid[/bold green] ({warnings} warning(s))")
    else:
        console.print("\n[bold red]Schema is invalid[/bold red]")
        sys.exit(1)


@main.command()
@click.argument("path", type=click.Path(exists=True))
@click.option("--unit", "-u", help="Unit id to move (defaults to the saved selection)")
@click.option("--output", "-o", type=click.Path(), help="Output file for the move set (JSON)")
@click.option("--show-blocked/--hide-blocked", default=True, help="List blocked hexes with reasons")
def moves(path: str, unit: str | None, output: str | None, show_blocked: bool) -> None:
    """Compute valid moves for a unit on the project's board."""
    from hex_ontology.exceptions import NotFoundError
    from hex_ontology.session import RulesSession

    project = _load(path)
    session = RulesSession(project.entity_types, project.board, project.ontology)

    unit_id = unit or project.board.selected_unit
    if unit_id is None:
        raise click.ClickException("No unit selected; pass --unit")
    try:
        move_set = session.select(unit_id)
    except NotFoundError as e:
        raise click.ClickException(str(e)) from e

    placed = project.board.unit(unit_id)
    unit_type = project.entity_types.name_of(placed.data.entity_type_id, default="Unit")
    console.print(f"[bold]Moves for:[/bold] {unit_id} ({unit_type}) at {placed.position}\n")

    table = Table(title="Valid Moves")
    table.add_column("Hex", style="cyan")
    table.add_column("Terrain")
    table.add_column("Distance", justify="right")

    for pos in sorted(move_set.valid_positions):
        tile = project.board.tile_at(pos)
        terrain = project.entity_types.name_of(tile.entity_type_id) if tile else "-"
        table.add_row(str(pos), terrain, str(pos.distance(placed.position)))

    console.print(table)
    console.print(f"  {len(move_set.valid_positions)} reachable hex(es)")

    if show_blocked and move_set.blocked_explanations:
        console.print("\n[bold]Blocked:[/bold]")
        for pos, reasons in sorted(move_set.blocked_explanations.items()):
            for reason in reasons:
                console.print(f"  {pos} [yellow]{reason}[/yellow]")

    if output:
        with open(output, "w") as f:
            json.dump(move_set.to_dict(), f, indent=2)
        console.print(f"\n[green]OK[/green] Move set saved to {output}")


@main.command()
@click.argument("path", type=click.Path(exists=True))
def reconcile(path: str) -> None:
    """Regenerate auto-generated budget constraints and save the project."""
    from hex_ontology.ontology import orphaned_auto_constraints, reconcile_all
    from hex_ontology.storage import save_project

    project = _load(path)
    orphans = orphaned_auto_constraints(project.ontology)
    report = reconcile_all(project.ontology)

    if orphans:
        console.print(f"[dim]Found {len(orphans)} orphaned auto-generated constraint(s)[/dim]")

    if not report.changed:
        console.print("[dim]Auto-generated constraints already up to date[/dim]")
        return

    save_project(path, project)
    console.print(
        f"[green]OK[/green] {len(report.created)} constraint(s) created, "
        f"{len(report.removed)} removed"
    )


@main.command()
def status() -> None:
    """Show the active configuration."""
    settings = get_settings()

    table = Table(title="Hex Ontology Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Version", __version__)
    table.add_row("Default board radius", str(settings.default_board_radius))
    table.add_row("Budget fallback name", settings.budget_fallback_name)
    table.add_row("Log level", settings.log_level)
    table.add_row("Log file", str(settings.log_file) if settings.log_file else "-")
    table.add_row("Projects dir", str(settings.projects_dir))

    console.print(table)


if __name__ == "__main__":
    main()
