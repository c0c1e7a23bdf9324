#!/usr/bin/env python3
"""
CLI interface for the CMB credit card statement parser.
"""
import typer
from enum import Enum
from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from .core.detectors import detect_template
from .core.errors import StatementError
from .core.export import export_csv, export_json, render_csv
from .core.loader import load_fragments
from .core.runner import parse_statement
from .core.tables import SORT_FIELDS, filter_transactions, render_table, sort_transactions
from .models.schema import ParsedResult, ReferencePeriod

app = typer.Typer(help="CMB Credit Card Statement Parser")
console = Console()


class OutputFormat(str, Enum):
    json = "json"
    csv = "csv"
    table = "table"


def _default_period(year: Optional[int], month: Optional[int]) -> ReferencePeriod:
    """Statement period fallback; today unless given on the command line."""
    current = ReferencePeriod.current()
    try:
        return ReferencePeriod(year=year or current.year, month=month or current.month)
    except ValueError as e:
        console.print(f"[red]Error: invalid reference period: {escape(str(e))}[/red]")
        raise typer.Exit(1)


@app.command()
def parse(
    pdf_path: Path = typer.Argument(..., help="Path to PDF file"),
    output: Optional[Path] = typer.Option(None, "--out", "-o", help="Output file path"),
    fmt: OutputFormat = typer.Option(OutputFormat.table, "--format", "-f", help="Output format"),
    year: Optional[int] = typer.Option(None, "--year", help="Statement year if the PDF prints none"),
    month: Optional[int] = typer.Option(None, "--month", help="Statement month if the PDF prints none"),
    query: Optional[str] = typer.Option(None, "--filter", help="Only show matching transactions"),
    sort: str = typer.Option("original_index", "--sort", help=f"Sort by one of: {', '.join(SORT_FIELDS)}"),
    descending: bool = typer.Option(False, "--desc", help="Sort descending"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output")
):
    """Parse a CMB credit card statement PDF into transactions."""

    if sort not in SORT_FIELDS:
        console.print(f"[red]Error: cannot sort by {sort}; choose from {', '.join(SORT_FIELDS)}[/red]")
        raise typer.Exit(1)

    if not pdf_path.exists():
        console.print(f"[red]Error: PDF file not found: {pdf_path}[/red]")
        raise typer.Exit(1)

    period = _default_period(year, month)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True
        ) as progress:
            task = progress.add_task("Extracting transactions...", total=None)
            result = parse_statement(pdf_path, default_period=period, verbose=verbose)

            if query or sort != "original_index" or descending:
                progress.update(task, description="Filtering...")
                rows = sort_transactions(filter_transactions(result.transactions, query), sort, descending)
                view = result.model_copy(update={"transactions": rows})
            else:
                view = result

    except StatementError as e:
        console.print(f"[red]Error parsing PDF: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Error parsing PDF: {escape(str(e))}[/red]")
        if verbose:
            import traceback
            console.print(traceback.format_exc())
        raise typer.Exit(1)

    if fmt == OutputFormat.table:
        console.print(render_table(result, view.transactions))
        if output:
            export_csv(view, output)
            console.print(f"[green]✓ CSV written to: {output}[/green]")
    elif fmt == OutputFormat.csv:
        if output:
            export_csv(view, output)
            console.print(f"[green]✓ Parsed {len(view.transactions)} transactions! Output written to: {output}[/green]")
        else:
            typer.echo(render_csv(view), nl=False)
    else:
        if output:
            export_json(view, output)
            console.print(f"[green]✓ Parsed {len(view.transactions)} transactions! Output written to: {output}[/green]")
        else:
            typer.echo(view.model_dump_json(indent=2, by_alias=True))


@app.command()
def detect(
    pdf_path: Path = typer.Argument(..., help="Path to PDF file")
):
    """Detect which template matches a PDF file."""
    try:
        template = detect_template(pdf_path)
    except Exception as e:
        console.print(f"[red]Error detecting template: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if template:
        console.print(f"[green]Detected template: {template}[/green]")
    else:
        console.print("[red]No matching template found[/red]")
        raise typer.Exit(1)


@app.command()
def validate(
    json_path: Path = typer.Argument(..., help="Path to JSON file to validate")
):
    """Validate a JSON file against the schema."""
    try:
        data = ParsedResult.model_validate_json(json_path.read_text(encoding='utf-8'))
    except Exception as e:
        console.print(f"[red]Validation failed: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print("[green]✓ JSON is valid[/green]")
    console.print(f"Headers: {', '.join(data.headers)}")
    console.print(f"Transactions: {len(data.transactions)}")


@app.command()
def fragments(
    pdf_path: Path = typer.Argument(..., help="Path to PDF file"),
    find: Optional[str] = typer.Option(None, "--find", help="Only show fragments around this text"),
    context: int = typer.Option(5, "--context", "-C", help="Fragments of context around matches")
):
    """Dump the text fragments the parser sees."""
    try:
        texts = load_fragments(pdf_path)
    except Exception as e:
        console.print(f"[red]Error reading PDF: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if not find:
        for index, text in enumerate(texts):
            console.print(f"[dim]{index:5d}[/dim] {escape(text)}")
        return

    hits = [index for index, text in enumerate(texts) if find in text]
    if not hits:
        console.print(f"[yellow]'{escape(find)}' not found in {len(texts)} fragments[/yellow]")
        raise typer.Exit(1)

    for hit in hits:
        console.rule(f"{escape(find)} at {hit}")
        for index in range(max(0, hit - context), min(len(texts), hit + context + 1)):
            marker = "[bold]>[/bold]" if index == hit else " "
            console.print(f"{marker} [dim]{index:5d}[/dim] {escape(texts[index])}")


@app.command()
def overlay(
    pdf_path: Path = typer.Argument(..., help="Path to PDF file"),
    output_dir: Path = typer.Argument(..., help="Directory for overlay images"),
    year: Optional[int] = typer.Option(None, "--year", help="Statement year if the PDF prints none"),
    month: Optional[int] = typer.Option(None, "--month", help="Statement month if the PDF prints none"),
):
    """Render pages with the recognized transaction rows boxed."""
    from .tools.debug_overlay import create_debug_overlay

    period = _default_period(year, month)
    try:
        written = create_debug_overlay(pdf_path, output_dir, period)
    except Exception as e:
        console.print(f"[red]Error creating overlay: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    console.print(f"[blue]Debug overlay created in: {output_dir} ({len(written)} pages)[/blue]")


if __name__ == "__main__":
    app()
