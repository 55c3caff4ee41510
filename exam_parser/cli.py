"""
CLI Interface
=============
Command-line interface for the exam question parser.

Usage:
    python -m exam_parser parse <source> [options]
    python -m exam_parser validate <json_path> [options]
    python -m exam_parser serve [options]
"""

from __future__ import annotations

import json
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from . import __version__
from .engine import ON_INVALID_CHOICES, ParserConfig, ParserEngine
from .exceptions import OutputError, SourceError, ValidationFailure
from .models import NumberPolicy, ValidationReport
from .storage import DEFAULT_OUTPUT_PATH, load_questions
from .validator import ValidationEngine

console = Console()

NUMBER_POLICY_CHOICES = [p.value for p in NumberPolicy]


@click.group()
@click.version_option(version=__version__, prog_name="exam-parser")
def cli():
    """Exam Question Parser: exam text to validated multiple-choice JSON."""
    pass


@cli.command()
@click.argument("source")
@click.option(
    "--output", "-o",
    default=DEFAULT_OUTPUT_PATH,
    show_default=True,
    help="JSON file for the parsed questions",
)
@click.option(
    "--report", "-r",
    "report_path",
    default=None,
    help="Optional JSON file for the validation report",
)
@click.option(
    "--number-policy",
    default=NumberPolicy.ADVISORY.value,
    type=click.Choice(NUMBER_POLICY_CHOICES),
    show_default=True,
    help="How duplicate / out-of-order question numbers are treated",
)
@click.option(
    "--exhaustive",
    is_flag=True,
    default=False,
    help="Report every failed check per question, not just the first",
)
@click.option(
    "--on-invalid",
    default="abort",
    type=click.Choice(ON_INVALID_CHOICES),
    show_default=True,
    help="abort: write nothing; skip: write valid only; keep: write all",
)
@click.option(
    "--page-start",
    default=None,
    type=int,
    help="Start page (1-indexed, PDF sources)",
)
@click.option(
    "--page-end",
    default=None,
    type=int,
    help="End page (1-indexed, inclusive, PDF sources)",
)
@click.option(
    "--download-to",
    default=None,
    help="Cache path for URL sources (reused if it already exists)",
)
@click.option(
    "--keep-noise",
    is_flag=True,
    default=False,
    help="Keep page counters and lone URLs instead of skipping them",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.option(
    "--log-file",
    default=None,
    help="Path to log file",
)
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Output only JSON result to stdout (for programmatic use)",
)
def parse(
    source: str,
    output: str,
    report_path: str,
    number_policy: str,
    exhaustive: bool,
    on_invalid: str,
    page_start: int,
    page_end: int,
    download_to: str,
    keep_noise: bool,
    log_level: str,
    log_file: str,
    json_output: bool,
):
    """Parse a PDF, text file or PDF URL into validated question records."""

    if json_output:
        # Suppress console output for JSON mode
        log_level = "ERROR"

    page_range = None
    if page_start is not None or page_end is not None:
        page_range = (page_start or 1, page_end or 99999)

    config = ParserConfig(
        output_path=output,
        report_path=report_path,
        number_policy=NumberPolicy(number_policy),
        exhaustive=exhaustive,
        on_invalid=on_invalid,
        ignore_noise=not keep_noise,
        page_range=page_range,
        download_to=download_to,
        log_level=log_level,
        log_file=log_file,
    )

    if not json_output:
        console.print()
        console.print(
            Panel.fit(
                f"[bold cyan]Exam Question Parser v{__version__}[/]\n"
                f"[dim]Parsing: {source}[/]",
                border_style="cyan",
            )
        )
        console.print()

    try:
        engine = ParserEngine(config)

        if not json_output:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=console,
            ) as progress:
                task = progress.add_task("Extracting text...", total=None)

                def on_page(current: int, total: int):
                    progress.update(
                        task,
                        description=f"Extracting page {current}/{total}",
                        completed=current,
                        total=total,
                    )

                result = engine.parse(source, progress_callback=on_page)
                progress.update(task, description="Parsed")

            _display_results(result)
        else:
            result = engine.parse(source)
            print(json.dumps(
                result.model_dump(mode="json"),
                indent=2,
                ensure_ascii=False,
                default=str,
            ))

        path = engine.save(result)
        if not json_output:
            console.print(f"[green]Saved:[/] {path}")
            console.print()

    except ValidationFailure as e:
        if not json_output:
            console.print(f"[red]Validation failed:[/] {e}")
            console.print(
                "[dim]Use --on-invalid skip to write only valid questions[/]"
            )
        sys.exit(1)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except (SourceError, OutputError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/] {e}")
        if log_level == "DEBUG":
            console.print_exception()
        sys.exit(1)


@cli.command()
@click.argument("json_path", type=click.Path(exists=True))
@click.option(
    "--number-policy",
    default=NumberPolicy.ADVISORY.value,
    type=click.Choice(NUMBER_POLICY_CHOICES),
    show_default=True,
    help="How duplicate / out-of-order question numbers are treated",
)
@click.option(
    "--exhaustive",
    is_flag=True,
    default=False,
    help="Report every failed check per question",
)
def validate(json_path: str, number_policy: str, exhaustive: bool):
    """Re-validate a previously saved question JSON file."""

    try:
        questions = load_questions(json_path)
    except OutputError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Validation Report[/]\n"
            f"[dim]File: {json_path}[/]",
            border_style="cyan",
        )
    )

    validator = ValidationEngine(
        number_policy=NumberPolicy(number_policy),
        exhaustive=exhaustive,
    )
    report = validator.validate(questions)
    _display_validation_table(report)
    _display_violations(report)

    if not report.is_valid:
        sys.exit(1)


@cli.command()
@click.option("--host", default="0.0.0.0", help="Server host")
@click.option("--port", default=5000, type=int, help="Server port")
@click.option("--debug", is_flag=True, default=False, help="Debug mode")
def serve(host: str, port: int, debug: bool):
    """Start the HTTP parsing service."""
    from .server import run_server

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Exam Parser Service[/]\n"
            f"[dim]Starting on {host}:{port}[/]",
            border_style="cyan",
        )
    )
    console.print()

    run_server(host=host, port=port, debug=debug)


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _display_results(result):
    """Display parse results in a formatted table."""
    console.print()

    src = result.source
    table = Table(title="Source Information", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")
    table.add_row("Source", src.identifier or "(text)")
    table.add_row("Kind", src.kind)
    if src.page_count is not None:
        table.add_row("Pages", str(src.page_count))
    table.add_row("Characters", str(src.char_count))
    table.add_row("Text Hash", src.text_hash[:16] + "...")
    console.print(table)
    console.print()

    _display_validation_table(result.validation)
    _display_violations(result.validation)

    pv = result.parse_version
    console.print(
        f"[dim]Parser v{pv.parser_version} | "
        f"Tokens: {pv.token_count} | "
        f"Candidates: {pv.candidate_count} | "
        f"Timestamp: {pv.parse_timestamp}[/]"
    )
    console.print()


def _display_validation_table(report: ValidationReport):
    """Display validation summary as a rich table."""
    table = Table(title="Validation Report", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status", justify="center")

    def status_icon(count, threshold=0):
        if count <= threshold:
            return "[green]✓[/]"
        return "[red]✗[/]"

    total = report.total_questions
    table.add_row(
        "Total Questions Detected",
        str(total),
        "[green]✓[/]" if total > 0 else "[red]✗[/]",
    )
    table.add_row(
        "Valid Questions",
        f"{report.valid_count} ({report.success_rate}%)",
        "[green]✓[/]" if report.is_valid else "[yellow]⚠[/]",
    )
    table.add_row(
        "Invalid Questions",
        str(len(report.invalid_numbers)),
        status_icon(len(report.invalid_numbers)),
    )
    table.add_row(
        "Missing Question Numbers",
        str(len(report.missing_numbers)),
        status_icon(len(report.missing_numbers)),
    )
    table.add_row(
        "Duplicate Question Numbers",
        str(len(report.duplicate_numbers)),
        status_icon(len(report.duplicate_numbers)),
    )
    table.add_row(
        "Warnings",
        str(len(report.warnings)),
        "[green]✓[/]" if not report.warnings else "[yellow]⚠[/]",
    )

    console.print(table)
    console.print()


def _display_violations(report: ValidationReport, limit: int = 50):
    """List failed checks by question number."""
    issues = report.violations + report.warnings
    if not issues:
        return

    table = Table(title="Violations", border_style="yellow")
    table.add_column("Question", justify="right", style="bold")
    table.add_column("Check", no_wrap=True)
    table.add_column("Severity", justify="center")
    table.add_column("Message")

    for v in issues[:limit]:
        severity = (
            "[red]error[/]" if v.severity.value == "error"
            else "[yellow]warning[/]"
        )
        table.add_row(str(v.number), v.check.value, severity, v.message)

    console.print(table)
    if len(issues) > limit:
        console.print(f"[dim]... and {len(issues) - limit} more[/]")
    console.print()


if __name__ == "__main__":
    cli()
