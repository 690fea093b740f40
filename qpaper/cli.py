"""
CLI Interface
=============
Command-line interface for the question-paper extraction engine.

Usage:
    python -m qpaper extract <pdf_path> [options]
    python -m qpaper extract-text <txt_path> [options]
    python -m qpaper render <pdf_path> -o paper.html [--choice q1a=2 ...]
    python -m qpaper modify <pdf_path> -o modified.pdf [--choice q1a=2 ...]
    python -m qpaper info <pdf_path>
    python -m qpaper serve
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

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
from .engine import ExtractionEngine, ParserConfig
from .models import DocumentText, ExtractionResult
from .overlay import create_modified_pdf
from .paper import generate_html_paper, parse_paper_structure
from .segmenter import SectionSegmenter
from .text_extractor import DocumentDecodeError, TextExtractor

console = Console()

LOG_LEVELS = click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"])


@click.group()
@click.version_option(version=__version__, prog_name="qpaper")
def cli():
    """Question paper extractor and regenerator."""
    pass


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True))
@click.option(
    "--output", "-o",
    default=None,
    help="Directory to save the JSON result in",
)
@click.option(
    "--page-start",
    default=None,
    type=int,
    help="Start page (1-indexed)",
)
@click.option(
    "--page-end",
    default=None,
    type=int,
    help="End page (1-indexed, inclusive)",
)
@click.option(
    "--no-alternatives",
    is_flag=True,
    default=False,
    help="Skip paraphrase generation",
)
@click.option(
    "--no-positions",
    is_flag=True,
    default=False,
    help="Skip layout position lookup",
)
@click.option(
    "--log-level",
    default="INFO",
    type=LOG_LEVELS,
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
def extract(
    pdf_path: str,
    output: str,
    page_start: int,
    page_end: int,
    no_alternatives: bool,
    no_positions: bool,
    log_level: str,
    log_file: str,
    json_output: bool,
):
    """Extract sub-questions from a question paper PDF."""

    if json_output:
        # Suppress console output for JSON mode
        log_level = "ERROR"

    page_range = None
    if page_start is not None or page_end is not None:
        page_range = (page_start or 1, page_end or 99999)

    config = ParserConfig(
        generate_alternatives=not no_alternatives,
        resolve_positions=not no_positions,
        page_range=page_range,
        output_dir=output,
        log_level=log_level,
        log_file=log_file,
    )

    if not json_output:
        _print_banner(f"Extracting: {os.path.basename(pdf_path)}")

    try:
        engine = ExtractionEngine(config)

        if json_output:
            result = engine.parse(pdf_path)
            _print_json(result)
            return

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Reading pages...", total=None)

            def on_page(current: int, total: int):
                progress.update(task, completed=current, total=total)

            result = engine.parse(pdf_path, progress_callback=on_page)

        _display_results(result)

    except (FileNotFoundError, DocumentDecodeError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/] {e}")
        if log_level == "DEBUG":
            console.print_exception()
        sys.exit(1)


@cli.command("extract-text")
@click.argument("text_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--no-alternatives", is_flag=True, default=False)
@click.option("--log-level", default="WARNING", type=LOG_LEVELS)
@click.option("--json-output", is_flag=True, default=False)
def extract_text(
    text_path: str,
    no_alternatives: bool,
    log_level: str,
    json_output: bool,
):
    """Extract sub-questions from already-decoded plain text."""
    if json_output:
        log_level = "ERROR"

    text = Path(text_path).read_text(encoding="utf-8")
    engine = ExtractionEngine(ParserConfig(
        generate_alternatives=not no_alternatives,
        resolve_positions=False,
        log_level=log_level,
    ))
    result = engine.extract(DocumentText(text=text))

    if json_output:
        _print_json(result)
    else:
        _display_results(result)


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True))
@click.option("--output", "-o", required=True, help="HTML file to write")
@click.option(
    "--choice", "-c",
    multiple=True,
    help="QID=N: use alternative N (0 = original) for question QID",
)
@click.option("--log-level", default="WARNING", type=LOG_LEVELS)
def render(pdf_path: str, output: str, choice: tuple[str, ...], log_level: str):
    """Regenerate the paper as HTML, optionally swapping in alternatives."""
    try:
        result, text = _extract_with_text(pdf_path, log_level)
        selected = _resolve_choices(result, choice)
    except (FileNotFoundError, DocumentDecodeError, click.BadParameter) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    paper = parse_paper_structure(text, result.questions)
    generate_html_paper(paper, Path(output), selected)
    console.print(
        f"[green]✓[/] Wrote {output} "
        f"({len(paper.modules)} modules, {paper.question_count} questions)"
    )


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True))
@click.option("--output", "-o", required=True, help="PDF file to write")
@click.option(
    "--choice", "-c",
    multiple=True,
    help="QID=N: use alternative N (0 = original) for question QID",
)
@click.option("--log-level", default="WARNING", type=LOG_LEVELS)
def modify(pdf_path: str, output: str, choice: tuple[str, ...], log_level: str):
    """Overlay selected alternatives onto a copy of the PDF."""
    try:
        result, _ = _extract_with_text(pdf_path, log_level)
        selected = _resolve_choices(result, choice)
        data = create_modified_pdf(
            Path(pdf_path).read_bytes(), result.questions, selected
        )
    except (FileNotFoundError, DocumentDecodeError, click.BadParameter) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    Path(output).write_bytes(data)
    console.print(f"[green]✓[/] Wrote {output} ({len(selected)} replacement(s))")


@cli.command()
@click.option("--host", default="0.0.0.0", help="Server host")
@click.option("--port", default=5000, type=int, help="Server port")
@click.option("--debug", is_flag=True, default=False, help="Debug mode")
def serve(host: str, port: int, debug: bool):
    """Start the HTTP extraction service."""
    from .server import run_server

    _print_banner(f"Starting on {host}:{port}", title="Question Paper Service")
    run_server(host=host, port=port, debug=debug)


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True))
def info(pdf_path: str):
    """Show page count, hash, word count and Q sections of a PDF."""
    extractor = TextExtractor()
    try:
        meta = extractor.describe(pdf_path)
        document = extractor.extract(pdf_path)
    except (FileNotFoundError, DocumentDecodeError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    sections = SectionSegmenter().naive_spans(document.text)

    console.print()
    table = Table(title="PDF Information", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")

    table.add_row("File", meta.source_pdf)
    table.add_row("Pages", str(meta.page_count))
    table.add_row("File Size", f"{meta.file_size_bytes / 1024:.1f} KB")
    table.add_row("SHA-256", meta.file_hash[:16] + "...")
    table.add_row("Words", str(len(document.tokens)))
    table.add_row(
        "Q Sections",
        ", ".join(f"Q{s.question_number}" for s in sections) or "[dim]none[/]",
    )

    console.print(table)
    console.print()


# ─── Helpers ──────────────────────────────────────────────────────────────────


def _extract_with_text(pdf_path: str, log_level: str) -> tuple[ExtractionResult, str]:
    """Decode once, then extract, keeping the raw text for header parsing."""
    document = TextExtractor().extract(pdf_path)
    engine = ExtractionEngine(ParserConfig(log_level=log_level))
    return engine.extract(document), document.text


def _resolve_choices(
    result: ExtractionResult, choices: tuple[str, ...]
) -> dict[str, str]:
    """Turn ("q1a=2", ...) into {question_id: chosen text}."""
    by_id = {q.id: q for q in result.questions}
    selected: dict[str, str] = {}

    for raw in choices:
        qid, sep, index = raw.partition("=")
        if not sep or not index.isdigit():
            raise click.BadParameter(f"Expected QID=N, got {raw!r}")
        q = by_id.get(qid.strip())
        if q is None:
            raise click.BadParameter(f"No question {qid!r} in this paper")

        n = int(index)
        options = [q.text, *q.alternatives]
        if n >= len(options):
            raise click.BadParameter(
                f"{qid}: choose 0-{len(options) - 1}, got {n}"
            )
        selected[q.id] = options[n]
    return selected


def _print_banner(subtitle: str, title: str = f"Question Paper Extractor v{__version__}"):
    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]{title}[/]\n[dim]{subtitle}[/]",
            border_style="cyan",
        )
    )
    console.print()


def _print_json(result: ExtractionResult):
    print(json.dumps(
        result.model_dump(),
        indent=2,
        ensure_ascii=False,
        default=str,
    ))


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _display_results(result: ExtractionResult):
    """Display extracted questions and the report."""
    console.print()

    table = Table(title="Extracted Questions", border_style="cyan")
    table.add_column("ID", style="bold")
    table.add_column("Question")
    table.add_column("Marks", justify="right")
    table.add_column("Located", justify="center")

    for q in result.questions:
        table.add_row(
            q.id,
            q.text,
            str(q.marks),
            "[green]✓[/]" if q.position.is_resolved else "[dim]-[/]",
        )
    console.print(table)
    console.print()

    _display_report_table(result.report.model_dump())

    console.print(
        f"[dim]qpaper v{result.parser_version} | "
        f"Questions: {len(result.questions)} | "
        f"Timestamp: {result.extracted_at}[/]"
    )
    console.print()


def _display_report_table(report: dict):
    """Display the extraction report as a rich table."""
    table = Table(title="Extraction Report", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status", justify="center")

    def status_icon(count, threshold=0):
        if count <= threshold:
            return "[green]✓[/]"
        return "[red]✗[/]"

    sections = report.get("sections_detected", 0)
    rate = report.get("success_rate", 0)
    table.add_row(
        "Sections Detected",
        str(sections),
        "[green]✓[/]" if sections > 0 else "[red]✗[/]",
    )
    table.add_row(
        "Sections With Questions",
        f"{report.get('sections_with_questions', 0)} ({rate}%)",
        "[green]✓[/]" if rate >= 90 else "[yellow]⚠[/]",
    )
    table.add_row(
        "Questions Extracted",
        str(report.get("questions_extracted", 0)),
        "",
    )

    for key, label in [
        ("missing_question_numbers", "Missing Question Numbers"),
        ("duplicate_question_numbers", "Duplicate Question Numbers"),
        ("empty_sections", "Empty Sections"),
        ("sections_with_shortfall", "Sections With Shortfall"),
    ]:
        values = report.get(key, [])
        shown = ", ".join(f"Q{n}" for n in values) if values else "0"
        table.add_row(label, shown, status_icon(len(values)))

    table.add_row(
        "Positions Resolved",
        str(report.get("positions_resolved", 0)),
        "",
    )

    console.print(table)
    console.print()


# ─── Entry point (for python -m qpaper.cli) ───────────────────────────────────


if __name__ == "__main__":
    cli()
