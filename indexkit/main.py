"""
indexkit CLI Application.

Provides a command-line interface for extracting documents into a search
corpus, merging corpus files and checking them before publishing.
"""

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from indexkit.config import get_settings
from indexkit.corpus import (
    CorpusFormatError,
    CorpusMergeService,
    CorpusSerializer,
    ExtractionPipeline,
    RecordValidator,
)
from indexkit.corpus.publishing import index_fields
from indexkit.extractors import SourceNotFoundError, get_supported_extensions
from indexkit.models import BatchReport

# Create Typer app
app = typer.Typer(
    name="indexkit",
    help="Extract PPTX, PDF and Markdown files into a search-index corpus",
    add_completion=False,
)

console = Console()


def _configure_logging(verbose: bool = False) -> None:
    """Route log records through rich at the configured level."""
    level = logging.DEBUG if verbose else get_settings().log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@app.command()
def extract(
    input_path: Annotated[Path, typer.Argument(help="File or directory to extract")],
    output_dir: Annotated[
        Optional[Path],
        typer.Argument(help="Output directory for the corpus and media files"),
    ] = None,
    workers: Annotated[
        Optional[int],
        typer.Option("--workers", "-w", help="Documents to extract in parallel"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show detailed output"),
    ] = False,
) -> None:
    """
    Extract documents into a search-index corpus.

    Writes search-index.json and a media/ directory with every extracted
    image, audio and video file under the output directory.
    """
    _configure_logging(verbose)
    settings = get_settings()
    if workers is not None:
        settings = settings.model_copy(update={"max_workers": max(1, workers)})

    target = output_dir or settings.output_directory
    console.print(f"Processing: {escape(str(input_path))}")
    console.print(f"Output directory: {escape(str(target))}\n")

    try:
        report = ExtractionPipeline(settings).run(input_path, target)
    except SourceNotFoundError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except OSError as e:
        console.print(f"[red]Output Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    _display_batch(report, verbose)

    if not report.records:
        console.print("[yellow]No documents were processed.[/yellow]")
        raise typer.Exit(1)


@app.command()
def merge(
    paths: Annotated[
        list[Path],
        typer.Argument(help="Input corpus files followed by the output file"),
    ],
) -> None:
    """
    Merge several corpus files into one.

    The last path is the output file. Inputs that are missing or corrupt
    are reported and skipped.
    """
    _configure_logging()

    if len(paths) < 2:
        console.print("[red]Error:[/red] Please provide input files and output file path.")
        raise typer.Exit(1)

    *inputs, output = paths
    console.print("Merging index files...")
    report = CorpusMergeService().merge(inputs, output)

    table = Table(title="Merge Sources")
    table.add_column("Input", style="cyan")
    table.add_column("Records", justify="right")
    table.add_column("Status")

    for source in report.sources:
        status = "[green]✓ loaded[/green]" if source.ok else f"[red]✗ {escape(source.error or '')}[/red]"
        table.add_row(escape(source.path), str(source.count), status)

    console.print(table)

    if report.output_path is None:
        console.print("[yellow]No documents to merge.[/yellow]")
        raise typer.Exit(1)

    console.print(f"\n[green]Merged {report.total} total document(s) into:[/green] {report.output_path}")


@app.command()
def validate(
    corpus_file: Annotated[Path, typer.Argument(help="Path to the corpus file")],
) -> None:
    """
    Validate a corpus file without modifying it.

    Checks that the file parses and every record has an id, title and content.
    """
    _configure_logging()

    try:
        records = CorpusSerializer().load(corpus_file)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except CorpusFormatError as e:
        console.print(f"[red]Format Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    validator = RecordValidator()
    invalid = [(record, validator.missing_fields(record)) for record in records]
    invalid = [(record, missing) for record, missing in invalid if missing]

    id_counts = Counter(record.id for record in records if record.id)
    duplicate_ids = [record_id for record_id, count in id_counts.items() if count > 1]

    console.print(Panel(f"[bold]{len(records)}[/bold] record(s) in {corpus_file}", title="Corpus"))

    if duplicate_ids:
        console.print(f"[yellow]⚠ {len(duplicate_ids)} id(s) appear more than once[/yellow]")

    if not invalid:
        console.print("\n[green]✓ All records are valid[/green]")
        return

    table = Table(title="Invalid Records")
    table.add_column("Source", style="cyan")
    table.add_column("Missing")
    for record, missing in invalid:
        table.add_row(escape(record.source_path or record.id or "<unknown>"), ", ".join(missing))

    console.print(table)
    raise typer.Exit(1)


@app.command()
def schema() -> None:
    """Print the search index schema derived from the record fields."""
    fields = [field.model_dump() for field in index_fields()]
    console.print_json(json.dumps({"fields": fields}))


def _display_batch(report: BatchReport, verbose: bool = False) -> None:
    """Display extraction results in a formatted table."""
    if report.records:
        table = Table(title="Extracted Documents")
        table.add_column("Title", style="cyan")
        table.add_column("Type")
        table.add_column("Chars", justify="right")
        table.add_column("Images", justify="right")
        table.add_column("Audio", justify="right")
        table.add_column("Video", justify="right")

        for record in report.records:
            table.add_row(
                escape(record.title),
                record.file_type.value,
                str(len(record.content)),
                str(len(record.images)),
                str(len(record.audio_files)),
                str(len(record.video_files)),
            )

        console.print(table)

    if report.failures:
        console.print("\n[yellow]⚠ Documents skipped:[/yellow]")
        for failure in report.failures:
            console.print(f"  • ({failure.kind.value}) {escape(failure.path)}: {escape(failure.message)}")

    if verbose:
        for stats in report.stats:
            for problem in stats.asset_failures + stats.skipped_items:
                console.print(f"  [dim]{escape(Path(stats.source_path).name)}: {escape(problem)}[/dim]")

    if report.corpus_path is not None:
        console.print(
            Panel(
                f"Total documents processed: {report.succeeded}\n"
                f"Search index saved to: {report.corpus_path}\n"
                f"Media files saved to: {report.media_directory}\n"
                f"Supported formats: {', '.join(get_supported_extensions())}",
                title="Extraction Complete",
            )
        )


if __name__ == "__main__":
    app()
