"""Command-line interface for the complaint classifier.

Provides ``run``, ``vocabulary``, and ``normalize`` commands with rich
terminal output using the ``click`` and ``rich`` libraries. Settings come
from ``COMPLAINT_*`` environment variables or a ``.env`` file.

Usage::

    complaint-classifier run complaints.csv unlabeled.csv
    complaint-classifier vocabulary complaints.csv --output json
    complaint-classifier normalize "I called XX/XX/2020 about my mortgage"
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .config import PipelineConfig
from .normalizer import TextNormalizer
from .pipeline import ComplaintPipeline, PipelineResult, PreparedData

console = Console()
err_console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_config() -> PipelineConfig:
    try:
        return PipelineConfig.from_env()
    except ValueError as e:
        console.print(f"[bold red]Configuration error:[/] {e}")
        sys.exit(1)


@click.group()
@click.version_option(package_name="complaint-classifier")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """Consumer complaint product classifier.

    Cleans complaint narratives, builds a document-term matrix and tunes a
    classifier to predict each complaint's product.
    """
    _configure_logging(verbose)


@main.command()
@click.argument("train_file", type=click.Path(exists=True, path_type=Path))
@click.argument("predict_file", type=click.Path(exists=True, path_type=Path), required=False)
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
def run(train_file: Path, predict_file: Path | None, output: str) -> None:
    """Train, tune and evaluate on TRAIN_FILE; optionally predict PREDICT_FILE.

    Example: complaint-classifier run complaints.csv unlabeled.csv
    """
    pipeline = ComplaintPipeline(_load_config())

    with err_console.status("[bold blue]Training classifier...", spinner="dots"):
        try:
            result = pipeline.run(train_file, predict_file)
        except Exception as e:
            console.print(f"[bold red]Error:[/] {e}")
            sys.exit(1)

    if output == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _render_run(result)


@main.command()
@click.argument("train_file", type=click.Path(exists=True, path_type=Path))
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
def vocabulary(train_file: Path, output: str) -> None:
    """Fit and show the vocabulary learned from TRAIN_FILE.

    Example: complaint-classifier vocabulary complaints.csv
    """
    pipeline = ComplaintPipeline(_load_config())

    with err_console.status("[bold blue]Building vocabulary...", spinner="dots"):
        try:
            data = pipeline.prepare(train_file)
        except Exception as e:
            console.print(f"[bold red]Error:[/] {e}")
            sys.exit(1)

    if output == "json":
        click.echo(json.dumps({
            "load": data.load.to_dict(),
            "stats": data.stats.to_dict(),
            "vocabulary": data.vocabulary.to_dict(),
        }, indent=2))
    else:
        _render_vocabulary(data)


@main.command()
@click.argument("text")
def normalize(text: str) -> None:
    """Print the normalized form of a single narrative TEXT.

    Example: complaint-classifier normalize "XX/XX/2019 late payment"
    """
    click.echo(TextNormalizer().normalize(text))


# ------------------------------------------------------------------
# Rich rendering helpers
# ------------------------------------------------------------------

def _render_vocabulary(data: PreparedData) -> None:
    """Render vocabulary pruning stats and the retained terms."""
    stats = data.stats
    console.print()
    console.print(Panel(
        f"[bold]{Path(data.load.source).name}[/]\n"
        f"Records: {len(data.load)} | Dropped (no narrative): {data.load.dropped} | "
        f"Training documents: {stats.n_documents}\n"
        f"Terms: {stats.total_terms} -> {stats.after_frequency} (frequency) "
        f"-> {stats.after_sparsity} (sparsity)",
        title="📚 Vocabulary",
        border_style="blue",
    ))

    table = Table(title="Retained Terms", show_lines=False)
    table.add_column("Term", style="cyan")
    table.add_column("Doc. freq.", justify="right")
    table.add_column("Sparsity", justify="right")

    vocab = data.vocabulary
    by_frequency = sorted(vocab.terms, key=lambda t: (-vocab.frequency(t), t))
    for term in by_frequency[:50]:  # Cap display at 50
        table.add_row(term, str(vocab.frequency(term)), f"{vocab.sparsity(term):.2%}")
    if len(vocab) > 50:
        table.add_row("...", f"({len(vocab) - 50} more)", "")

    console.print(table)
    console.print()


def _render_run(result: PipelineResult) -> None:
    """Render a full PipelineResult with rich formatting."""
    stats = result.stats
    console.print()

    # Header
    console.print(Panel(
        f"[bold]{Path(result.load.source).name}[/]\n"
        f"Records: {len(result.load)} | Dropped (no narrative): {result.load.dropped}\n"
        f"Vocabulary: {stats.total_terms} -> {stats.after_frequency} -> "
        f"{stats.after_sparsity} terms | Classifier: {result.model.adapter}",
        title="🗂️  Complaint Classification",
        border_style="blue",
    ))

    # Tuning table
    tuning = result.tuning
    table = Table(title=f"Top Hyperparameters (mean {tuning.metric})", show_lines=False)
    table.add_column("#", justify="right", width=4)
    table.add_column("Hyperparameters", style="cyan")
    table.add_column("Mean", justify="right", width=8)
    for i, candidate in enumerate(tuning.ranked(5), 1):
        params = ", ".join(f"{k}={v:g}" if isinstance(v, float) else f"{k}={v}"
                           for k, v in candidate.hyperparameters.items())
        table.add_row(str(i), params, f"{candidate.mean(tuning.metric):.4f}")
    console.print(table)
    console.print()

    # Test metrics
    console.print(Panel(result.test_metrics.summary(), title="Test Set", border_style="dim"))
    _render_confusion(result)

    # Predictions
    if result.inference is not None:
        table = Table(title=f"Predictions: {Path(result.inference.source).name}")
        table.add_column("Row", justify="right", width=6)
        table.add_column("Predicted product", style="cyan")
        for prediction in result.predictions[:30]:  # Cap display at 30
            table.add_row(str(prediction.row), prediction.label.value)
        if len(result.predictions) > 30:
            table.add_row("...", f"({len(result.predictions) - 30} more)")
        console.print(table)
        console.print()


def _render_confusion(result: PipelineResult) -> None:
    """Render the test-set confusion matrix (rows: truth, columns: predicted)."""
    cm = result.test_metrics.confusion_matrix
    if not cm:
        return
    classes = sorted(cm)
    table = Table(title="Confusion Matrix (rows = actual)", show_lines=True)
    table.add_column("Actual", style="cyan")
    for cls in classes:
        table.add_column(cls, justify="right")
    for true in classes:
        cells = []
        for pred in classes:
            count = str(cm[true][pred])
            cells.append(f"[bold green]{count}[/]" if true == pred else count)
        table.add_row(true, *cells)
    console.print(table)
    console.print()


if __name__ == "__main__":
    main()
