"""CLI application using Typer for the meta-analysis toolkit."""

import json
from pathlib import Path
from typing import List, Optional, Type, TypeVar
import typer
from pydantic import BaseModel, TypeAdapter, ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config.settings import settings
from ..core.models import EffectMeasure, PoolingMethod, Record, StudyRecord
from ..dedup.deduplicator import Deduplicator
from ..meta.analyzer import MetaAnalyzer
from ..meta.report import format_summary
from ..utils.logging import get_logger

app = typer.Typer(
    name="srma",
    help="Systematic review & meta-analysis toolkit",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


def _load_json_list(path: Path, model: Type[M]) -> List[M]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return TypeAdapter(List[model]).validate_python(raw)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        console.print(f"[red]Error: could not load {escape(str(path))}: {escape(str(exc))}[/red]")
        raise typer.Exit(1)


@app.command()
def pool(
    input_file: Path = typer.Argument(..., help="JSON array of study records"),
    measure: EffectMeasure = typer.Option(EffectMeasure(settings.default_measure), "--measure", "-m", help="Effect measure"),
    method: PoolingMethod = typer.Option(PoolingMethod(settings.default_method), "--method", help="Pooling method"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the plain-text summary to this file"),
) -> None:
    """Pool study records into a single effect estimate."""
    studies = _load_json_list(input_file, StudyRecord)
    analyzer = MetaAnalyzer(measure=measure, method=method)
    result = analyzer.pool(studies)
    if result is None:
        console.print("[yellow]Cannot compute: no studies with sufficient data for this measure[/yellow]")
        raise typer.Exit(1)

    table = Table(
        title=f"{measure.value} ({method.value} effects)",
        caption="* 95% CI excludes the line of no effect",
    )
    table.add_column("Study", style="cyan")
    table.add_column("Effect", justify="right")
    table.add_column("95% CI", justify="right")
    table.add_column("Weight %", justify="right")
    for row in analyzer.build_study_table(studies, result).itertuples(index=False):
        style = "bold green" if row.type == "pooled" else None
        table.add_row(
            escape(str(row.study)),
            f"{row.effect:.3f}",
            f"[{row.ci_lower:.3f}, {row.ci_upper:.3f}]" + ("" if row.crosses_null else " *"),
            f"{row.weight:.1f}",
            style=style,
        )
    console.print(table)

    summary = format_summary(result, measure, method, n_studies=len(studies))
    console.print(summary, markup=False, highlight=False)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(summary + "\n", encoding="utf-8")
        console.print(f"[green]Summary written to {output}[/green]")


@app.command()
def dedup(
    input_file: Path = typer.Argument(..., help="JSON array of bibliographic records"),
    threshold: float = typer.Option(settings.dedup_title_threshold, "--threshold", "-t", help="Title similarity threshold (0-1)"),
    scorer: str = typer.Option(settings.dedup_scorer, "--scorer", help="Title similarity scorer (jaccard, ratio)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write unique records as JSON"),
) -> None:
    """Remove duplicate records by DOI, PMID and title similarity."""
    records = _load_json_list(input_file, Record)
    try:
        deduplicator = Deduplicator(threshold=threshold, scorer=scorer)
    except ValueError as exc:
        console.print(f"[red]Error: {escape(str(exc))}[/red]")
        raise typer.Exit(1)
    unique, groups, stats = deduplicator.deduplicate(records)

    table = Table(title="Deduplication Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="green")
    table.add_row("Input records", str(stats.total_input))
    table.add_row("Unique records", str(stats.unique_output))
    table.add_row("Duplicates removed", str(stats.duplicates_removed))
    for match_type, count in stats.by_match_type.items():
        table.add_row(f"  by {match_type}", str(count))
    table.add_row("Duplicate groups", str(len(groups)))
    console.print(table)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        payload = [r.model_dump(mode="json") for r in unique]
        output.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        console.print(f"[green]Unique records written to {output}[/green]")


if __name__ == "__main__":
    app()
