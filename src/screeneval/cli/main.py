"""CLI application using Typer for the screening evaluation engine."""

import json
from pathlib import Path
from typing import List, Optional, Tuple

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..config.settings import settings
from ..core.errors import MappingInvalidError, ScreenEvalError
from ..core.models import CriterionConfig, IngestedTable, ModerationDecision
from ..evaluation.engine import evaluate as run_evaluation
from ..evaluation.mapping import suggest_llm_value_map, unique_values
from ..evaluation.session import EvaluationSession
from ..export.moderated import write_moderated_csv
from ..export.payload import (
    BUCKETS,
    build_export_payload,
    format_metric,
    row_details,
    sanitize_filename,
)
from ..io.table import read_table
from ..persistence.compat import import_mapping, load_session, snapshot
from ..persistence.store import ConfigStore, read_configuration, write_configuration
from ..utils.logging import get_logger

app = typer.Typer(
    name="screeneval",
    help="Evaluate LLM screening decisions against human ground truth",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


def _load_table(table_path: Path) -> IngestedTable:
    try:
        return read_table(table_path)
    except ScreenEvalError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _add_manual(session: EvaluationSession, columns: Optional[List[str]]) -> None:
    for column in columns or []:
        try:
            session.add_manual_criterion(column)
        except ValueError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)


def _open_session(
    table_path: Path,
    mapping_file: Optional[Path],
    store_key: str,
) -> Tuple[IngestedTable, EvaluationSession, ConfigStore]:
    """Load a table, restore the stored configuration and apply an optional mapping file."""
    table = _load_table(table_path)
    store = ConfigStore()
    session, restored = load_session(table, store.load(store_key))
    if restored:
        console.print(f"[dim]Restored saved configuration '{store_key}'[/dim]")
    if mapping_file:
        try:
            imported = read_configuration(mapping_file)
        except (ValidationError, yaml.YAMLError, json.JSONDecodeError) as e:
            console.print(f"[red]Error: invalid mapping file {mapping_file}: {escape(str(e))}[/red]")
            raise typer.Exit(1)
        _add_manual(session, [c for c in imported.manual_criteria if c in table.header])
        report = import_mapping(session, imported)
        console.print(f"Imported mapping for {len(report.applied)} criteria from {mapping_file}")
        if report.skipped:
            console.print(
                f"[yellow]⚠ Skipped {report.skipped_count} unknown criteria: {', '.join(report.skipped)}[/yellow]"
            )
        if report.identity_conflicts:
            console.print(
                f"[yellow]⚠ Kept live column identity for: {', '.join(report.identity_conflicts)}[/yellow]"
            )
        if report.cleared_human_columns:
            console.print(
                f"[yellow]⚠ Human column missing, cleared for: {', '.join(report.cleared_human_columns)}[/yellow]"
            )
    return table, session, store


def _print_issues(validation) -> None:
    table = Table(title="Mapping Issues")
    table.add_column("Criterion", style="cyan")
    table.add_column("Issue", style="yellow")
    table.add_column("Unmapped values", style="magenta")
    for issue in validation.issues:
        values = ", ".join(issue.unmapped_values[:10])
        if len(issue.unmapped_values) > 10:
            values += f" (+{len(issue.unmapped_values) - 10} more)"
        table.add_row(issue.criterion_id, issue.message, values or "-")
    if not validation.issues:
        table.add_row("-", "no criteria included", "-")
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from .. import __version__
    console.print(f"Screening Evaluation v{__version__}")


@app.command()
def criteria(
    table_path: Path = typer.Argument(..., help="Evaluated CSV/TSV file", exists=True),
    manual: Optional[List[str]] = typer.Option(None, "--manual", "-m", help="Add a column as a label-only criterion"),
) -> None:
    """List criteria discovered in a table and the candidate human columns."""
    table = _load_table(table_path)
    session = EvaluationSession.from_table(table)
    _add_manual(session, manual)
    out = Table(title=f"Criteria ({len(session.criteria)})")
    out.add_column("ID", style="cyan")
    out.add_column("Label column")
    out.add_column("Probability column")
    out.add_column("Source", style="dim")
    for crit in session.criteria.values():
        out.add_row(
            crit.criterion_id,
            crit.label_column,
            crit.probability_column or "-",
            "manual" if crit.manual else "discovered",
        )
    console.print(out)
    console.print(f"Human column options: {', '.join(session.human_column_options()) or '-'}")


@app.command()
def template(
    table_path: Path = typer.Argument(..., help="Evaluated CSV/TSV file", exists=True),
    output: Path = typer.Option(Path("mapping.yaml"), "--output", "-o", help="Mapping file to write (YAML or JSON)"),
    human_column: Optional[str] = typer.Option(None, "--human", help="Human column to preselect for every criterion"),
    manual: Optional[List[str]] = typer.Option(None, "--manual", "-m", help="Add a column as a label-only criterion"),
) -> None:
    """Write a starter mapping file pre-filled from the yes/maybe/no vocabulary."""
    table = _load_table(table_path)
    session = EvaluationSession.from_table(table)
    _add_manual(session, manual)
    if human_column and human_column not in table.header:
        console.print(f"[red]Error: column {human_column!r} not found[/red]")
        raise typer.Exit(1)
    for crit in session.criteria.values():
        cfg = CriterionConfig(
            human_column=human_column,
            llm_value_map=suggest_llm_value_map(unique_values(table.rows, crit.label_column)),
        )
        if human_column:
            cfg.human_value_map = suggest_llm_value_map(unique_values(table.rows, human_column))
        session.configs[crit.criterion_id] = cfg
    write_configuration(output, snapshot(session))
    console.print(f"[green]✓ Mapping template saved: {output}[/green]")
    validation = session.validate(table.rows)
    if not validation.valid:
        console.print("[yellow]Complete the following before evaluating:[/yellow]")
        _print_issues(validation)


@app.command()
def validate(
    table_path: Path = typer.Argument(..., help="Evaluated CSV/TSV file", exists=True),
    mapping_file: Optional[Path] = typer.Option(None, "--mapping", help="Mapping file (YAML or JSON)", exists=True),
    store_key: str = typer.Option(settings.config_store_name, "--store-key", help="Saved configuration key"),
) -> None:
    """Check that a mapping covers every included criterion's values."""
    table, session, _ = _open_session(table_path, mapping_file, store_key)
    validation = session.validate(table.rows)
    if validation.valid:
        console.print("\n[bold green]✓ Mapping is valid![/bold green]")
        raise typer.Exit(0)
    _print_issues(validation)
    console.print("\n[bold red]✗ Mapping is incomplete![/bold red]")
    raise typer.Exit(1)


@app.command()
def evaluate(
    table_path: Path = typer.Argument(..., help="Evaluated CSV/TSV file", exists=True),
    mapping_file: Optional[Path] = typer.Option(None, "--mapping", help="Mapping file (YAML or JSON)", exists=True),
    store_key: str = typer.Option(settings.config_store_name, "--store-key", help="Saved configuration key"),
    report_name: str = typer.Option("LLM Eval Report", "--name", help="Report name"),
    json_out: Optional[Path] = typer.Option(None, "--json", help="Write the export payload to this file"),
    save: bool = typer.Option(True, "--save/--no-save", help="Persist the configuration for the next run"),
) -> None:
    """Score the model against human labels and print per-criterion metrics."""
    table, session, store = _open_session(table_path, mapping_file, store_key)
    try:
        session.confirm(table.rows)
    except MappingInvalidError as e:
        _print_issues(e.validation)
        console.print("[red]Mapping is not valid; run 'screeneval template' or fix the mapping file.[/red]")
        raise typer.Exit(1)
    result = run_evaluation(table, session)
    console.print(
        Panel(
            f"Rows scored: {len(result.kept_indices)}/{table.row_count}\n"
            f"Pooled accuracy: {format_metric(result.pooled_accuracy, percent=True)}",
            title=report_name,
            border_style="cyan",
        )
    )
    metrics = Table(title="Per-criterion Metrics")
    for col in ("Criterion", "TP", "TN", "FP", "FN", "Accuracy", "Precision", "Recall", "F1", "Moderated"):
        metrics.add_column(col, justify="left" if col == "Criterion" else "right")
    for cid in result.criteria:
        m = result.confusion[cid]
        metrics.add_row(
            session.criteria[cid].display_name,
            str(m.tp),
            str(m.tn),
            str(m.fp),
            str(m.fn),
            format_metric(m.accuracy, percent=True),
            format_metric(m.precision, percent=True),
            format_metric(m.recall, percent=True),
            format_metric(m.f1, percent=True),
            str(result.moderation_counts.get(cid, 0)),
        )
    console.print(metrics)
    if result.correlations:
        corr = Table(title="Error Correlations")
        corr.add_column("Pair", style="cyan")
        corr.add_column("r", justify="right")
        for key, value in result.correlations.items():
            corr.add_row(key, format_metric(value))
        console.print(corr)
    payload = build_export_payload(table, session, result, report_name)
    for note in payload["notes"]:
        console.print(f"[dim]{note}[/dim]")
    if json_out:
        json_out.parent.mkdir(parents=True, exist_ok=True)
        json_out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        console.print(f"[green]✓ Saved: {json_out}[/green]")
    if save:
        store.save(store_key, snapshot(session))


@app.command()
def inspect(
    table_path: Path = typer.Argument(..., help="Evaluated CSV/TSV file", exists=True),
    criterion_id: str = typer.Argument(..., help="Criterion id"),
    bucket: str = typer.Argument(..., help="Confusion bucket: tp, tn, fp or fn"),
    store_key: str = typer.Option(settings.config_store_name, "--store-key", help="Saved configuration key"),
) -> None:
    """Show the rows of one confusion bucket for a criterion."""
    bucket = bucket.lower()
    if bucket not in BUCKETS:
        console.print(f"[red]Error: bucket must be one of {', '.join(BUCKETS)}[/red]")
        raise typer.Exit(1)
    table, session, _ = _open_session(table_path, None, store_key)
    if criterion_id not in session.criteria:
        console.print(f"[red]Error: unknown criterion {criterion_id!r}[/red]")
        raise typer.Exit(1)
    result = run_evaluation(table, session)
    details = row_details(table, session, result, criterion_id, bucket)
    out = Table(title=f"{criterion_id} {bucket.upper()} ({len(details)} rows)")
    for col in ("Row", "Human value", "Human decision", "LLM value", "LLM decision", "LLM prob", "Moderation"):
        out.add_column(col)
    for d in details:
        out.add_row(
            str(d["row"]),
            d["human_value"] or "<empty>",
            d["human_decision"] or "-",
            d["llm_value"] or "<empty>",
            d["llm_decision"] or "-",
            format_metric(d["llm_probability"]),
            d["moderation"] or "-",
        )
    console.print(out)


@app.command()
def moderate(
    table_path: Path = typer.Argument(..., help="Evaluated CSV/TSV file", exists=True),
    criterion_id: str = typer.Argument(..., help="Criterion id"),
    row_index: int = typer.Argument(..., help="0-based row index"),
    decision: Optional[ModerationDecision] = typer.Option(
        None, "--decision", "-d", help="'human' confirms the human label, 'llm_correct' adopts the model decision"
    ),
    clear: bool = typer.Option(False, "--clear", help="Remove the moderation for this row"),
    store_key: str = typer.Option(settings.config_store_name, "--store-key", help="Saved configuration key"),
) -> None:
    """Toggle a moderation verdict for one row and criterion."""
    if not clear and decision is None:
        console.print("[red]Error: provide --decision or --clear[/red]")
        raise typer.Exit(1)
    table, session, store = _open_session(table_path, None, store_key)
    try:
        if clear:
            session.clear_moderation(criterion_id, row_index)
            state = None
        else:
            state = session.set_moderation(criterion_id, row_index, decision)
    except (KeyError, IndexError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    store.save(store_key, snapshot(session))
    if state is None:
        console.print(f"[green]✓ Moderation cleared for {criterion_id} row {row_index}[/green]")
    else:
        console.print(f"[green]✓ {criterion_id} row {row_index}: {state.value}[/green]")
    console.print(f"Moderated decisions: {session.moderation_count()}")


@app.command("export-moderated")
def export_moderated(
    table_path: Path = typer.Argument(..., help="Evaluated CSV/TSV file", exists=True),
    output_dir: Path = typer.Option(settings.output_dir, "--output", "-o", help="Output directory"),
    report_name: str = typer.Option("LLM Eval Report", "--name", help="Report name used in the file name"),
    store_key: str = typer.Option(settings.config_store_name, "--store-key", help="Saved configuration key"),
) -> None:
    """Export the original table with classification and moderation columns."""
    table, session, _ = _open_session(table_path, None, store_key)
    if not session.included_criteria():
        console.print("[red]Error: no included criteria to export[/red]")
        raise typer.Exit(1)
    path = write_moderated_csv(table, session, output_dir, report_name)
    console.print(f"[green]✓ Saved: {path}[/green]")


@app.command("export-mapping")
def export_mapping(
    table_path: Path = typer.Argument(..., help="Evaluated CSV/TSV file", exists=True),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Mapping file to write (YAML or JSON)"),
    store_key: str = typer.Option(settings.config_store_name, "--store-key", help="Saved configuration key"),
) -> None:
    """Write the saved configuration to a mapping file for reuse."""
    _, session, _ = _open_session(table_path, None, store_key)
    path = output or Path(f"{sanitize_filename(store_key)}_mapping.json")
    write_configuration(path, snapshot(session))
    console.print(f"[green]✓ Saved: {path}[/green]")


if __name__ == "__main__":
    app()
