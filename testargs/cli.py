"""CLI entrypoint for testargs."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
import typer
from rich import print
from rich.console import Console
from rich.table import Table

from testargs.config import AppConfig, configure_logging, load_app_config
from testargs.grid import (
    DiagnosticsComparison,
    GridConfig,
    GridResult,
    GridRunner,
    optimal_arguments,
)
from testargs.registry.discovery import CallableRegistry

app = typer.Typer(help="Evaluate a prediction function over a grid of arguments")
console = Console()


def _load_config(app_config_path: Optional[str]) -> AppConfig:
    cfg = load_app_config(app_config_path)
    configure_logging(cfg.logging)
    return cfg


def _criteria_for(result: GridResult, criteria: Dict[str, str]) -> Dict[str, str]:
    unknown = [name for name in criteria if name not in result.diagnostic_names]
    if unknown:
        raise ValueError(f"Criteria given for unknown diagnostics {unknown}; available: {result.diagnostic_names}")
    return {name: criteria.get(name, "min") for name in result.diagnostic_names}


def _parse_criteria(specs: List[str]) -> Dict[str, str]:
    criteria = {}
    for spec in specs:
        if "=" not in spec:
            raise ValueError(f"Invalid criterion '{spec}'. Expected format: diagnostic=min|max|target:<value>")
        name, criterion = spec.split("=", 1)
        criteria[name.strip()] = criterion.strip()
    return criteria


@app.command()
def list_models(models_path: str = "models") -> None:
    registry = CallableRegistry(models_path)
    files = registry.list_model_files()
    if not files:
        print(f"[yellow]No model files found under {models_path}[/yellow]")
        return
    for path in files:
        print(f"[bold]{path.parent.relative_to(registry.root)}[/bold] - {path}")


@app.command()
def run(
    config_path: Path = typer.Argument(..., help="Path to grid YAML config"),
    app_config_path: Optional[str] = typer.Option(None, help="Path to application config"),
    models_path: str = typer.Option("models", help="Root for 'file.py:function' references"),
    output_dir: Optional[Path] = typer.Option(None, help="Override the configured output directory"),
) -> None:
    """Run an argument grid from a YAML configuration file.

    Example:
        testargs run config/grids/polynomial_degree.yaml
    """
    if not config_path.exists():
        print(f"[red]Error:[/red] Config file not found: {config_path}")
        raise typer.Exit(1)

    app_config = _load_config(app_config_path)
    try:
        grid_config = GridConfig.from_yaml(config_path)
        if output_dir is not None:
            grid_config.output_dir = str(output_dir)

        print(f"[bold]Grid run:[/bold] {grid_config.run_id}")
        if grid_config.description:
            print(f"[cyan]{grid_config.description}[/cyan]")
        print()

        runner = GridRunner(app_config, CallableRegistry(models_path))
        result = runner.run_config(grid_config)
        optimal = optimal_arguments(result, _criteria_for(result, grid_config.criteria))
    except Exception as e:
        print(f"[red]Error running grid:[/red] {e}")
        raise typer.Exit(1)

    print()
    print("[green]✓[/green] Grid complete!")
    if result.output_dir:
        print(f"[cyan]Results saved to:[/cyan] {result.output_dir}")
    if result.failures:
        print(f"[yellow]Warning:[/yellow] {len(result.failures)} combination(s) failed")
    print()

    print("[bold]Diagnostics:[/bold]")
    _display_table(result.diagnostics_df)
    print()
    print("[bold]Optimal arguments:[/bold]")
    _display_table(optimal)


@app.command()
def show(
    output_dir: Path = typer.Argument(..., help="Path to grid output directory"),
    diagnostic: Optional[str] = typer.Option(None, help="Diagnostic to sort by (default: first)"),
    descending: bool = typer.Option(False, help="Higher values rank first"),
    top_n: Optional[int] = typer.Option(None, help="Show only top N combinations"),
) -> None:
    """Display results from a completed grid run.

    Example:
        testargs show runs/polynomial_degree --diagnostic rmse --top-n 5
    """
    if not output_dir.exists():
        print(f"[red]Error:[/red] Output directory not found: {output_dir}")
        raise typer.Exit(1)

    try:
        result = DiagnosticsComparison.load_result(output_dir)
        metric = diagnostic or result.diagnostic_names[0]
        df = result.diagnostics_df

        print(f"[bold]Grid Results:[/bold] {output_dir.name}")
        print()

        if top_n:
            df = DiagnosticsComparison.get_top_n(df, metric, n=top_n, ascending=not descending)
            print(f"[cyan]Showing top {top_n} by {metric}[/cyan]")
        else:
            df = DiagnosticsComparison.rank_by_diagnostic(df, metric, ascending=not descending)

        _display_table(df)

    except Exception as e:
        print(f"[red]Error loading results:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def optimal(
    output_dir: Path = typer.Argument(..., help="Path to grid output directory"),
    criterion: Optional[List[str]] = typer.Option(
        None, help="Per-diagnostic criterion, e.g. --criterion coverage=target:0.9 (default: min)"
    ),
) -> None:
    """Show the optimal argument combination for each diagnostic.

    Example:
        testargs optimal runs/polynomial_degree --criterion coverage=target:0.9
    """
    if not output_dir.exists():
        print(f"[red]Error:[/red] Output directory not found: {output_dir}")
        raise typer.Exit(1)

    try:
        result = DiagnosticsComparison.load_result(output_dir)
        criteria = _criteria_for(result, _parse_criteria(criterion or []))
        _display_table(optimal_arguments(result, criteria))
    except Exception as e:
        print(f"[red]Error selecting optimal arguments:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def plot(
    output_dir: Path = typer.Argument(..., help="Path to grid output directory"),
    focus: Optional[List[str]] = typer.Option(
        None, help="Focused argument (repeat, up to four)"),
    average: bool = typer.Option(True, help="Average out non-focused arguments"),
    kind: str = typer.Option("auto", help="auto, line or scatter"),
    diagnostic: Optional[List[str]] = typer.Option(
        None, help="Diagnostic to plot (repeat; default: all)"),
    output_file: Optional[Path] = typer.Option(None, help="Image path (default: <output_dir>/diagnostics.png)"),
    app_config_path: Optional[str] = typer.Option(None, help="Path to application config"),
) -> None:
    """Plot diagnostics of a completed grid run.

    Example:
        testargs plot runs/polynomial_degree --focus degree --focus ridge
    """
    from testargs.visualization.plots import close, plot_diagnostics

    if not output_dir.exists():
        print(f"[red]Error:[/red] Output directory not found: {output_dir}")
        raise typer.Exit(1)

    app_config = _load_config(app_config_path)
    image_path = output_file or output_dir / "diagnostics.png"

    try:
        result = DiagnosticsComparison.load_result(output_dir)
        grid = plot_diagnostics(
            result,
            focused_args=focus or None,
            average_out_non_focused_args=average,
            kind=kind,
            diagnostics=diagnostic or None,
            output_path=image_path,
            plot_config=app_config.plot_defaults,
        )
        close(grid)
    except Exception as e:
        print(f"[red]Error plotting diagnostics:[/red] {e}")
        raise typer.Exit(1)

    print(f"[green]✓[/green] Plot saved to: {image_path}")


@app.command()
def report(
    output_dir: Path = typer.Argument(..., help="Path to grid output directory"),
    criterion: Optional[List[str]] = typer.Option(
        None, help="Per-diagnostic criterion, e.g. rmse=min"),
    output_file: Optional[Path] = typer.Option(None, help="Save report to file"),
) -> None:
    """Generate a text report for a grid run.

    Example:
        testargs report runs/polynomial_degree --output-file report.txt
    """
    if not output_dir.exists():
        print(f"[red]Error:[/red] Output directory not found: {output_dir}")
        raise typer.Exit(1)

    try:
        result = DiagnosticsComparison.load_result(output_dir)
        criteria = _criteria_for(result, _parse_criteria(criterion or []))
        output_path = output_file or output_dir / "report.txt"
        text = DiagnosticsComparison.create_report(result, criteria, output_path)
    except Exception as e:
        print(f"[red]Error generating report:[/red] {e}")
        raise typer.Exit(1)

    console.print(text, markup=False, highlight=False)
    print()
    print(f"[green]✓[/green] Report saved to: {output_path}")


def _display_table(df: pd.DataFrame) -> None:
    """Helper to display a DataFrame as a rich table."""
    if df.empty:
        print("[yellow]No results to display[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")

    for col in df.columns:
        table.add_column(str(col))

    for _, row in df.iterrows():
        table.add_row(*[_format_value(val) for val in row])

    console.print(table)


def _format_value(value) -> str:
    if isinstance(value, float):
        return f"{value:.4g}"
    return str(value)


if __name__ == "__main__":
    app()
