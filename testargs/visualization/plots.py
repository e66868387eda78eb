"""
Diagnostic plots for argument grids.

One facet per diagnostic, with up to four focused arguments mapped onto the
x axis, colour, line style/marker and size. Non-focused arguments are either
averaged out or drawn as separate unaggregated lines.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from testargs.config import PlotDefaults
from testargs.grid.engine import GridResult

logger = logging.getLogger(__name__)

MAX_FOCUSED_ARGS = 4
AESTHETICS = ("x", "hue", "style", "size")
UNITS_COLUMN = "_combination"


def _resolve_focused_args(result: GridResult, focused_args: Optional[Sequence[str]]) -> List[str]:
    if focused_args is None:
        focused = list(result.arg_names)
        if len(focused) > MAX_FOCUSED_ARGS:
            logger.warning(
                "Grid has %d arguments; focusing on the first %d (%s)",
                len(focused), MAX_FOCUSED_ARGS, focused[:MAX_FOCUSED_ARGS],
            )
            focused = focused[:MAX_FOCUSED_ARGS]
        return focused

    focused = list(focused_args)
    unknown = [arg for arg in focused if arg not in result.arg_names]
    if unknown:
        raise ValueError(f"focused_args {unknown} are not arguments of the grid {result.arg_names}")
    if len(focused) > MAX_FOCUSED_ARGS:
        raise ValueError(
            f"At most {MAX_FOCUSED_ARGS} focused arguments can be shown (x, hue, style, size); got {len(focused)}"
        )
    if len(set(focused)) != len(focused):
        raise ValueError(f"focused_args contains duplicates: {focused}")
    return focused


def _resolve_diagnostics(result: GridResult, diagnostics: Optional[Sequence[str]]) -> List[str]:
    if diagnostics is None:
        return list(result.diagnostic_names)
    unknown = [d for d in diagnostics if d not in result.diagnostic_names]
    if unknown:
        raise ValueError(f"Unknown diagnostics {unknown}; available: {result.diagnostic_names}")
    return list(diagnostics)


def diagnostics_long(
    result: GridResult,
    focused_args: Optional[Sequence[str]] = None,
    average_out_non_focused_args: bool = True,
    diagnostics: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Reshape the diagnostics table to long form.

    Args:
        result: GridResult from a grid run
        focused_args: Arguments to keep (defaults to all, at most four)
        average_out_non_focused_args: Average each diagnostic over the
            arguments not in ``focused_args``
        diagnostics: Diagnostics to keep (defaults to all)

    Returns:
        DataFrame with the argument columns plus ``diagnostic`` and ``value``
    """
    focused = _resolve_focused_args(result, focused_args)
    chosen = _resolve_diagnostics(result, diagnostics)
    non_focused = [arg for arg in result.arg_names if arg not in focused]

    id_vars = focused if average_out_non_focused_args else focused + non_focused
    long_df = result.diagnostics_df.melt(
        id_vars=id_vars,
        value_vars=chosen,
        var_name="diagnostic",
        value_name="value",
    )

    if average_out_non_focused_args and non_focused:
        long_df = (
            long_df.groupby(focused + ["diagnostic"], sort=False, dropna=False)["value"]
            .mean()
            .reset_index()
        )

    return long_df


def _is_numeric(series: pd.Series) -> bool:
    return pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(series)


def plot_diagnostics(
    result: GridResult,
    focused_args: Optional[Sequence[str]] = None,
    average_out_non_focused_args: bool = True,
    plot_order: Optional[Sequence[str]] = None,
    level_order: Optional[Dict[str, Sequence]] = None,
    kind: str = "auto",
    diagnostics: Optional[Sequence[str]] = None,
    output_path: Optional[str | Path] = None,
    plot_config: Optional[PlotDefaults] = None,
) -> sns.FacetGrid:
    """
    Plot every diagnostic against the focused arguments.

    Args:
        result: GridResult from a grid run
        focused_args: Arguments mapped, in order, to x, hue, style and size
        average_out_non_focused_args: Average over the other arguments; when
            False each remaining combination is drawn as its own line
        plot_order: Order of the diagnostic facets (defaults to diagnostic order)
        level_order: Argument name -> ordered levels for categorical axes
        kind: 'auto' (lines for a numeric x, points otherwise), 'line' or 'scatter'
        diagnostics: Diagnostics to plot (defaults to all)
        output_path: Save the figure here when given
        plot_config: Figure size and style settings

    Returns:
        The seaborn FacetGrid
    """
    if kind not in {"auto", "line", "scatter"}:
        raise ValueError(f"kind must be 'auto', 'line' or 'scatter', got '{kind}'")

    cfg = plot_config or PlotDefaults()
    focused = _resolve_focused_args(result, focused_args)
    if not focused:
        raise ValueError("Cannot plot diagnostics of a grid without swept arguments")

    long_df = diagnostics_long(result, focused, average_out_non_focused_args, diagnostics)
    facet_order = list(plot_order) if plot_order is not None else list(dict.fromkeys(long_df["diagnostic"]))
    missing = [d for d in facet_order if d not in set(long_df["diagnostic"])]
    if missing:
        raise ValueError(f"plot_order names unknown diagnostics: {missing}")

    level_order = dict(level_order or {})
    unknown_levels = [arg for arg in level_order if arg not in focused]
    if unknown_levels:
        raise ValueError(f"level_order names arguments that are not focused: {unknown_levels}")

    x = focused[0]
    if x in level_order:
        long_df[x] = pd.Categorical(long_df[x], categories=list(level_order[x]), ordered=True)

    if kind == "auto":
        kind = "line" if _is_numeric(long_df[x]) else "scatter"

    mapping = dict(zip(AESTHETICS, focused))
    plot_kwargs = {
        "data": long_df,
        "y": "value",
        "col": "diagnostic",
        "col_order": facet_order,
        "col_wrap": min(cfg.col_wrap, len(facet_order)),
        "kind": kind,
        "height": cfg.height,
        "aspect": cfg.aspect,
        "facet_kws": {"sharey": False, "sharex": True},
        **mapping,
    }
    for aesthetic in ("hue", "style", "size"):
        arg = mapping.get(aesthetic)
        if arg is None:
            continue
        if arg in level_order:
            plot_kwargs[f"{aesthetic}_order"] = list(level_order[arg])
        elif aesthetic == "hue" and _is_numeric(long_df[arg]):
            # Treat grid levels as categories so each gets a distinct colour
            long_df[arg] = long_df[arg].astype(str)

    non_focused = [arg for arg in result.arg_names if arg not in focused]
    if kind == "line":
        plot_kwargs["marker"] = "o"
        if not average_out_non_focused_args and non_focused:
            long_df[UNITS_COLUMN] = long_df[non_focused].astype(str).agg(",".join, axis=1)
            plot_kwargs["units"] = UNITS_COLUMN
            plot_kwargs["estimator"] = None
        else:
            plot_kwargs["errorbar"] = None

    sns.set_theme(style=cfg.style, context=cfg.context)
    logger.info(
        "Plotting %d diagnostic(s) against %s (%s)", len(facet_order), focused, kind
    )
    grid = sns.relplot(**plot_kwargs)
    grid.set_titles(col_template="{col_name}")
    grid.set_ylabels("")

    if output_path:
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        grid.savefig(output_file, dpi=cfg.dpi, bbox_inches="tight")
        logger.info("Saved diagnostics plot to %s", output_file)

    return grid


def close(grid: sns.FacetGrid) -> None:
    plt.close(grid.figure)
