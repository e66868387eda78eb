"""Argument grid evaluation: run, compare and pick optimal arguments."""
from .schema import (
    ArgumentCombination,
    ArgumentGrid,
    BuiltinDiagnosticsSpec,
    GridConfig,
)
from .engine import CombinationResult, GridResult, GridRunError, GridRunner, test_arguments
from .comparison import (
    DiagnosticsComparison,
    load_result,
    optimal_arguments,
    resolve_criterion,
    which_closest,
    which_max,
    which_min,
)

__all__ = [
    "ArgumentCombination",
    "ArgumentGrid",
    "BuiltinDiagnosticsSpec",
    "CombinationResult",
    "DiagnosticsComparison",
    "GridConfig",
    "GridResult",
    "GridRunError",
    "GridRunner",
    "load_result",
    "optimal_arguments",
    "resolve_criterion",
    "test_arguments",
    "which_closest",
    "which_max",
    "which_min",
]
