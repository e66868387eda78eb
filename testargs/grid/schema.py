"""Argument grid and grid run configuration schemas."""
from __future__ import annotations

import itertools
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field

from testargs.config import ErrorPolicy


class ArgumentCombination(BaseModel):
    """A single point of the argument grid."""

    index: int = Field(..., description="Position of the combination in the grid")
    arguments: Dict[str, Any] = Field(
        default_factory=dict, description="Swept argument values for this combination"
    )
    parameters: Dict[str, Any] = Field(
        default_factory=dict, description="Fixed arguments merged with the swept values"
    )

    @property
    def display_name(self) -> str:
        """Get the display name for this combination."""
        parts = [f"{k}={v}" for k, v in self.arguments.items()]
        return f"[{','.join(parts)}]"


class ArgumentGrid(BaseModel):
    """Candidate values for each argument, swept as a Cartesian product."""

    arguments: Dict[str, List[Any]] = Field(
        default_factory=dict, description="Arguments to sweep over (name -> list of values)"
    )
    fixed_arguments: Dict[str, Any] = Field(
        default_factory=dict, description="Arguments passed unchanged to every call"
    )

    @property
    def arg_names(self) -> List[str]:
        return list(self.arguments.keys())

    @property
    def size(self) -> int:
        size = 1
        for values in self.arguments.values():
            size *= len(values)
        return size

    def validate_grid(self) -> None:
        """Ensure every swept argument has candidates and no name is both swept and fixed."""
        empty = [name for name, values in self.arguments.items() if len(values) == 0]
        if empty:
            raise ValueError(f"Arguments have no candidate values: {empty}")

        overlap = sorted(set(self.arguments) & set(self.fixed_arguments))
        if overlap:
            raise ValueError(f"Arguments cannot be both swept and fixed: {overlap}")

    def generate_combinations(self) -> List[ArgumentCombination]:
        """Generate every combination of the swept arguments."""
        self.validate_grid()

        if not self.arguments:
            return [ArgumentCombination(index=0, parameters=dict(self.fixed_arguments))]

        arg_names = self.arg_names
        arg_values = [self.arguments[k] for k in arg_names]

        combinations = []
        for idx, combo in enumerate(itertools.product(*arg_values)):
            swept = dict(zip(arg_names, combo))
            params = dict(self.fixed_arguments)
            params.update(swept)
            combinations.append(ArgumentCombination(index=idx, arguments=swept, parameters=params))

        return combinations


class BuiltinDiagnosticsSpec(BaseModel):
    """Diagnostics computed by the built-in metric functions."""

    builtin: List[str] = Field(..., description="Names of built-in diagnostics (e.g. rmse, coverage)")
    response: str = Field(..., description="Column of the test data holding the observed response")
    prediction: str = Field(default="pred", description="Column of the prediction holding point predictions")
    lower: Optional[str] = Field(default=None, description="Lower prediction-interval column")
    upper: Optional[str] = Field(default=None, description="Upper prediction-interval column")
    sd: Optional[str] = Field(default=None, description="Predictive standard deviation column")
    alpha: float = Field(default=0.1, description="Nominal miscoverage of the prediction interval")


class GridConfig(BaseModel):
    """Complete configuration for a grid run driven from a YAML file."""

    run_id: str = Field(..., description="Unique run identifier")
    description: str = Field(default="", description="Human-readable description of the run")

    predictor: str = Field(
        ..., description="Prediction function reference ('module:function' or 'file.py:function')"
    )
    diagnostics: Union[str, BuiltinDiagnosticsSpec] = Field(
        ..., description="Diagnostic function reference, or a built-in diagnostics specification"
    )

    train_data: str = Field(..., description="Training data file (CSV or Parquet)")
    test_data: str = Field(..., description="Test data file (CSV or Parquet)")

    arguments: Dict[str, List[Any]] = Field(
        default_factory=dict, description="Arguments to sweep over (name -> list of values)"
    )
    fixed_arguments: Dict[str, Any] = Field(
        default_factory=dict, description="Arguments shared by every combination"
    )

    criteria: Dict[str, str] = Field(
        default_factory=dict,
        description="Optimality criterion per diagnostic ('min', 'max' or 'target:<value>'); default 'min'",
    )

    record_time: Optional[bool] = Field(
        default=None, description="Record prediction time (uses app default if not specified)"
    )
    on_error: Optional[ErrorPolicy] = Field(
        default=None, description="Error policy (uses app default if not specified)"
    )
    output_dir: Optional[str] = Field(
        default=None, description="Directory for run results (defaults to <output_root>/<run_id>)"
    )

    @staticmethod
    def from_yaml(path: str | Path) -> "GridConfig":
        """Load grid config from YAML file."""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return GridConfig(**data)

    def build_grid(self) -> ArgumentGrid:
        return ArgumentGrid(arguments=self.arguments, fixed_arguments=self.fixed_arguments)

    def validate(self) -> None:
        """Validate the grid configuration."""
        self.build_grid().validate_grid()

        if not self.predictor.strip():
            raise ValueError("predictor must reference a callable")
        if isinstance(self.diagnostics, str) and not self.diagnostics.strip():
            raise ValueError("diagnostics must reference a callable")
        if isinstance(self.diagnostics, BuiltinDiagnosticsSpec) and not self.diagnostics.builtin:
            raise ValueError("diagnostics.builtin must name at least one diagnostic")
