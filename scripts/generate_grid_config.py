"""Generate grid run configurations.

Builds a ready-to-run grid YAML file from argument specifications, so sweeps
can be set up without writing the YAML by hand.

Usage:
    python scripts/generate_grid_config.py \\
        --predictor smoothing/polynomial_v1/run_model.py:fit_predict \\
        --args degree=1,2,3,5 ridge=0,0.1,1 \\
        --builtin rmse coverage --response y --lower lower --upper upper \\
        --train-data data/example/train.csv \\
        --test-data data/example/test.csv \\
        --output config/grids/polynomial.yaml
"""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

import yaml

from testargs.grid import GridConfig


def parse_value(val_str: str) -> Any:
    """Convert a command-line value to int, float, bool, None or string."""
    val_str = val_str.strip()
    try:
        if '.' not in val_str and 'e' not in val_str.lower():
            return int(val_str)
        return float(val_str)
    except ValueError:
        lowered = val_str.lower()
        if lowered == 'true':
            return True
        if lowered == 'false':
            return False
        if lowered in {'none', 'null'}:
            return None
        return val_str


def parse_argument_grid(arg_strings: list[str]) -> dict[str, list[Any]]:
    """Parse argument specifications into a grid dictionary.

    Input format: ["arg1=val1,val2,val3", "arg2=0.1,0.2"]
    Output: {"arg1": [val1, val2, val3], "arg2": [0.1, 0.2]}
    """
    grid = {}

    for arg_spec in arg_strings:
        if '=' not in arg_spec:
            raise ValueError(f"Invalid argument spec: {arg_spec}. Expected format: arg=val1,val2,val3")

        name, values_str = arg_spec.split('=', 1)
        name = name.strip()
        if not name:
            raise ValueError(f"Invalid argument spec: {arg_spec}. Missing argument name")

        grid[name] = [parse_value(v) for v in values_str.split(',') if v.strip()]

    return grid


def parse_fixed_arguments(arg_strings: list[str]) -> dict[str, Any]:
    fixed = {}
    for arg_spec in arg_strings:
        if '=' not in arg_spec:
            raise ValueError(f"Invalid fixed argument: {arg_spec}. Expected format: arg=value")
        name, value = arg_spec.split('=', 1)
        fixed[name.strip()] = parse_value(value)
    return fixed


def generate_grid_config(
    predictor: str,
    argument_grid: dict[str, list[Any]],
    train_data: str,
    test_data: str,
    diagnostics: str | None = None,
    builtin: list[str] | None = None,
    response: str | None = None,
    prediction: str = "pred",
    lower: str | None = None,
    upper: str | None = None,
    sd: str | None = None,
    fixed_arguments: dict[str, Any] | None = None,
    run_id: str | None = None,
    description: str | None = None,
) -> dict:
    """Generate a grid configuration dictionary, validated against GridConfig."""
    if not run_id:
        run_id = Path(predictor.split(":", 1)[0]).stem + "_grid"

    if not description:
        summary = ", ".join(f"{k}={len(v)} values" for k, v in argument_grid.items())
        description = f"Argument grid for {predictor}: {summary}"

    if diagnostics:
        diagnostics_spec: Any = diagnostics
    elif builtin:
        if not response:
            raise ValueError("--response is required with --builtin diagnostics")
        diagnostics_spec = {"builtin": builtin, "response": response, "prediction": prediction}
        for key, value in (("lower", lower), ("upper", upper), ("sd", sd)):
            if value:
                diagnostics_spec[key] = value
    else:
        raise ValueError("Must specify either a diagnostics callable or builtin diagnostics")

    config = {
        "run_id": run_id,
        "description": description,
        "predictor": predictor,
        "diagnostics": diagnostics_spec,
        "train_data": train_data,
        "test_data": test_data,
        "arguments": argument_grid,
        "fixed_arguments": fixed_arguments or {},
    }

    GridConfig(**config).validate()

    size = 1
    for values in argument_grid.values():
        size *= len(values)
    print(f"Generating grid with {size} argument combinations:")
    for name, values in argument_grid.items():
        print(f"  {name}: {values}")
    print()

    return config


def main():
    parser = argparse.ArgumentParser(
        description="Generate argument grid configurations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Built-in diagnostics
  python scripts/generate_grid_config.py \\
      --predictor smoothing/polynomial_v1/run_model.py:fit_predict \\
      --args degree=1,2,3 ridge=0,0.1 \\
      --builtin rmse mae --response y \\
      --train-data data/example/train.csv --test-data data/example/test.csv \\
      --output config/grids/polynomial.yaml

  # Custom diagnostic function and fixed arguments
  python scripts/generate_grid_config.py \\
      --predictor mypkg.models:fit_predict \\
      --diagnostics mypkg.models:diagnose \\
      --args n_neighbours=5,10,20 \\
      --fixed level=0.9 \\
      --train-data train.csv --test-data test.csv \\
      --output config/grids/knn.yaml
        """
    )

    parser.add_argument("--predictor", required=True, help="Prediction function reference")
    parser.add_argument(
        "--args",
        nargs="+",
        required=True,
        help="Argument specifications in format: arg1=val1,val2,val3 arg2=0.1,0.2"
    )
    parser.add_argument("--fixed", nargs="*", default=[], help="Fixed arguments: arg=value")

    diagnostics_group = parser.add_mutually_exclusive_group(required=True)
    diagnostics_group.add_argument("--diagnostics", help="Diagnostic function reference")
    diagnostics_group.add_argument("--builtin", nargs="+", help="Built-in diagnostics (rmse, mae, ...)")

    parser.add_argument("--response", help="Observed response column (built-in diagnostics)")
    parser.add_argument("--prediction", default="pred", help="Point prediction column (default: pred)")
    parser.add_argument("--lower", help="Lower interval column")
    parser.add_argument("--upper", help="Upper interval column")
    parser.add_argument("--sd", help="Predictive standard deviation column")

    parser.add_argument("--train-data", required=True, help="Training data file")
    parser.add_argument("--test-data", required=True, help="Test data file")
    parser.add_argument("--run-id", help="Custom run identifier (default: <predictor>_grid)")
    parser.add_argument("--description", help="Custom run description")
    parser.add_argument("--output", type=Path, required=True, help="Output path for grid YAML file")

    args = parser.parse_args()

    try:
        argument_grid = parse_argument_grid(args.args)
        fixed_arguments = parse_fixed_arguments(args.fixed)
        config = generate_grid_config(
            predictor=args.predictor,
            argument_grid=argument_grid,
            train_data=args.train_data,
            test_data=args.test_data,
            diagnostics=args.diagnostics,
            builtin=args.builtin,
            response=args.response,
            prediction=args.prediction,
            lower=args.lower,
            upper=args.upper,
            sd=args.sd,
            fixed_arguments=fixed_arguments,
            run_id=args.run_id,
            description=args.description,
        )
    except ValueError as e:
        parser.error(str(e))

    args.output.parent.mkdir(parents=True, exist_ok=True)
    with open(args.output, 'w', encoding='utf-8') as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False, indent=2)

    print("✓ Generated grid configuration:")
    print(f"  Run ID: {config['run_id']}")
    print(f"  Predictor: {args.predictor}")
    print(f"  Output: {args.output}")
    print()
    print(f"Run with: testargs run {args.output}")


if __name__ == "__main__":
    main()
