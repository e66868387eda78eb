"""Write the noisy sine train/test data used by config/grids/polynomial_degree.yaml.

Usage:
    python scripts/generate_example_data.py --output-dir data/example
"""
from __future__ import annotations

import argparse
from pathlib import Path

import numpy as np
import pandas as pd


def make_sine_data(n: int, noise_sd: float, rng: np.random.Generator) -> pd.DataFrame:
    x = rng.uniform(0, 2 * np.pi, size=n)
    y = np.sin(x) + rng.normal(0, noise_sd, size=n)
    return pd.DataFrame({"x": x, "y": y})


def main():
    parser = argparse.ArgumentParser(description="Generate example train/test data")
    parser.add_argument("--output-dir", type=Path, default=Path("data/example"))
    parser.add_argument("--n-train", type=int, default=200)
    parser.add_argument("--n-test", type=int, default=100)
    parser.add_argument("--noise-sd", type=float, default=0.3)
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    rng = np.random.default_rng(args.seed)
    args.output_dir.mkdir(parents=True, exist_ok=True)

    train = make_sine_data(args.n_train, args.noise_sd, rng)
    test = make_sine_data(args.n_test, args.noise_sd, rng)
    train.to_csv(args.output_dir / "train.csv", index=False)
    test.to_csv(args.output_dir / "test.csv", index=False)

    print(f"Wrote {len(train)} training and {len(test)} test rows to {args.output_dir}")


if __name__ == "__main__":
    main()
