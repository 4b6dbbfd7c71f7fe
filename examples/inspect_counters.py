"""Utility script to inspect counter tables written by `tofqc`."""

from __future__ import annotations

import argparse
from pathlib import Path


def _require_pandas():
    """Import pandas with an actionable error if not installed."""
    try:
        import pandas as pd  # type: ignore
    except ModuleNotFoundError as exc:
        raise ModuleNotFoundError(
            "pandas is required. Install with: pip install pandas pyarrow"
        ) from exc
    return pd


def load_table(path: str):
    """Load a counters table from parquet/csv/pickle into a pandas DataFrame."""
    pd = _require_pandas()
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".parquet":
        return pd.read_parquet(p)
    if suffix == ".csv":
        return pd.read_csv(p)
    if suffix in (".pkl", ".pickle"):
        return pd.read_pickle(p)
    raise ValueError("Supported input formats: .parquet, .csv, .pkl")


def main(argv: list[str] | None = None) -> int:
    """Print per-counter totals and the most populated bins of one counter."""
    parser = argparse.ArgumentParser(description="Inspect a tofqc counters table.")
    parser.add_argument("--input", required=True, help="Path to .parquet/.csv/.pkl output.")
    parser.add_argument("--counter", default="DeltatPi", help="Counter to show in detail.")
    parser.add_argument("--head", type=int, default=10, help="Bins to print.")
    args = parser.parse_args(argv)

    df = load_table(args.input)
    totals = df.groupby("name")["content"].sum().sort_values(ascending=False)
    print(totals.to_string())

    rows = df[df["name"] == args.counter].sort_values("content", ascending=False)
    if rows.empty:
        print(f"\nCounter {args.counter} has no entries.")
        return 0
    print(f"\n{args.counter}:")
    print(rows.head(args.head).to_string(index=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
