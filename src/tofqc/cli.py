"""Command-line interface for replaying batches through the timing monitor."""

from __future__ import annotations

import argparse
import logging

from .config import TaskConfig, parse_key_values
from .io import load_batches_json, load_parameters_json, write_counters_table
from .task import PidTimingTask


def build_parser() -> argparse.ArgumentParser:
    """Define and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="tofqc",
        description="Group TOF tracks in time, match FT0 interactions and fill PID timing counters.",
    )
    parser.add_argument(
        "--batches",
        required=True,
        nargs="+",
        help="Input JSON file(s), each holding one batch or a 'batches' list.",
    )
    parser.add_argument(
        "--params",
        default=None,
        help="JSON object with task parameters (minPtCut, etaCut, useFT0, GID, ...).",
    )
    parser.add_argument(
        "--param",
        action="append",
        default=None,
        metavar="KEY=VALUE",
        help="Task parameter override; may be repeated. Applied after --params.",
    )
    parser.add_argument(
        "--out",
        required=True,
        help="Output table file for counter contents (.parquet, .csv, .pkl).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint: configure task, process batches in order, write counters."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    params: dict[str, str] = {}
    if args.params:
        params.update(load_parameters_json(args.params))
    params.update(parse_key_values(args.param))
    task = PidTimingTask(TaskConfig.from_parameters(params))

    task.start_of_activity(0)
    task.start_of_cycle()
    for path in args.batches:
        for batch in load_batches_json(path):
            summary = task.process_batch(batch)
            print(
                f"batch {summary.batch_index}: {summary.n_selected}/{summary.n_tracks} tracks, "
                f"{summary.n_usable_groups}/{summary.n_groups} usable groups, "
                f"{summary.n_candidates} FT0 candidates"
            )
    task.end_of_cycle()
    task.end_of_activity(0)

    n_rows = write_counters_table(args.out, task.published_counters())
    print(f"Wrote {n_rows} bins to {args.out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
