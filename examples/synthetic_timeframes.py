"""Synthetic walkthrough: fake TOF time frames with FT0 interactions.

This script does three steps:
1. Generate time frames with a configurable number of collisions, each with
   pions, kaons and protons matched to TOF and one FT0 interaction.
2. Replay them through `PidTimingTask` with the FT0 coincidence enabled.
3. Write the batches JSON and the published counters table.

Run from repository root:
    PYTHONPATH=src python3 examples/synthetic_timeframes.py
"""

from __future__ import annotations

import argparse
import json
import logging
import math
from pathlib import Path
from random import Random
from typing import Any

from tofqc import PidTimingTask
from tofqc.io import load_batches_json, write_counters_table
from tofqc.physics import BC_TIME_PS, CINV_PS_PER_CM, LHC_MAX_BUNCHES
from tofqc.pid import DEFAULT_TABLE

SPECIES_FRACTIONS = (0.75, 0.15, 0.10)  # pi, K, p
TOF_SIGMA_PS = 60.0
FT0_SIGMA_PS = 25.0


def parse_args() -> argparse.Namespace:
    """Parse CLI options for fake time-frame generation."""
    parser = argparse.ArgumentParser(description="Generate synthetic TOF/FT0 time frames and replay them.")
    parser.add_argument("--n-frames", type=int, default=5, help="Number of time frames.")
    parser.add_argument("--collisions", type=int, default=40, help="Collisions per time frame.")
    parser.add_argument("--tracks", type=int, default=12, help="Mean TOF tracks per collision.")
    parser.add_argument("--seed", type=int, default=2023, help="RNG seed for reproducibility.")
    parser.add_argument(
        "--out-batches",
        default="examples/output_timeframes.json",
        help="Output JSON with generated batches.",
    )
    parser.add_argument(
        "--out-table",
        default="examples/output_counters.csv",
        help="Output counters table (.parquet, .csv, .pkl).",
    )
    return parser.parse_args()


def expected_time(length_cm: float, p: float, mass: float) -> float:
    """Time of flight of a particle of `mass` and momentum `p` over `length_cm`."""
    return length_cm * CINV_PS_PER_CM * math.sqrt(1.0 + (mass / p) ** 2)


def make_collision(rng: Random, t0: float, n_tracks: int) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Tracks and TOF matches produced by one collision at `t0`."""
    tracks: list[dict[str, Any]] = []
    matches: list[dict[str, Any]] = []
    masses = [DEFAULT_TABLE.lookup(name).mass for name in DEFAULT_TABLE.names]
    for _ in range(n_tracks):
        species = rng.choices(range(len(masses)), weights=SPECIES_FRACTIONS)[0]
        pt = rng.uniform(0.2, 3.0)
        eta = rng.uniform(-0.9, 0.9)
        p = pt * math.cosh(eta)
        length = 370.0 * math.cosh(eta) + rng.uniform(0.0, 20.0)
        exp_times = [expected_time(length, p, m) for m in masses]
        tracks.append(
            {
                "p": p,
                "pt": pt,
                "eta": eta,
                "n_clusters": rng.randint(30, 159),
                "dca": [rng.gauss(0.0, 0.5), rng.gauss(0.0, 1.0)],
            }
        )
        matches.append(
            {
                "time": t0 + exp_times[species] + rng.gauss(0.0, TOF_SIGMA_PS),
                "length": length,
                "expected_times": exp_times,
            }
        )
    return tracks, matches


def make_frame(rng: Random, index: int, n_collisions: int, mean_tracks: int) -> dict[str, Any]:
    """One time frame with collisions on random, well separated bunch crossings."""
    first_orbit = 128 * index
    bcs = sorted(rng.sample(range(0, 32 * LHC_MAX_BUNCHES, 16), n_collisions))
    tracks: list[dict[str, Any]] = []
    matches: list[dict[str, Any]] = []
    hits: list[dict[str, Any]] = []
    for n_bc in bcs:
        t_vertex = rng.gauss(0.0, 150.0)
        t0 = n_bc * BC_TIME_PS + t_vertex
        col_tracks, col_matches = make_collision(rng, t0, max(1, int(rng.gauss(mean_tracks, 3))))
        tracks.extend(col_tracks)
        matches.extend(col_matches)
        orbit, bc = divmod(n_bc, LHC_MAX_BUNCHES)
        t_a = round(t_vertex + rng.gauss(0.0, FT0_SIGMA_PS))
        t_c = round(t_vertex + rng.gauss(0.0, FT0_SIGMA_PS))
        hits.append(
            {
                "orbit": first_orbit + orbit,
                "bc": bc,
                "collision_times": [round((t_a + t_c) / 2), t_a, t_c, 0],
                "valid": [True, True, True, False],
            }
        )
    return {
        "batch_id": f"tf{index}",
        "first_orbit": first_orbit,
        "sources": {
            "ITS-TPC": {"tracks": [], "matches": []},
            "ITS-TPC-TOF": {"tracks": tracks, "matches": matches},
        },
        "reference_hits": hits,
    }


def main() -> int:
    """Generate, replay, and export synthetic time frames."""
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    rng = Random(args.seed)
    payload = {
        "batches": [make_frame(rng, i, args.collisions, args.tracks) for i in range(args.n_frames)]
    }
    out_batches = Path(args.out_batches)
    out_batches.write_text(json.dumps(payload), encoding="utf-8")
    print(f"Wrote {args.n_frames} time frames to {out_batches}")

    task = PidTimingTask.from_parameters({"useFT0": "true", "GID": "ITS-TPC,ITS-TPC-TOF"})
    task.start_of_activity(1)
    task.start_of_cycle()
    for batch in load_batches_json(out_batches):
        summary = task.process_batch(batch)
        print(
            f"{batch.batch_id}: {summary.n_selected}/{summary.n_tracks} tracks, "
            f"{summary.n_usable_groups}/{summary.n_groups} usable groups"
        )
    task.end_of_cycle()
    task.end_of_activity(1)

    same_bc = task.counters["DeltaEvTimeTOFVsFT0ACSameBC"]
    print(f"TOF-FT0 same-BC coincidences: {same_bc.entries}")
    n_rows = write_counters_table(args.out_table, task.published_counters())
    print(f"Wrote {n_rows} bins to {args.out_table}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
