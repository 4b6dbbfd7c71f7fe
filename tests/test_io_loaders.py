"""Unit tests for JSON batch/parameter loaders, counter export, and the CLI."""

from __future__ import annotations

import contextlib
import importlib.util
import io
import json
import tempfile
import unittest
from pathlib import Path

from tofqc import Axis, CounterSet, CounterSpec, ReferenceHit
from tofqc.cli import main
from tofqc.io import counter_rows, load_batch_json, load_batches_json, load_parameters_json

HAS_PANDAS = importlib.util.find_spec("pandas") is not None


def _batch_payload(batch_id: str = "tf7") -> dict:
    return {
        "batch_id": batch_id,
        "first_orbit": 256,
        "sources": {
            "ITS-TPC-TOF": {
                "tracks": [
                    {"p": 0.9, "pt": 0.9, "eta": 0.2, "n_clusters": 100, "dca": [0.1, 0.2]},
                    {"p": 0.9, "pt": 0.9, "eta": 0.2, "n_clusters": 100, "dca": [0.1, 0.2]},
                ],
                "matches": [
                    {"time": 59000.0, "length": 300.0, "expected_times": [9000.0, 9800.0, 11500.0]},
                    {
                        "time": 60000.0,
                        "length": 300.0,
                        "expected_times": {"pi": 10000.0, "K": 11000.0, "p": 13000.0},
                        "expected_sigmas": [20.0, 30.0, 40.0],
                        "track_id": "second",
                    },
                ],
            },
            "ITS-TPC": {"tracks": [], "matches": []},
        },
        "reference_hits": [
            {"orbit": 256, "bc": 2, "collision_times": [30, 20, 40, 0], "valid": [True, True, False, False]},
        ],
    }


class TestJsonLoaders(unittest.TestCase):
    """Validate parsing of batch and parameter JSON inputs."""

    def test_load_batch_json_parses_sources_and_hits(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "batch.json"
            path.write_text(json.dumps(_batch_payload()), encoding="utf-8")
            batch = load_batch_json(path)
        self.assertEqual(batch.batch_id, "tf7")
        self.assertEqual(batch.first_orbit, 256)
        block = batch.sources["ITS-TPC-TOF"]
        self.assertEqual(len(block.kinematics), 2)
        self.assertEqual(block.kinematics[0].dca, (0.1, 0.2))
        self.assertEqual(block.matches[0].track_id, "trk0")
        self.assertEqual(block.matches[1].expected_times, (10000.0, 11000.0, 13000.0))
        self.assertEqual(block.matches[1].expected_sigmas, (20.0, 30.0, 40.0))
        [hit] = batch.reference_hits
        self.assertEqual((hit.orbit, hit.bc), (256, 2))
        self.assertEqual(hit.collision_time(2), 0.0)
        self.assertEqual(hit.collision_time(1), 20.0)

    def test_batch_without_reference_hits(self) -> None:
        payload = _batch_payload()
        del payload["reference_hits"]
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "batch.json"
            path.write_text(json.dumps(payload), encoding="utf-8")
            batch = load_batch_json(path)
        self.assertIsNone(batch.reference_hits)

    def test_load_batches_json_accepts_list(self) -> None:
        payload = {"batches": [_batch_payload("a"), {"sources": {}}]}
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "batches.json"
            path.write_text(json.dumps(payload), encoding="utf-8")
            batches = load_batches_json(path)
        self.assertEqual([b.batch_id for b in batches], ["a", "batch1"])

    def test_malformed_inputs_raise(self) -> None:
        bad_match = _batch_payload()
        del bad_match["sources"]["ITS-TPC-TOF"]["matches"][0]["length"]
        bad_hit = _batch_payload()
        bad_hit["reference_hits"][0]["collision_times"] = [1, 2]
        bad_dca = _batch_payload()
        bad_dca["sources"]["ITS-TPC-TOF"]["tracks"][0]["dca"] = [0.1]
        with tempfile.TemporaryDirectory() as tmpdir:
            for idx, payload in enumerate((bad_match, bad_hit, bad_dca, [1, 2])):
                path = Path(tmpdir) / f"bad{idx}.json"
                path.write_text(json.dumps(payload), encoding="utf-8")
                with self.assertRaises(ValueError):
                    load_batch_json(path)

    def test_per_hypothesis_lists_need_one_value_per_hypothesis(self) -> None:
        short_times = _batch_payload()
        short_times["sources"]["ITS-TPC-TOF"]["matches"][0]["expected_times"] = [10000.0, 11000.0]
        long_sigmas = _batch_payload()
        long_sigmas["sources"]["ITS-TPC-TOF"]["matches"][1]["expected_sigmas"] = [1.0, 2.0, 3.0, 4.0]
        with tempfile.TemporaryDirectory() as tmpdir:
            for idx, payload in enumerate((short_times, long_sigmas)):
                path = Path(tmpdir) / f"bad{idx}.json"
                path.write_text(json.dumps(payload), encoding="utf-8")
                with self.assertRaises(ValueError) as ctx:
                    load_batch_json(path)
                self.assertIn(f"index {idx}", str(ctx.exception))

    def test_missing_valid_flags_default_to_invalid(self) -> None:
        payload = _batch_payload()
        del payload["reference_hits"][0]["valid"]
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "batch.json"
            path.write_text(json.dumps(payload), encoding="utf-8")
            [hit] = load_batch_json(path).reference_hits
        self.assertEqual(hit.valid, ReferenceHit(orbit=0, bc=0).valid)
        self.assertEqual(hit.collision_time(0), 0.0)

    def test_load_parameters_json_stringifies_values(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "params.json"
            path.write_text(
                json.dumps({"useFT0": True, "minPtCut": 0.3, "GID": "ITS-TPC,ITS-TPC-TOF"}),
                encoding="utf-8",
            )
            params = load_parameters_json(path)
        self.assertEqual(params, {"useFT0": "true", "minPtCut": "0.3", "GID": "ITS-TPC,ITS-TPC-TOF"})


class TestCounterExport(unittest.TestCase):
    """Validate long-format rows produced from counters."""

    def test_rows_include_flow_slots_with_infinite_edges(self) -> None:
        counters = CounterSet.from_specs(
            [
                CounterSpec("h1", "", (Axis(4, 0.0, 4.0),)),
                CounterSpec("h2", "", (Axis(2, 0.0, 2.0), Axis(2, 0.0, 2.0))),
            ]
        )
        counters.fill("h1", 1.5)
        counters.fill("h1", 1.5)
        counters.fill("h1", 9.0)
        counters.fill("h2", 0.5, 1.5)
        rows = counter_rows(counters)
        self.assertEqual(len(rows), 3)
        first, overflow, cell = rows
        self.assertEqual((first["ix"], first["x_low"], first["x_high"], first["content"]), (2, 1.0, 2.0, 2.0))
        self.assertIsNone(first["iy"])
        self.assertEqual((overflow["ix"], overflow["x_low"], overflow["x_high"]), (5, 4.0, float("inf")))
        self.assertEqual((cell["name"], cell["ix"], cell["iy"]), ("h2", 1, 2))
        self.assertEqual((cell["y_low"], cell["y_high"]), (1.0, 2.0))


@unittest.skipUnless(HAS_PANDAS, "pandas is required for table output")
class TestCli(unittest.TestCase):
    """Run the command-line entry point on a small batch file."""

    def test_cli_writes_csv_table(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            batch_path = Path(tmpdir) / "batch.json"
            batch_path.write_text(json.dumps(_batch_payload()), encoding="utf-8")
            out_path = Path(tmpdir) / "counters.csv"
            stdout = io.StringIO()
            with contextlib.redirect_stdout(stdout):
                code = main(
                    [
                        "--batches",
                        str(batch_path),
                        "--param",
                        "useFT0=true",
                        "--out",
                        str(out_path),
                    ]
                )
            self.assertEqual(code, 0)
            self.assertTrue(out_path.exists())
            import pandas as pd

            table = pd.read_csv(out_path)
        self.assertIn("batch 0: 2/2 tracks, 1/1 usable groups, 1 FT0 candidates", stdout.getvalue())
        self.assertEqual(
            list(table.columns), ["name", "ix", "iy", "x_low", "x_high", "y_low", "y_high", "content"]
        )
        self.assertIn("DeltaBCTOFFT0", set(table["name"]))

    def test_cli_rejects_unknown_extension(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            batch_path = Path(tmpdir) / "batch.json"
            batch_path.write_text(json.dumps(_batch_payload()), encoding="utf-8")
            with contextlib.redirect_stdout(io.StringIO()):
                with self.assertRaises(ValueError):
                    main(["--batches", str(batch_path), "--out", str(Path(tmpdir) / "out.txt")])


if __name__ == "__main__":
    unittest.main()
