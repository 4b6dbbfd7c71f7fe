"""Unit tests for the combinatorial event-time estimator and bias removal."""

from __future__ import annotations

import math
import unittest

from tofqc import UNUSABLE_TIME_ERROR_PS, CombinatorialEventTimeMaker, HypothesisTable, Track
from tofqc.evtime import FILL_TIME_ERROR_PS, TOF_RESOLUTION_PS, is_usable
from tofqc.pid import HYPOTHESIS_NAMES

EXPECTED = (10000.0, 11500.0, 13000.0)


def _track(t0: float, hypothesis: int = 0, p: float = 1.0, expected=EXPECTED) -> Track:
    """Track produced at `t0` by a particle of the given hypothesis index."""
    return Track(
        time=t0 + expected[hypothesis],
        p=p,
        pt=p,
        eta=0.0,
        length=300.0,
        expected_times=tuple(expected),
    )


class TestEventTimeEstimate(unittest.TestCase):
    """Validate estimate, outlier handling, and the unusable fill value."""

    def test_weighted_mean_of_pion_tracks(self) -> None:
        tracks = [_track(100.0), _track(300.0)]
        est = CombinatorialEventTimeMaker().estimate(tracks)
        self.assertAlmostEqual(est.time, 200.0, places=9)
        self.assertAlmostEqual(est.time_error, TOF_RESOLUTION_PS / math.sqrt(2.0), places=9)
        self.assertEqual(est.multiplicity, 2)
        self.assertTrue(est.usable)

    def test_hypothesis_reassignment_picks_kaon(self) -> None:
        """A kaon track is matched to the kaon expected time instead of biasing t0."""
        tracks = [_track(100.0), _track(100.0), _track(100.0, hypothesis=1)]
        est = CombinatorialEventTimeMaker().estimate(tracks)
        self.assertEqual(est.hypotheses, (0, 0, 1))
        self.assertAlmostEqual(est.time, 100.0, places=9)
        self.assertEqual(est.multiplicity, 3)

    def test_outlier_track_does_not_contribute(self) -> None:
        tracks = [_track(100.0), _track(120.0), _track(80.0), _track(90000.0)]
        est = CombinatorialEventTimeMaker().estimate(tracks)
        self.assertEqual(est.multiplicity, 3)
        self.assertEqual(est.track_weights[3], 0.0)
        self.assertEqual(est.hypotheses[3], -1)
        self.assertAlmostEqual(est.time, 100.0, places=9)

    def test_filtered_tracks_are_ignored(self) -> None:
        """Tracks above the momentum filter never enter the estimate."""
        tracks = [_track(100.0), _track(300.0), _track(5000.0, p=3.0)]
        est = CombinatorialEventTimeMaker().estimate(tracks)
        self.assertEqual(est.multiplicity, 2)
        self.assertAlmostEqual(est.time, 200.0, places=9)

    def test_single_track_is_unusable(self) -> None:
        est = CombinatorialEventTimeMaker().estimate([_track(100.0)])
        self.assertEqual(est.time_error, FILL_TIME_ERROR_PS)
        self.assertGreaterEqual(est.time_error, UNUSABLE_TIME_ERROR_PS)
        self.assertFalse(est.usable)
        self.assertEqual(est.track_weights, (0.0,))

    def test_usable_threshold_is_exclusive(self) -> None:
        self.assertTrue(is_usable(149.9))
        self.assertFalse(is_usable(UNUSABLE_TIME_ERROR_PS))

    def test_expected_sigma_enters_weight(self) -> None:
        """A track with a large expected-time resolution pulls t0 less."""
        precise = _track(100.0)
        loose = Track(
            time=400.0 + EXPECTED[0],
            p=1.0,
            pt=1.0,
            eta=0.0,
            length=300.0,
            expected_times=EXPECTED,
            expected_sigmas=(80.0 * math.sqrt(3.0), 0.0, 0.0),
        )
        est = CombinatorialEventTimeMaker(max_chi2=100.0).estimate([precise, loose])
        # weights 1/80^2 and 1/(4 * 80^2)
        self.assertAlmostEqual(est.time, (100.0 * 4.0 + 400.0) / 5.0, places=9)


class TestBiasRemoval(unittest.TestCase):
    """Validate recomputation of the event time without one track."""

    def test_removing_one_of_two_tracks_gives_the_other(self) -> None:
        maker = CombinatorialEventTimeMaker()
        est = maker.estimate([_track(100.0), _track(300.0)])
        t0, err = maker.recompute_excluding(est, 0, est.time, est.time_error)
        self.assertAlmostEqual(t0, 300.0, places=6)
        self.assertAlmostEqual(err, TOF_RESOLUTION_PS, places=6)
        t1, err1 = maker.recompute_excluding(est, 1, est.time, est.time_error)
        self.assertAlmostEqual(t1, 100.0, places=6)
        self.assertAlmostEqual(err1, TOF_RESOLUTION_PS, places=6)

    def test_bias_removal_is_idempotent(self) -> None:
        maker = CombinatorialEventTimeMaker()
        est = maker.estimate([_track(100.0), _track(150.0), _track(250.0)])
        first = maker.recompute_excluding(est, 2, est.time, est.time_error)
        second = maker.recompute_excluding(est, 2, est.time, est.time_error)
        self.assertEqual(first, second)

    def test_non_contributing_track_leaves_estimate_unchanged(self) -> None:
        maker = CombinatorialEventTimeMaker()
        est = maker.estimate([_track(100.0), _track(120.0), _track(90000.0)])
        self.assertEqual(
            maker.recompute_excluding(est, 2, est.time, est.time_error),
            (est.time, est.time_error),
        )

    def test_removing_last_contributor_returns_fill_value(self) -> None:
        maker = CombinatorialEventTimeMaker(min_multiplicity=1)
        est = maker.estimate([_track(100.0)])
        self.assertTrue(est.usable)
        self.assertEqual(
            maker.recompute_excluding(est, 0, est.time, est.time_error),
            (0.0, FILL_TIME_ERROR_PS),
        )


class TestHypothesisTable(unittest.TestCase):
    """Validate name and alias resolution of the hypothesis table."""

    def test_default_order_and_aliases(self) -> None:
        table = HypothesisTable()
        self.assertEqual(table.names, HYPOTHESIS_NAMES)
        self.assertEqual(table.names, ("pi", "K", "p"))
        self.assertEqual(table.index("Pion"), 0)
        self.assertEqual(table.index("ka"), 1)
        self.assertEqual(table.lookup("pr").pdg_id, 2212)
        self.assertAlmostEqual(table.lookup("kaon").mass, 0.493677, places=9)

    def test_unknown_name_raises(self) -> None:
        with self.assertRaises(ValueError):
            HypothesisTable().index("muon")


if __name__ == "__main__":
    unittest.main()
