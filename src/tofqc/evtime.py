"""Event-time estimation from TOF-matched tracks.

The engine consumes the estimator through `EventTimeOracle`. Any object with
the two methods below can be injected; `CombinatorialEventTimeMaker` is the
implementation used by default.

An estimate whose `time_error` is at or above `UNUSABLE_TIME_ERROR_PS` must
not be used for coincidence or per-track accumulation.
"""

from __future__ import annotations

import math
import statistics
from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

from .models import Track
from .pid import DEFAULT_TABLE, HypothesisLookup

UNUSABLE_TIME_ERROR_PS = 150.0
# Returned when no event time can be built (no or too few contributing tracks).
FILL_TIME_ERROR_PS = 200.0
TOF_RESOLUTION_PS = 80.0
FILTER_MAX_P = 2.0


@dataclass(frozen=True)
class EventTimeEstimate:
    """Combined event time of one group and the per-track contributions.

    `track_times[i]` and `track_weights[i]` describe the t0 candidate of the
    i-th group track under its chosen hypothesis `hypotheses[i]`; a weight of 0
    (hypothesis -1) marks a track that did not contribute.
    """

    time: float
    time_error: float
    multiplicity: int
    track_times: tuple[float, ...] = ()
    track_weights: tuple[float, ...] = ()
    hypotheses: tuple[int, ...] = ()

    @property
    def usable(self) -> bool:
        return is_usable(self.time_error)


class EventTimeOracle(Protocol):
    """Estimator contract used by the accumulator."""

    def estimate(self, tracks: Sequence[Track]) -> EventTimeEstimate:
        ...

    def recompute_excluding(
        self,
        estimate: EventTimeEstimate,
        track_index: int,
        time: float,
        time_error: float,
    ) -> tuple[float, float]:
        ...


def is_usable(time_error: float) -> bool:
    return time_error < UNUSABLE_TIME_ERROR_PS


def momentum_filter(track: Track) -> bool:
    """Tracks below 2 GeV/c enter the event-time computation."""
    return track.p < FILTER_MAX_P


def fill_estimate(n_tracks: int, multiplicity: int = 0) -> EventTimeEstimate:
    """Estimate returned when no event time can be computed."""
    return EventTimeEstimate(
        time=0.0,
        time_error=FILL_TIME_ERROR_PS,
        multiplicity=multiplicity,
        track_times=(0.0,) * n_tracks,
        track_weights=(0.0,) * n_tracks,
        hypotheses=(-1,) * n_tracks,
    )


@dataclass
class CombinatorialEventTimeMaker:
    """Weighted-mean event time with per-track hypothesis assignment.

    Every filtered track proposes one t0 per hypothesis, `time - expected[h]`.
    Starting from the median of the pion t0 values, the estimator alternates
    between assigning each track the hypothesis closest to the current t0 and
    recomputing the weighted mean; tracks whose best chi2 exceeds `max_chi2`
    are left out.
    """

    track_filter: Callable[[Track], bool] = momentum_filter
    table: HypothesisLookup = DEFAULT_TABLE
    tof_resolution: float = TOF_RESOLUTION_PS
    max_chi2: float = 9.0
    min_multiplicity: int = 2
    max_iterations: int = 10

    def estimate(self, tracks: Sequence[Track]) -> EventTimeEstimate:
        n_hyp = len(self.table.names)
        candidates = [
            i
            for i, t in enumerate(tracks)
            if self.track_filter(t) and len(t.expected_times) >= n_hyp
        ]
        if len(candidates) < self.min_multiplicity:
            return fill_estimate(len(tracks), multiplicity=len(candidates))

        pion = self.table.index("pi")
        t0 = statistics.median(tracks[i].time - tracks[i].expected_time(pion) for i in candidates)
        assignment: dict[int, int] = {}
        for _ in range(self.max_iterations):
            updated: dict[int, int] = {}
            for i in candidates:
                best_h, best_chi2 = self._best_hypothesis(tracks[i], t0, n_hyp)
                if best_chi2 <= self.max_chi2:
                    updated[i] = best_h
            converged = updated == assignment
            assignment = updated
            if converged or len(assignment) < self.min_multiplicity:
                break
            t0, sum_w = self._weighted_mean(tracks, assignment)
            if sum_w <= 0.0:
                break

        if len(assignment) < self.min_multiplicity:
            return fill_estimate(len(tracks), multiplicity=len(assignment))
        t0, sum_w = self._weighted_mean(tracks, assignment)
        if sum_w <= 0.0:
            return fill_estimate(len(tracks), multiplicity=len(assignment))

        times: list[float] = []
        weights: list[float] = []
        hyps: list[int] = []
        for i, track in enumerate(tracks):
            h = assignment.get(i)
            if h is None:
                times.append(0.0)
                weights.append(0.0)
                hyps.append(-1)
                continue
            times.append(track.time - track.expected_time(h))
            weights.append(self._weight(track, h))
            hyps.append(h)
        return EventTimeEstimate(
            time=t0,
            time_error=(1.0 / sum_w) ** 0.5,
            multiplicity=len(assignment),
            track_times=tuple(times),
            track_weights=tuple(weights),
            hypotheses=tuple(hyps),
        )

    def recompute_excluding(
        self,
        estimate: EventTimeEstimate,
        track_index: int,
        time: float,
        time_error: float,
    ) -> tuple[float, float]:
        """Remove one track's contribution from `(time, time_error)`.

        Tracks that did not contribute leave the inputs unchanged. Removing the
        last contributor returns the fill value.
        """
        if track_index >= len(estimate.track_weights):
            return time, time_error
        w = estimate.track_weights[track_index]
        if w <= 0.0 or time_error <= 0.0:
            return time, time_error
        sum_w = 1.0 / (time_error * time_error)
        rest = sum_w - w
        if rest <= sum_w * 1e-9:
            return 0.0, FILL_TIME_ERROR_PS
        new_time = (time * sum_w - estimate.track_times[track_index] * w) / rest
        return new_time, (1.0 / rest) ** 0.5

    def _sigma(self, track: Track, hypothesis: int) -> float:
        exp_sigma = track.expected_sigma(hypothesis, default=0.0)
        return math.hypot(exp_sigma, self.tof_resolution)

    def _weight(self, track: Track, hypothesis: int) -> float:
        sigma = self._sigma(track, hypothesis)
        if sigma <= 0.0:
            return 0.0
        return 1.0 / (sigma * sigma)

    def _weighted_mean(
        self, tracks: Sequence[Track], assignment: dict[int, int]
    ) -> tuple[float, float]:
        sum_w = 0.0
        sum_wt = 0.0
        for i, h in assignment.items():
            track = tracks[i]
            w = self._weight(track, h)
            sum_w += w
            sum_wt += w * (track.time - track.expected_time(h))
        if sum_w <= 0.0:
            return 0.0, 0.0
        return sum_wt / sum_w, sum_w

    def _best_hypothesis(self, track: Track, t0: float, n_hyp: int) -> tuple[int, float]:
        best_h = 0
        best_chi2 = math.inf
        for h in range(n_hyp):
            sigma = self._sigma(track, h)
            if sigma <= 0.0:
                continue
            pull = (track.time - track.expected_time(h) - t0) / sigma
            chi2 = pull * pull
            if chi2 < best_chi2:
                best_h, best_chi2 = h, chi2
        return best_h, best_chi2
