"""Track assembly from per-source inputs and track-level selection."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Sequence

from .errors import DataInconsistencyError
from .models import SourceBlock, Track, TrackSelection
from .pid import DEFAULT_TABLE

logger = logging.getLogger(__name__)

DcaProvider = Callable[[Track, float], tuple[float, float] | None]


def stored_dca(track: Track, max_distance: float) -> tuple[float, float] | None:
    """Return the track's precomputed DCA if it lies within `max_distance`."""
    if track.dca is None:
        return None
    transverse, longitudinal = track.dca
    if math.hypot(transverse, longitudinal) > max_distance:
        return None
    return track.dca


@dataclass
class TrackSelector:
    """Kinematic and quality cuts evaluated once per track before grouping."""

    cuts: TrackSelection = field(default_factory=TrackSelection)
    dca_provider: DcaProvider = stored_dca

    def select(self, track: Track) -> bool:
        cuts = self.cuts
        if track.pt < cuts.min_pt:
            return False
        if abs(track.eta) > cuts.max_abs_eta:
            return False
        if track.n_clusters < cuts.min_n_clusters:
            return False
        dca = self.dca_provider(track, cuts.max_dca)
        if dca is None or abs(dca[0]) > cuts.max_dca_y:
            return False
        return True

    def filter(self, tracks: Sequence[Track]) -> list[Track]:
        return [t for t in tracks if self.select(t)]


def assemble_tracks(
    source: str, block: SourceBlock, n_hypotheses: int = len(DEFAULT_TABLE.names)
) -> list[Track]:
    """Join kinematics with TOF matches for one source.

    Raises `DataInconsistencyError` when the two lists differ in length, or
    when a match does not carry one expected time (and, if given, one
    resolution) per hypothesis.
    """
    if len(block.kinematics) != len(block.matches):
        raise DataInconsistencyError(
            f"Number of {source} tracks ({len(block.kinematics)}) differs from "
            f"number of {source} matches ({len(block.matches)})"
        )
    for idx, match in enumerate(block.matches):
        if len(match.expected_times) != n_hypotheses or (
            match.expected_sigmas and len(match.expected_sigmas) != n_hypotheses
        ):
            raise DataInconsistencyError(
                f"{source} match at index {idx} has {len(match.expected_times)} expected times "
                f"and {len(match.expected_sigmas)} resolutions for {n_hypotheses} hypotheses"
            )
    tracks = [
        Track.from_parts(kin, match, source=source)
        for kin, match in zip(block.kinematics, block.matches, strict=True)
    ]
    logger.debug("Assembled %d tracks from source %s", len(tracks), source)
    return tracks
