"""Core data models used by the TOF/FT0 timing monitor.

This module defines:
- immutable detector records (`Track`, `ReferenceHit`)
- the raw per-source inputs a track is assembled from (`TrackKinematics`, `TofMatch`)
- batch containers (`SourceBlock`, `Batch`)
- transient processing objects (`Group`)
- particle-mass assignment objects (`ParticleHypothesis`)
- configurable track cuts (`TrackSelection`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

# Collision-time slots of a reference hit.
FT0_AC = 0
FT0_A = 1
FT0_C = 2
FT0_VERTEX = 3


@dataclass(frozen=True)
class ParticleHypothesis:
    """Named particle hypothesis with its mass in GeV/c^2."""

    name: str
    mass: float
    pdg_id: int | None = None


@dataclass(frozen=True)
class TrackKinematics:
    """Kinematic and quality parameters of a reconstructed track."""

    p: float
    pt: float
    eta: float
    n_clusters: int = 0
    dca: tuple[float, float] | None = None  # (transverse, longitudinal), cm


@dataclass(frozen=True)
class TofMatch:
    """TOF match of one track: measured signal, path length and expected times."""

    time: float  # ps
    length: float  # cm
    expected_times: tuple[float, ...]  # ps, ordered as pid.HYPOTHESIS_NAMES
    expected_sigmas: tuple[float, ...] = ()
    track_id: str = ""


@dataclass(frozen=True)
class Track:
    """Single TOF-matched track as seen by the timing engine.

    `time` is the TOF signal in ps. `expected_times[h]` is the time of flight
    expected for hypothesis `h`; `expected_sigmas[h]` its resolution, when known.
    """

    time: float
    p: float
    pt: float
    eta: float
    length: float
    expected_times: tuple[float, ...]
    expected_sigmas: tuple[float, ...] = ()
    n_clusters: int = 0
    dca: tuple[float, float] | None = None
    track_id: str = ""
    source: str = ""

    @classmethod
    def from_parts(cls, kinematics: TrackKinematics, match: TofMatch, source: str = "") -> "Track":
        """Join one kinematics record with its TOF match."""
        return cls(
            time=match.time,
            p=kinematics.p,
            pt=kinematics.pt,
            eta=kinematics.eta,
            length=match.length,
            expected_times=match.expected_times,
            expected_sigmas=match.expected_sigmas,
            n_clusters=kinematics.n_clusters,
            dca=kinematics.dca,
            track_id=match.track_id,
            source=source,
        )

    def expected_time(self, hypothesis: int) -> float:
        return self.expected_times[hypothesis]

    def expected_sigma(self, hypothesis: int, default: float) -> float:
        """Expected-time resolution, falling back to `default` when not provided."""
        if hypothesis < len(self.expected_sigmas) and self.expected_sigmas[hypothesis] > 0.0:
            return self.expected_sigmas[hypothesis]
        return default


@dataclass(frozen=True)
class ReferenceHit:
    """Reconstructed interaction point of the reference (FT0) detector.

    `collision_times` holds the A+C mean, A-side, C-side and vertex slots in ps;
    `valid` flags each slot independently.
    """

    orbit: int
    bc: int
    collision_times: tuple[int, int, int, int] = (0, 0, 0, 0)
    valid: tuple[bool, bool, bool, bool] = (False, False, False, False)
    trigger: int = 0

    def collision_time(self, slot: int) -> float:
        """Collision time of one slot, 0 when the slot is not valid."""
        return float(self.collision_times[slot]) if self.valid[slot] else 0.0


@dataclass(frozen=True)
class SourceBlock:
    """Per-source batch payload: kinematics and TOF matches in 1:1 order."""

    kinematics: tuple[TrackKinematics, ...]
    matches: tuple[TofMatch, ...]


@dataclass(frozen=True)
class Batch:
    """One unit of work handed over by the host (a time frame)."""

    sources: dict[str, SourceBlock] = field(default_factory=dict)
    reference_hits: tuple[ReferenceHit, ...] | None = None
    first_orbit: int = 0
    batch_id: str | None = None


@dataclass(frozen=True)
class Group:
    """Time-adjacent tracks treated as candidates from one collision."""

    tracks: tuple[Track, ...]

    @property
    def first_time(self) -> float:
        return self.tracks[0].time

    @property
    def last_time(self) -> float:
        return self.tracks[-1].time

    def __len__(self) -> int:
        return len(self.tracks)


@dataclass(frozen=True)
class TrackSelection:
    """Track-level cuts applied before grouping."""

    min_pt: float = 0.1
    max_abs_eta: float = 0.8
    min_n_clusters: int = 40
    max_dca: float = 100.0
    max_dca_y: float = 10.0


def sort_by_time(tracks: Sequence[Track]) -> list[Track]:
    """Stable ascending sort by TOF time; ties keep input order."""
    return sorted(tracks, key=lambda t: t.time)
