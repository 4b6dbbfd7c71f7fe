"""Per-group derived quantities and their accumulation into counters.

For every usable group the accumulator fills:
- TOF vs FT0 event-time coincidence counters, per reference candidate
  (with a same-BC gated copy and the BC difference)
- per-track time residuals for each hypothesis, velocity and mass, using the
  event time recomputed without the track itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from .counters import Axis, CounterSet, CounterSpec
from .evtime import EventTimeEstimate, EventTimeOracle
from .models import FT0_A, FT0_AC, FT0_C, Group, ReferenceHit
from .physics import bc_in_orbit, event_time_bc, time_residual, track_beta, track_mass
from .pid import DEFAULT_TABLE, HypothesisLookup

logger = logging.getLogger(__name__)

# Momentum window (GeV/c) for resolution and multiplicity correlations.
RESOLUTION_P_RANGE = (0.7, 1.1)

_DT = Axis(500, -5000.0, 5000.0, "t_{TOF} - t_{exp} (ps)")
_T0_BC = Axis(1000, -5000.0, 5000.0)
_DELTA_T0 = Axis(200, -2000.0, 2000.0)

# (suffix, collision-time slot)
FT0_SLOTS: tuple[tuple[str, int], ...] = (("AC", FT0_AC), ("A", FT0_A), ("C", FT0_C))


def pid_counter_specs() -> list[CounterSpec]:
    """Counter catalogue of the TOF PID timing monitor."""
    specs = [
        CounterSpec("DeltatPi", ";t_{TOF} - t_{exp}^{#pi} (ps)", (_DT,)),
        CounterSpec("DeltatKa", ";t_{TOF} - t_{exp}^{K} (ps)", (_DT,)),
        CounterSpec("DeltatPr", ";t_{TOF} - t_{exp}^{p} (ps)", (_DT,)),
        CounterSpec("DeltatPi_Pt", ";#it{p}_{T} (GeV/#it{c});t_{TOF} - t_{exp}^{#pi} (ps)", (Axis(5000, 0.0, 20.0), _DT)),
        CounterSpec("DeltatKa_Pt", ";#it{p}_{T} (GeV/#it{c});t_{TOF} - t_{exp}^{K} (ps)", (Axis(1000, 0.0, 20.0), _DT)),
        CounterSpec("DeltatPr_Pt", ";#it{p}_{T} (GeV/#it{c});t_{TOF} - t_{exp}^{p} (ps)", (Axis(1000, 0.0, 20.0), _DT)),
        CounterSpec("HadronMasses", ";M (GeV/#it{c}^{2})", (Axis(1000, 0.0, 3.0),)),
        CounterSpec("HadronMassesvsP", ";#it{p} (GeV/#it{c});M (GeV/#it{c}^{2})", (Axis(1000, 0.0, 5.0), Axis(1000, 0.0, 3.0))),
        CounterSpec("BetavsP", ";#it{p} (GeV/#it{c});TOF #beta", (Axis(1000, 0.0, 5.0), Axis(1000, 0.0, 1.5))),
        CounterSpec(
            "DeltatPiEvtimeRes",
            "0.7 < p < 1.1 GeV/#it{c};TOF event time resolution (ps);t_{TOF} - t_{exp}^{#pi} (ps)",
            (Axis(200, 0.0, 200.0), _DT),
        ),
        CounterSpec(
            "DeltatPiEvTimeMult",
            "0.7 < p < 1.1 GeV/#it{c};TOF multiplicity; t_{TOF} - t_{exp}^{#pi} (ps)",
            (Axis(100, 0.0, 100.0), _DT),
        ),
        CounterSpec(
            "EvTimeResEvTimeMult",
            "0.7 < p < 1.1 GeV/#it{c};TOF multiplicity;TOF event time resolution (ps)",
            (Axis(100, 0.0, 100.0), Axis(200, 0.0, 200.0)),
        ),
        CounterSpec("EvTimeTOF", "t_{0}^{TOF};t_{0}^{TOF} (ps);Counts", (_T0_BC,)),
    ]
    for same_bc in ("", "SameBC"):
        for suffix, _ in FT0_SLOTS:
            specs.append(
                CounterSpec(
                    f"EvTimeTOFVsFT0{suffix}{same_bc}",
                    f"t_{{0}}^{{FT0{suffix}}} vs t_{{0}}^{{TOF}} w.r.t. BC;"
                    f"t_{{0}}^{{TOF}} w.r.t. BC (ps);t_{{0}}^{{FT0{suffix}}} w.r.t. BC (ps)",
                    (_T0_BC, _T0_BC),
                )
            )
        for suffix, _ in FT0_SLOTS:
            specs.append(
                CounterSpec(
                    f"DeltaEvTimeTOFVsFT0{suffix}{same_bc}",
                    f";t_{{0}}^{{TOF}} - t_{{0}}^{{FT0{suffix}}} (ps)",
                    (_DELTA_T0,),
                )
            )
    specs.append(
        CounterSpec(
            "DeltaBCTOFFT0",
            "#Delta BC (TOF-FT0 evt time);#Delta BC",
            (Axis(16, -8.0, 8.0),),
            integer=True,
        )
    )
    return specs


@dataclass
class GroupOutcome:
    """What the accumulator did with one group."""

    usable: bool
    n_tracks: int
    n_candidates: int
    estimate: EventTimeEstimate


class DerivedQuantityAccumulator:
    """Fill derived timing quantities of track groups into a `CounterSet`."""

    def __init__(
        self,
        counters: CounterSet,
        oracle: EventTimeOracle,
        table: HypothesisLookup = DEFAULT_TABLE,
        use_reference: bool = True,
    ) -> None:
        self.counters = counters
        self.oracle = oracle
        self.use_reference = use_reference
        self._pi = table.index("pi")
        self._ka = table.index("K")
        self._pr = table.index("p")

    def process_group(
        self, group: Group, candidates: Sequence[ReferenceHit] = ()
    ) -> GroupOutcome:
        """Estimate the event time of `group` and fill all counters it feeds.

        Groups whose estimate is unusable leave every counter untouched.
        """
        estimate = self.oracle.estimate(group.tracks)
        outcome = GroupOutcome(
            usable=estimate.usable,
            n_tracks=len(group),
            n_candidates=len(candidates),
            estimate=estimate,
        )
        if not estimate.usable:
            logger.debug(
                "Skipping group of %d tracks: event-time error %.1f ps",
                len(group),
                estimate.time_error,
            )
            return outcome
        n_bc, t0_bc = event_time_bc(estimate.time)
        if self.use_reference:
            for hit in candidates:
                self.fill_coincidence(t0_bc, n_bc, hit)
        self.fill_tracks(group, estimate, t0_bc)
        return outcome

    def fill_coincidence(self, t0_bc: float, n_bc: int, hit: ReferenceHit) -> None:
        """Fill TOF vs FT0 counters for one reference candidate."""
        bc = bc_in_orbit(n_bc)
        same_bc = bc == hit.bc
        c = self.counters
        for suffix, slot in FT0_SLOTS:
            t_ref = hit.collision_time(slot)
            c.fill(f"EvTimeTOFVsFT0{suffix}", t0_bc, t_ref)
            c.fill(f"DeltaEvTimeTOFVsFT0{suffix}", t0_bc - t_ref)
            if same_bc:
                c.fill(f"EvTimeTOFVsFT0{suffix}SameBC", t0_bc, t_ref)
                c.fill(f"DeltaEvTimeTOFVsFT0{suffix}SameBC", t0_bc - t_ref)
        c.fill("DeltaBCTOFFT0", bc - hit.bc)

    def fill_tracks(self, group: Group, estimate: EventTimeEstimate, t0_bc: float) -> None:
        """Per-track residuals, velocity and mass against the bias-free event time."""
        c = self.counters
        p_low, p_high = RESOLUTION_P_RANGE
        for i, track in enumerate(group.tracks):
            t0, t0_err = self.oracle.recompute_excluding(
                estimate, i, estimate.time, estimate.time_error
            )
            dt_pi = time_residual(track, t0, self._pi)
            dt_ka = time_residual(track, t0, self._ka)
            dt_pr = time_residual(track, t0, self._pr)
            beta = track_beta(track, t0)
            mass = track_mass(track.p, beta)

            c.fill("DeltatPi", dt_pi)
            c.fill("DeltatKa", dt_ka)
            c.fill("DeltatPr", dt_pr)
            c.fill("DeltatPi_Pt", track.pt, dt_pi)
            c.fill("DeltatKa_Pt", track.pt, dt_ka)
            c.fill("DeltatPr_Pt", track.pt, dt_pr)
            c.fill("HadronMasses", mass)
            c.fill("BetavsP", track.p, beta)
            c.fill("HadronMassesvsP", track.p, mass)
            c.fill("EvTimeTOF", t0_bc)

            if p_low < track.p < p_high:
                c.fill("DeltatPiEvtimeRes", t0_err, dt_pi)
                c.fill("DeltatPiEvTimeMult", estimate.multiplicity, dt_pi)
                c.fill("EvTimeResEvTimeMult", estimate.multiplicity, t0_err)
