"""Particle-hypothesis table used for expected-time bookkeeping.

The monitor works with a closed set of charged-hadron hypotheses. Each track
carries one expected time of flight per hypothesis, stored in the order of
`HYPOTHESIS_NAMES`; the table below resolves names and aliases into that
order and into the hypothesis masses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .models import ParticleHypothesis

_PION = ParticleHypothesis(name="pi", mass=0.13957039, pdg_id=211)
_KAON = ParticleHypothesis(name="K", mass=0.493677, pdg_id=321)
_PROTON = ParticleHypothesis(name="p", mass=0.93827208816, pdg_id=2212)

HYPOTHESES: tuple[ParticleHypothesis, ...] = (_PION, _KAON, _PROTON)
HYPOTHESIS_NAMES: tuple[str, ...] = tuple(h.name for h in HYPOTHESES)

_ALIASES: dict[str, str] = {
    "pi": "pi",
    "pion": "pi",
    "k": "K",
    "ka": "K",
    "kaon": "K",
    "p": "p",
    "pr": "p",
    "proton": "p",
}


class HypothesisLookup(Protocol):
    """Read-only access to hypothesis constants, injected into the estimator."""

    @property
    def names(self) -> tuple[str, ...]:
        ...

    def lookup(self, name: str) -> ParticleHypothesis:
        ...

    def index(self, name: str) -> int:
        ...


@dataclass(frozen=True)
class HypothesisTable:
    """Immutable name -> hypothesis table for the closed hypothesis set."""

    hypotheses: tuple[ParticleHypothesis, ...] = HYPOTHESES

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(h.name for h in self.hypotheses)

    def lookup(self, name: str) -> ParticleHypothesis:
        """Resolve a short name or alias (`pi`, `kaon`, `pr`, ...) into a hypothesis."""
        return self.hypotheses[self.index(name)]

    def index(self, name: str) -> int:
        """Position of a hypothesis in per-track expected-time tuples."""
        canonical = _canonical_name(name)
        for idx, hyp in enumerate(self.hypotheses):
            if hyp.name == canonical:
                return idx
        supported = ", ".join(sorted(_ALIASES))
        raise ValueError(
            f"Unknown particle hypothesis name '{name}'. Supported names: {supported}"
        )


DEFAULT_TABLE = HypothesisTable()


def _canonical_name(name: str) -> str:
    key = name.strip().lower()
    return _ALIASES.get(key, name.strip())
