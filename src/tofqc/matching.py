"""Windowed merge-join between track groups and reference-detector hits."""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from .models import Group, ReferenceHit
from .physics import MATCH_WINDOW_PS, reference_hit_time


class ReferenceWindowMatcher:
    """Select reference hits around each group with a monotonic cursor.

    Hits are sorted once by time at construction. Groups must be presented in
    increasing time order: the cursor only skips hits that end before the
    current window opens, so every hit is passed over at most once per batch.
    Returned hits carry their orbit relative to the batch's first orbit.
    """

    def __init__(
        self,
        hits: Sequence[ReferenceHit],
        first_orbit: int = 0,
        window: float = MATCH_WINDOW_PS,
    ) -> None:
        self.first_orbit = first_orbit
        self.window = window
        timed = [(reference_hit_time(h, first_orbit), h) for h in hits]
        timed.sort(key=lambda item: item[0])
        self._times = [t for t, _ in timed]
        self._hits = [h for _, h in timed]
        self.cursor = 0

    def __len__(self) -> int:
        return len(self._hits)

    @property
    def times(self) -> list[float]:
        return list(self._times)

    def match(self, group: Group) -> list[ReferenceHit]:
        """Return hits with time in `[first - window, last + window]`."""
        first_time = group.first_time - self.window
        last_time = group.last_time + self.window
        out: list[ReferenceHit] = []
        for j in range(self.cursor, len(self._hits)):
            t = self._times[j]
            if t < first_time:
                self.cursor = j + 1
                continue
            if t > last_time:
                break
            hit = self._hits[j]
            out.append(replace(hit, orbit=hit.orbit - self.first_orbit))
        return out
