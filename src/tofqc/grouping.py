"""Partition time-sorted tracks into interaction-candidate groups."""

from __future__ import annotations

from typing import Iterator, Sequence

from .models import Group, Track
from .physics import GROUP_ADJACENCY_PS


def iter_groups(
    tracks: Sequence[Track],
    threshold: float = GROUP_ADJACENCY_PS,
) -> Iterator[Group]:
    """Yield consecutive groups from tracks sorted ascending by time.

    A group is anchored at its first track: a following track joins while its
    time minus the anchor time is within `threshold`. The first track that
    falls outside opens the next group, so isolated tracks form singletons.
    """
    start = 0
    n = len(tracks)
    while start < n:
        anchor = tracks[start].time
        stop = start + 1
        while stop < n and tracks[stop].time - anchor <= threshold:
            stop += 1
        yield Group(tracks=tuple(tracks[start:stop]))
        start = stop
