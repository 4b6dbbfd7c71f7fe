"""Fixed-binning 1-D and 2-D histograms backed by numpy arrays.

Binning follows the ROOT convention used by the monitoring displays: regular
bins on `[low, high)`, plus one underflow and one overflow slot per axis
(index 0 and `nbins + 1` of the stored array). NaN values are never counted.
Bin edges are fixed at construction and never change.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Iterator

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class Axis:
    """Regular axis with `nbins` bins between `low` and `high`."""

    nbins: int
    low: float
    high: float
    label: str = ""

    def __post_init__(self) -> None:
        if self.nbins <= 0:
            raise ValueError(f"Axis needs at least one bin, got {self.nbins}.")
        if not self.high > self.low:
            raise ValueError(f"Axis range [{self.low}, {self.high}) is empty.")

    @property
    def width(self) -> float:
        return (self.high - self.low) / self.nbins

    def find_bin(self, x: float) -> int:
        """Storage index of `x`: 0 underflow, 1..nbins, nbins + 1 overflow."""
        if x < self.low:
            return 0
        if x >= self.high:
            return self.nbins + 1
        idx = int((x - self.low) * self.nbins / (self.high - self.low)) + 1
        return min(idx, self.nbins)


@dataclass(frozen=True)
class CounterSpec:
    """Declaration of one counter: name, title, axes and storage type."""

    name: str
    title: str
    axes: tuple[Axis, ...]
    integer: bool = False

    @property
    def dimension(self) -> int:
        return len(self.axes)


class Histogram:
    """Counter with one or two fixed axes."""

    def __init__(self, spec: CounterSpec) -> None:
        if spec.dimension not in (1, 2):
            raise ValueError(f"Counter '{spec.name}' must have 1 or 2 axes.")
        self.spec = spec
        dtype = np.int64 if spec.integer else np.float64
        shape = tuple(a.nbins + 2 for a in spec.axes)
        self._data: NDArray = np.zeros(shape, dtype=dtype)
        self.entries = 0

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def axes(self) -> tuple[Axis, ...]:
        return self.spec.axes

    @property
    def dimension(self) -> int:
        return self.spec.dimension

    def fill(self, x: float, y: float | None = None) -> bool:
        """Add one entry; returns False when a coordinate is NaN."""
        if self.dimension == 1:
            if y is not None:
                raise ValueError(f"Counter '{self.name}' is 1-D.")
            if math.isnan(x):
                return False
            self._data[self.axes[0].find_bin(x)] += 1
        else:
            if y is None:
                raise ValueError(f"Counter '{self.name}' is 2-D and needs two values.")
            if math.isnan(x) or math.isnan(y):
                return False
            self._data[self.axes[0].find_bin(x), self.axes[1].find_bin(y)] += 1
        self.entries += 1
        return True

    def reset(self) -> None:
        self._data[...] = 0
        self.entries = 0

    def values(self, flow: bool = False) -> NDArray:
        """Bin contents as a copy; `flow=True` includes under/overflow slots."""
        if flow:
            return self._data.copy()
        inner = tuple(slice(1, a.nbins + 1) for a in self.axes)
        return self._data[inner].copy()

    def total(self) -> float:
        """Sum of all slots including under/overflow."""
        return float(self._data.sum())

    def content(self, *indices: int) -> float:
        """Content of one storage slot (ROOT-style bin numbering)."""
        return float(self._data[indices])

    def __repr__(self) -> str:
        return f"Histogram(name={self.name!r}, dim={self.dimension}, entries={self.entries})"


class CounterSet:
    """Ordered, explicitly owned collection of declared counters."""

    def __init__(self) -> None:
        self._counters: dict[str, Histogram] = {}

    @classmethod
    def from_specs(cls, specs: Iterable[CounterSpec]) -> "CounterSet":
        out = cls()
        for spec in specs:
            out.declare(spec)
        return out

    def declare(self, spec: CounterSpec) -> Histogram:
        if spec.name in self._counters:
            raise ValueError(f"Counter '{spec.name}' is already declared.")
        hist = Histogram(spec)
        self._counters[spec.name] = hist
        return hist

    def __getitem__(self, name: str) -> Histogram:
        return self._counters[name]

    def __contains__(self, name: object) -> bool:
        return name in self._counters

    def __iter__(self) -> Iterator[Histogram]:
        return iter(self._counters.values())

    def __len__(self) -> int:
        return len(self._counters)

    def names(self) -> list[str]:
        return list(self._counters)

    def fill(self, name: str, x: float, y: float | None = None) -> bool:
        return self._counters[name].fill(x, y)

    def reset(self) -> None:
        for hist in self._counters.values():
            hist.reset()

    def snapshot(self) -> dict[str, NDArray]:
        """Copies of all storage arrays (with flow slots), keyed by name."""
        return {name: hist.values(flow=True) for name, hist in self._counters.items()}

    def binning(self) -> dict[str, tuple[int, tuple[tuple[int, float, float], ...]]]:
        """Binning contract `{name: (dimension, ((nbins, low, high), ...))}`."""
        return {
            name: (h.dimension, tuple((a.nbins, a.low, a.high) for a in h.axes))
            for name, h in self._counters.items()
        }
