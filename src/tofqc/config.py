"""Task configuration parsed from the host's flat string parameters."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Mapping, TypeVar

from .errors import ConfigurationError
from .models import TrackSelection
from .sources import DEFAULT_SOURCES, format_mask, requested_sources

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRUE_VALUES = ("true", "True", "TRUE")


@dataclass(frozen=True)
class TaskConfig:
    """Interpreted task parameters.

    Parameter names and defaults:
    - `minPtCut` (0.1 GeV/c), `etaCut` (0.8), `minNTPCClustersCut` (40)
    - `minDCACut` (100 cm), `minDCACutY` (10 cm)
    - `useFT0` (false): only `true`, `True` or `TRUE` enable the reference detector
    - `GID`: comma-separated track sources, intersected with the allowed ones.
    """

    min_pt: float = 0.1
    max_abs_eta: float = 0.8
    min_n_clusters: int = 40
    max_dca: float = 100.0
    max_dca_y: float = 10.0
    use_ft0: bool = False
    sources: frozenset[str] = field(default_factory=lambda: requested_sources(DEFAULT_SOURCES))

    @classmethod
    def from_parameters(cls, params: Mapping[str, str] | None = None) -> "TaskConfig":
        """Build a config from the host's custom parameters.

        Raises `ConfigurationError` for unparsable values and
        `SourceConfigurationError` for inconsistent source requests.
        """
        params = dict(params or {})
        defaults = cls()
        min_pt = _read(params, "minPtCut", float, defaults.min_pt, "for track selection")
        eta = _read(params, "etaCut", float, defaults.max_abs_eta, "for track selection")
        n_clusters = _read(
            params, "minNTPCClustersCut", int, defaults.min_n_clusters, "for track selection"
        )
        max_dca = _read(params, "minDCACut", float, defaults.max_dca, "for track selection")
        max_dca_y = _read(params, "minDCACutY", float, defaults.max_dca_y, "for track selection")

        use_ft0 = defaults.use_ft0
        if "useFT0" in params:
            logger.debug("Custom parameter - useFT0: %s", params["useFT0"])
            use_ft0 = params["useFT0"].strip() in _TRUE_VALUES

        sources = defaults.sources
        if "GID" in params:
            logger.debug("Custom parameter - GID (= sources by user): %s", params["GID"])
            sources = requested_sources(params["GID"])
            logger.debug("Final requested sources = %s", format_mask(sources))

        return cls(
            min_pt=min_pt,
            max_abs_eta=eta,
            min_n_clusters=n_clusters,
            max_dca=max_dca,
            max_dca_y=max_dca_y,
            use_ft0=use_ft0,
            sources=sources,
        )

    def selection(self) -> TrackSelection:
        return TrackSelection(
            min_pt=self.min_pt,
            max_abs_eta=self.max_abs_eta,
            min_n_clusters=self.min_n_clusters,
            max_dca=self.max_dca,
            max_dca_y=self.max_dca_y,
        )


def parse_key_values(items: list[str] | None) -> dict[str, str]:
    """Parse `KEY=VALUE` strings into a parameter mapping."""
    out: dict[str, str] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ConfigurationError(f"Parameter '{item}' must have the form KEY=VALUE.")
        out[key.strip()] = value.strip()
    return out


def _read(
    params: Mapping[str, str],
    name: str,
    convert: Callable[[str], T],
    default: T,
    purpose: str,
) -> T:
    if name not in params:
        return default
    raw = params[name]
    logger.debug("Custom parameter - %s (%s): %s", name, purpose, raw)
    try:
        return convert(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(
            f"Parameter '{name}' has invalid value {raw!r}."
        ) from exc
