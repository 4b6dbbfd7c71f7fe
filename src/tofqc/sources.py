"""Track-source names, masks and their consistency rules."""

from __future__ import annotations

from typing import Iterable

from .errors import SourceConfigurationError

KNOWN_SOURCES: tuple[str, ...] = (
    "ITS",
    "TPC",
    "TRD",
    "TOF",
    "PHS",
    "CPV",
    "EMC",
    "HMP",
    "MFT",
    "MCH",
    "MID",
    "ZDC",
    "FT0",
    "FV0",
    "FDD",
    "ITS-TPC",
    "TPC-TOF",
    "TPC-TRD",
    "MFT-MCH",
    "ITS-TPC-TRD",
    "ITS-TPC-TOF",
    "TPC-TRD-TOF",
    "MFT-MCH-MID",
    "ITS-TPC-TRD-TOF",
)

ALLOWED_SOURCES = frozenset(
    (
        "TPC",
        "TPC-TOF",
        "ITS-TPC",
        "ITS-TPC-TOF",
        "TPC-TRD",
        "TPC-TRD-TOF",
        "ITS-TPC-TRD",
        "ITS-TPC-TRD-TOF",
    )
)

# TOF-matched source -> the source its tracks are built on. Processing order.
TOF_SOURCES: tuple[tuple[str, str], ...] = (
    ("TPC-TOF", "TPC"),
    ("ITS-TPC-TOF", "ITS-TPC"),
    ("TPC-TRD-TOF", "TPC-TRD"),
    ("ITS-TPC-TRD-TOF", "ITS-TPC-TRD"),
)

DEFAULT_SOURCES = "ITS-TPC,ITS-TPC-TOF"


def parse_sources(text: str) -> frozenset[str]:
    """Parse a comma-separated source list, rejecting unknown names."""
    names = [x.strip() for x in text.split(",") if x.strip()]
    unknown = [n for n in names if n not in KNOWN_SOURCES]
    if unknown:
        raise SourceConfigurationError(
            f"Unknown track source(s) {', '.join(unknown)}. Known: {', '.join(KNOWN_SOURCES)}"
        )
    return frozenset(names)


def requested_sources(text: str) -> frozenset[str]:
    """User request intersected with the allowed sources, then validated."""
    sources = parse_sources(text) & ALLOWED_SOURCES
    validate_sources(sources)
    return sources


def validate_sources(sources: Iterable[str]) -> None:
    """A TOF-matched source and its base source must be requested together."""
    present = set(sources)
    for tof_source, base in TOF_SOURCES:
        if (tof_source in present) != (base in present):
            raise SourceConfigurationError(
                f"Check the requested sources: {tof_source} = {int(tof_source in present)}, "
                f"{base} = {int(base in present)}"
            )


def enabled_tof_sources(sources: Iterable[str]) -> list[str]:
    """TOF-matched sources present in `sources`, in processing order."""
    present = set(sources)
    return [tof_source for tof_source, _ in TOF_SOURCES if tof_source in present]


def format_mask(sources: Iterable[str]) -> str:
    present = set(sources)
    return ",".join(n for n in KNOWN_SOURCES if n in present)
