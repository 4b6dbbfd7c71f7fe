"""Input/output helpers for JSON batches and tabular counter export."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

from .counters import Axis, Histogram
from .models import Batch, ReferenceHit, SourceBlock, TofMatch, TrackKinematics
from .pid import DEFAULT_TABLE


def load_batch_json(path: str | Path) -> Batch:
    """Load one batch document into a `Batch`.

    Expected shape:
    {
      "first_orbit": 0,
      "sources": {"ITS-TPC-TOF": {"tracks": [...], "matches": [...]}},
      "reference_hits": [...]        # optional
    }
    """
    data = _load_json(path)
    return _parse_batch(data, context=f"{path}")


def load_batches_json(path: str | Path) -> list[Batch]:
    """Load a list of batches (`{"batches": [...]}`) or a single batch document."""
    data = _load_json(path)
    if "batches" not in data:
        return [_parse_batch(data, context=f"{path}")]
    batches_data = data["batches"]
    if not isinstance(batches_data, list):
        raise ValueError("Batches JSON key 'batches' must be a list.")
    out: list[Batch] = []
    for idx, item in enumerate(batches_data):
        if not isinstance(item, dict):
            raise ValueError(f"Batch entry at index {idx} must be an object.")
        out.append(_parse_batch(item, context=f"batch {idx} of {path}", default_id=f"batch{idx}"))
    return out


def load_parameters_json(path: str | Path) -> dict[str, str]:
    """Load a flat task-parameter object; values are kept as strings."""
    data = _load_json(path)
    params: dict[str, str] = {}
    for key, value in data.items():
        if isinstance(value, (dict, list)):
            raise ValueError(f"Parameter '{key}' must be a scalar value.")
        if isinstance(value, bool):
            params[str(key)] = "true" if value else "false"
        else:
            params[str(key)] = str(value)
    return params


def write_counters_table(path: str | Path, counters: Iterable[Histogram]) -> int:
    """Write non-empty bins of all counters into a Parquet/CSV/Pickle table.

    Returns the number of rows written.
    """
    pd = _require_pandas()
    rows = counter_rows(counters)
    df = pd.DataFrame(rows, columns=_COLUMNS)
    out = Path(path)
    suffix = out.suffix.lower()
    if suffix == ".parquet":
        df.to_parquet(out, index=False)
    elif suffix in (".pkl", ".pickle"):
        df.to_pickle(out)
    elif suffix == ".csv":
        df.to_csv(out, index=False)
    else:
        raise ValueError(
            f"Unsupported output format '{suffix}'. Use .parquet, .csv, or .pkl"
        )
    return len(rows)


_COLUMNS = ["name", "ix", "iy", "x_low", "x_high", "y_low", "y_high", "content"]


def counter_rows(counters: Iterable[Histogram]) -> list[dict[str, Any]]:
    """Flatten counters into long-format rows, one per non-empty storage slot.

    Under/overflow slots keep ROOT numbering (0 and nbins + 1) with infinite
    edges; 1-D counters leave the y columns empty.
    """
    rows: list[dict[str, Any]] = []
    for hist in counters:
        data = hist.values(flow=True)
        x_axis = hist.axes[0]
        if hist.dimension == 1:
            for ix in data.nonzero()[0]:
                x_low, x_high = _slot_edges(x_axis, int(ix))
                rows.append(
                    {
                        "name": hist.name,
                        "ix": int(ix),
                        "iy": None,
                        "x_low": x_low,
                        "x_high": x_high,
                        "y_low": None,
                        "y_high": None,
                        "content": float(data[ix]),
                    }
                )
            continue
        y_axis = hist.axes[1]
        for ix, iy in zip(*data.nonzero()):
            x_low, x_high = _slot_edges(x_axis, int(ix))
            y_low, y_high = _slot_edges(y_axis, int(iy))
            rows.append(
                {
                    "name": hist.name,
                    "ix": int(ix),
                    "iy": int(iy),
                    "x_low": x_low,
                    "x_high": x_high,
                    "y_low": y_low,
                    "y_high": y_high,
                    "content": float(data[ix, iy]),
                }
            )
    return rows


def _slot_edges(axis: Axis, index: int) -> tuple[float, float]:
    if index == 0:
        return float("-inf"), axis.low
    if index == axis.nbins + 1:
        return axis.high, float("inf")
    low = axis.low + (index - 1) * axis.width
    return low, low + axis.width


def _require_pandas():
    """Import pandas lazily and provide a clear installation hint on failure."""
    try:
        import pandas as pd  # type: ignore
    except ModuleNotFoundError as exc:
        raise ModuleNotFoundError(
            "pandas is required to write output tables. Install pandas (and pyarrow for parquet)."
        ) from exc
    return pd


def _parse_batch(data: dict[str, Any], context: str, default_id: str | None = None) -> Batch:
    sources_data = data.get("sources", {})
    if not isinstance(sources_data, dict):
        raise ValueError(f"Key 'sources' in {context} must be an object.")
    sources: dict[str, SourceBlock] = {}
    for name, block in sources_data.items():
        if not isinstance(block, dict):
            raise ValueError(f"Source '{name}' in {context} must be an object.")
        tracks_data = block.get("tracks", [])
        matches_data = block.get("matches", [])
        if not isinstance(tracks_data, list) or not isinstance(matches_data, list):
            raise ValueError(f"Source '{name}' in {context} must hold 'tracks' and 'matches' lists.")
        sources[str(name)] = SourceBlock(
            kinematics=tuple(
                _parse_kinematics_item(item, idx, f"source '{name}' in {context}")
                for idx, item in enumerate(tracks_data)
            ),
            matches=tuple(
                _parse_match_item(item, idx, f"source '{name}' in {context}")
                for idx, item in enumerate(matches_data)
            ),
        )

    hits: tuple[ReferenceHit, ...] | None = None
    hits_data = data.get("reference_hits", data.get("ft0"))
    if hits_data is not None:
        if not isinstance(hits_data, list):
            raise ValueError(f"Key 'reference_hits' in {context} must be a list.")
        hits = tuple(
            _parse_reference_hit_item(item, idx, context) for idx, item in enumerate(hits_data)
        )

    batch_id = data.get("batch_id", default_id)
    return Batch(
        sources=sources,
        reference_hits=hits,
        first_orbit=int(data.get("first_orbit", 0)),
        batch_id=None if batch_id is None else str(batch_id),
    )


def _parse_kinematics_item(item: Any, idx: int, context: str) -> TrackKinematics:
    """Parse one track dictionary into `TrackKinematics`."""
    if not isinstance(item, dict):
        raise ValueError(f"Track entry at index {idx} in {context} must be an object.")
    dca_raw = item.get("dca")
    dca: tuple[float, float] | None = None
    if dca_raw is not None:
        if not isinstance(dca_raw, list) or len(dca_raw) != 2:
            raise ValueError(f"Track at index {idx} in {context}: 'dca' must be a 2-element list.")
        dca = (float(dca_raw[0]), float(dca_raw[1]))
    try:
        return TrackKinematics(
            p=float(item["p"]),
            pt=float(item["pt"]),
            eta=float(item["eta"]),
            n_clusters=int(item.get("n_clusters", 0)),
            dca=dca,
        )
    except KeyError as exc:
        raise ValueError(f"Track at index {idx} in {context} misses field {exc}.") from exc


def _parse_match_item(item: Any, idx: int, context: str) -> TofMatch:
    """Parse one TOF match dictionary into `TofMatch`."""
    if not isinstance(item, dict):
        raise ValueError(f"Match entry at index {idx} in {context} must be an object.")
    if "time" not in item or "length" not in item or "expected_times" not in item:
        raise ValueError(
            f"Match at index {idx} in {context} must define 'time', 'length' and 'expected_times'."
        )
    return TofMatch(
        time=float(item["time"]),
        length=float(item["length"]),
        expected_times=_parse_per_hypothesis(item["expected_times"], idx, context, "expected_times"),
        expected_sigmas=_parse_per_hypothesis(
            item.get("expected_sigmas", []), idx, context, "expected_sigmas", allow_empty=True
        ),
        track_id=str(item.get("track_id", f"trk{idx}")),
    )


def _parse_per_hypothesis(
    value: Any, idx: int, context: str, key: str, allow_empty: bool = False
) -> tuple[float, ...]:
    """Accept a list in hypothesis order or an object keyed by hypothesis name.

    Lists must hold exactly one value per hypothesis (`allow_empty` also lets
    an empty list through for optional keys).
    """
    n_hyp = len(DEFAULT_TABLE.names)
    if isinstance(value, list):
        if len(value) != n_hyp and not (allow_empty and not value):
            raise ValueError(
                f"Match at index {idx} in {context}: '{key}' needs {n_hyp} values, got {len(value)}."
            )
        return tuple(float(x) for x in value)
    if isinstance(value, dict):
        out = [0.0] * n_hyp
        for name, v in value.items():
            out[DEFAULT_TABLE.index(str(name))] = float(v)
        return tuple(out)
    raise ValueError(
        f"Match at index {idx} in {context}: per-hypothesis values must be a list or object."
    )


def _parse_reference_hit_item(item: Any, idx: int, context: str) -> ReferenceHit:
    """Parse one FT0 reconstructed point into a `ReferenceHit`."""
    if not isinstance(item, dict):
        raise ValueError(f"Reference hit at index {idx} in {context} must be an object.")
    times = item.get("collision_times", [0, 0, 0, 0])
    if not isinstance(times, list) or len(times) != 4:
        raise ValueError(f"Reference hit at index {idx} in {context}: 'collision_times' needs 4 values.")
    valid = item.get("valid", [False, False, False, False])
    if not isinstance(valid, list) or len(valid) != 4:
        raise ValueError(f"Reference hit at index {idx} in {context}: 'valid' needs 4 flags.")
    try:
        return ReferenceHit(
            orbit=int(item["orbit"]),
            bc=int(item["bc"]),
            collision_times=(int(times[0]), int(times[1]), int(times[2]), int(times[3])),
            valid=(bool(valid[0]), bool(valid[1]), bool(valid[2]), bool(valid[3])),
            trigger=int(item.get("trigger", 0)),
        )
    except KeyError as exc:
        raise ValueError(f"Reference hit at index {idx} in {context} misses field {exc}.") from exc


def _load_json(path: str | Path) -> dict[str, Any]:
    """Read and validate a JSON object document from disk."""
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"JSON document at {path} must be an object.")
    return data
