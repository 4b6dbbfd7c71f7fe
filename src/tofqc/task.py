"""Lifecycle facade running the timing engine batch by batch.

`PidTimingTask` owns the counters and wires the engine stages:
selection -> time sort -> grouping -> reference matching -> event time ->
accumulation. Hooks mirror the host lifecycle (activity and cycle
boundaries); only `start_of_activity` and `reset` touch the counters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from .accumulator import DerivedQuantityAccumulator, pid_counter_specs
from .config import TaskConfig
from .counters import CounterSet, Histogram
from .evtime import CombinatorialEventTimeMaker, EventTimeOracle
from .grouping import iter_groups
from .matching import ReferenceWindowMatcher
from .models import Batch, Track, sort_by_time
from .pid import DEFAULT_TABLE, HypothesisLookup
from .selection import DcaProvider, TrackSelector, assemble_tracks, stored_dca
from .sources import enabled_tof_sources, format_mask

logger = logging.getLogger(__name__)

PUBLISHING_SOURCE = "ITS-TPC-TOF"


@dataclass(frozen=True)
class BatchSummary:
    """Bookkeeping of one processed batch."""

    batch_index: int
    n_tracks: int
    n_selected: int
    n_groups: int
    n_usable_groups: int
    n_reference_hits: int
    n_candidates: int


class PidTimingTask:
    """TOF PID timing monitor with optional FT0 coincidence."""

    def __init__(
        self,
        config: TaskConfig | None = None,
        oracle: EventTimeOracle | None = None,
        table: HypothesisLookup = DEFAULT_TABLE,
        dca_provider: DcaProvider = stored_dca,
    ) -> None:
        logger.info("Initializing...")
        self.config = config or TaskConfig()
        self.table = table
        self.oracle: EventTimeOracle = oracle or CombinatorialEventTimeMaker(table=table)
        self.selector = TrackSelector(cuts=self.config.selection(), dca_provider=dca_provider)
        self.counters = CounterSet.from_specs(pid_counter_specs())
        self.accumulator = DerivedQuantityAccumulator(
            self.counters,
            self.oracle,
            table=table,
            use_reference=self.config.use_ft0,
        )
        self.n_batches = 0
        logger.info(
            "Initialized: sources=%s useFT0=%s counters=%d",
            format_mask(self.config.sources),
            self.config.use_ft0,
            len(self.counters),
        )

    @classmethod
    def from_parameters(cls, params: Mapping[str, str] | None = None, **kwargs) -> "PidTimingTask":
        return cls(TaskConfig.from_parameters(params), **kwargs)

    def start_of_activity(self, activity_id: int | str | None = None) -> None:
        logger.info("startOfActivity %s", activity_id)
        self.reset()

    def start_of_cycle(self) -> None:
        logger.info("startOfCycle")

    def end_of_cycle(self) -> None:
        logger.info("endOfCycle")

    def end_of_activity(self, activity_id: int | str | None = None) -> None:
        logger.info("endOfActivity %s", activity_id)

    def reset(self) -> None:
        self.counters.reset()

    def published_counters(self) -> list[Histogram]:
        """Counters exposed to the host; none unless ITS-TPC-TOF is requested."""
        if PUBLISHING_SOURCE not in self.config.sources:
            return []
        return list(self.counters)

    def collect_tracks(self, batch: Batch) -> tuple[list[Track], int]:
        """Assemble and select tracks of all enabled TOF sources.

        Returns the selected tracks and the number of tracks read. Every source
        is checked for consistency before any track is selected.
        """
        assembled: list[Track] = []
        for source in enabled_tof_sources(self.config.sources):
            block = batch.sources.get(source)
            if block is None:
                continue
            assembled.extend(assemble_tracks(source, block, n_hypotheses=len(self.table.names)))
        return self.selector.filter(assembled), len(assembled)

    def process_batch(self, batch: Batch) -> BatchSummary:
        """Run the full engine on one batch.

        `DataInconsistencyError` aborts the batch before counters are filled.
        """
        index = self.n_batches
        self.n_batches += 1
        logger.info("Processing batch %d%s", index, f" ({batch.batch_id})" if batch.batch_id else "")

        selected, n_read = self.collect_tracks(batch)
        tracks = sort_by_time(selected)

        matcher: ReferenceWindowMatcher | None = None
        if self.config.use_ft0:
            hits = batch.reference_hits
            if hits is None:
                logger.warning("FT0 rec points requested but not present in batch %d", index)
                hits = ()
            matcher = ReferenceWindowMatcher(hits, first_orbit=batch.first_orbit)
            logger.info("FT0 rec points loaded, size = %d", len(matcher))
        else:
            logger.info("FT0 rec points NOT available")

        n_groups = 0
        n_usable = 0
        n_candidates = 0
        for group in iter_groups(tracks):
            candidates = matcher.match(group) if matcher is not None else []
            outcome = self.accumulator.process_group(group, candidates)
            n_groups += 1
            n_candidates += outcome.n_candidates
            if outcome.usable:
                n_usable += 1

        summary = BatchSummary(
            batch_index=index,
            n_tracks=n_read,
            n_selected=len(tracks),
            n_groups=n_groups,
            n_usable_groups=n_usable,
            n_reference_hits=len(matcher) if matcher is not None else 0,
            n_candidates=n_candidates,
        )
        logger.info(
            "Processed batch %d: %d/%d tracks selected, %d groups (%d usable), %d FT0 candidates",
            index,
            summary.n_selected,
            summary.n_tracks,
            summary.n_groups,
            summary.n_usable_groups,
            summary.n_candidates,
        )
        return summary
