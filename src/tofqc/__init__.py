"""Public package exports for the TOF/FT0 event-time monitor."""

from .accumulator import DerivedQuantityAccumulator, pid_counter_specs
from .config import TaskConfig
from .counters import Axis, CounterSet, CounterSpec, Histogram
from .errors import (
    ConfigurationError,
    DataInconsistencyError,
    SourceConfigurationError,
    TofQcError,
)
from .evtime import (
    UNUSABLE_TIME_ERROR_PS,
    CombinatorialEventTimeMaker,
    EventTimeEstimate,
    EventTimeOracle,
)
from .grouping import iter_groups
from .matching import ReferenceWindowMatcher
from .models import (
    Batch,
    Group,
    ParticleHypothesis,
    ReferenceHit,
    SourceBlock,
    TofMatch,
    Track,
    TrackKinematics,
    TrackSelection,
)
from .pid import HypothesisLookup, HypothesisTable
from .selection import TrackSelector
from .task import BatchSummary, PidTimingTask

__all__ = [
    "Axis",
    "Batch",
    "BatchSummary",
    "CombinatorialEventTimeMaker",
    "ConfigurationError",
    "CounterSet",
    "CounterSpec",
    "DataInconsistencyError",
    "DerivedQuantityAccumulator",
    "EventTimeEstimate",
    "EventTimeOracle",
    "Group",
    "Histogram",
    "HypothesisLookup",
    "HypothesisTable",
    "ParticleHypothesis",
    "PidTimingTask",
    "ReferenceHit",
    "ReferenceWindowMatcher",
    "SourceBlock",
    "SourceConfigurationError",
    "TaskConfig",
    "TofMatch",
    "TofQcError",
    "Track",
    "TrackKinematics",
    "TrackSelection",
    "TrackSelector",
    "UNUSABLE_TIME_ERROR_PS",
    "iter_groups",
    "pid_counter_specs",
]
