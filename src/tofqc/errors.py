"""Exception hierarchy for configuration and input-data failures."""

from __future__ import annotations


class TofQcError(ValueError):
    """Base class for all errors raised by the monitoring engine."""


class ConfigurationError(TofQcError):
    """Task parameters cannot be interpreted; processing must not start."""


class SourceConfigurationError(ConfigurationError):
    """Requested track-source combination is unknown or inconsistent."""


class DataInconsistencyError(TofQcError):
    """Two batch inputs expected to correspond 1:1 have different sizes."""
