"""Error taxonomy for gpuquery."""

from __future__ import annotations


class GpuQueryError(Exception):
    """Base class for all gpuquery errors."""


class InitializationFailure(GpuQueryError):
    """NVML could not be reached, or no device exists at the requested index.

    Fatal: raised before any polling starts and mapped to a non-zero exit.
    """


class MetricsUnavailable(GpuQueryError):
    """A single poll query (utilization, memory, process list) failed.

    Recovered by the caller: the tick is skipped, nothing is rendered.
    """
