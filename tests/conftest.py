"""Shared fakes for the gpuquery tests."""

import pytest

from gpuquery.device import DeviceInfo
from gpuquery.errors import MetricsUnavailable
from gpuquery.snapshot import MIB, MemorySample, ProcessReading


class FakeDevice:
    """Fixed readings; mirrors the NvmlDevice query surface."""

    def __init__(self, utilization=42, memory=None, compute=(), graphics=(), info=None):
        self.utilization = utilization
        self.memory = memory or MemorySample(total=8192 * MIB, used=4096 * MIB, free=4096 * MIB)
        self.compute = list(compute)
        self.graphics = list(graphics)
        self.info = info or DeviceInfo(brand="GeForce", name="NVIDIA GeForce RTX 3080",
                                       power_limit_mw=320000, memory_total=10240 * MIB)
        self.closed = False

    def overall_utilization(self):
        return self.utilization

    def memory_info(self):
        return self.memory

    def running_compute_processes(self):
        return list(self.compute)

    def running_graphics_processes(self):
        return list(self.graphics)

    def static_info(self):
        return self.info

    def close(self):
        self.closed = True


class FailingDevice(FakeDevice):
    """One query (memory by default) raises; the others answer normally."""

    def __init__(self, failing="memory_info", **kwargs):
        super().__init__(**kwargs)
        self.failing = failing

    def _check(self, query):
        if query == self.failing:
            raise MetricsUnavailable(f"{query} failed: GPU is lost")

    def overall_utilization(self):
        self._check("overall_utilization")
        return super().overall_utilization()

    def memory_info(self):
        self._check("memory_info")
        return super().memory_info()

    def running_compute_processes(self):
        self._check("running_compute_processes")
        return super().running_compute_processes()

    def running_graphics_processes(self):
        self._check("running_graphics_processes")
        return super().running_graphics_processes()

    def static_info(self):
        raise MetricsUnavailable("nvmlDeviceGetName failed: GPU is lost")


class DictResolver:
    def __init__(self, names=None):
        self.names = dict(names or {})
        self.refreshes = 0

    def refresh(self):
        self.refreshes += 1

    def __call__(self, pid):
        return self.names.get(pid, "unknown")


@pytest.fixture
def device():
    return FakeDevice(compute=[ProcessReading(pid=100, used_memory=1 * MIB)])


@pytest.fixture
def resolver():
    return DictResolver({100: "render"})
