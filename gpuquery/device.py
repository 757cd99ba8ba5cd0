"""GPU telemetry collaborators — NVML via nvidia-ml-py, plus a mock device."""

from __future__ import annotations

import os
import random
from dataclasses import dataclass

from loguru import logger

from gpuquery.errors import InitializationFailure, MetricsUnavailable
from gpuquery.snapshot import MIB, MemorySample, ProcessReading

# nvmlBrandType_t values
BRAND_NAMES = {
    0: "Unknown",
    1: "Quadro",
    2: "Tesla",
    3: "NVS",
    4: "GRID",
    5: "GeForce",
    6: "Titan",
    7: "VApps",
    8: "VPC",
    9: "VCS",
    10: "VWS",
    11: "CloudGaming",
    12: "QuadroRTX",
    13: "NvidiaRTX",
    14: "Nvidia",
    15: "GeForceRTX",
    16: "TitanRTX",
}


@dataclass(frozen=True)
class DeviceInfo:
    brand: str
    name: str
    power_limit_mw: int
    memory_total: int

    @property
    def power_limit_w(self) -> int:
        return self.power_limit_mw // 1000


def brand_name(brand: int) -> str:
    return BRAND_NAMES.get(brand, f"Brand({brand})")


class NvmlDevice:
    """One GPU, addressed by index, queried through pynvml.

    Lifecycle:
        1. open() initializes NVML and resolves the handle
        2. the query methods are called each tick
        3. close() shuts NVML down
    """

    def __init__(self, index: int = 0):
        self.index = index
        self._pynvml = None
        self._handle = None

    def open(self) -> "NvmlDevice":
        try:
            import pynvml
        except ImportError as exc:
            raise InitializationFailure(f"NVML bindings are not installed: {exc}") from exc

        try:
            pynvml.nvmlInit()
        except pynvml.NVMLError as exc:
            raise InitializationFailure(f"Failed to initialize NVML: {exc}") from exc

        try:
            self._handle = pynvml.nvmlDeviceGetHandleByIndex(self.index)
        except pynvml.NVMLError as exc:
            pynvml.nvmlShutdown()
            raise InitializationFailure(f"No GPU at index {self.index}: {exc}") from exc

        self._pynvml = pynvml
        logger.debug("NVML initialized for GPU {}", self.index)
        return self

    def close(self) -> None:
        if self._pynvml is None:
            return
        try:
            self._pynvml.nvmlShutdown()
        except self._pynvml.NVMLError as exc:
            logger.debug("NVML shutdown failed: {}", exc)
        finally:
            self._pynvml = None
            self._handle = None

    def __enter__(self) -> "NvmlDevice":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _call(self, fn_name: str):
        if self._pynvml is None:
            raise MetricsUnavailable("NVML device is not open")
        fn = getattr(self._pynvml, fn_name)
        try:
            return fn(self._handle)
        except self._pynvml.NVMLError as exc:
            raise MetricsUnavailable(f"{fn_name} failed: {exc}") from exc

    # ---- telemetry ----

    def overall_utilization(self) -> int:
        return int(self._call("nvmlDeviceGetUtilizationRates").gpu)

    def memory_info(self) -> MemorySample:
        info = self._call("nvmlDeviceGetMemoryInfo")
        return MemorySample(total=int(info.total), used=int(info.used), free=int(info.free))

    def running_compute_processes(self) -> list[ProcessReading]:
        return self._readings(self._call("nvmlDeviceGetComputeRunningProcesses"))

    def running_graphics_processes(self) -> list[ProcessReading]:
        return self._readings(self._call("nvmlDeviceGetGraphicsRunningProcesses"))

    def static_info(self) -> DeviceInfo:
        name = self._call("nvmlDeviceGetName")
        if isinstance(name, bytes):
            name = name.decode("utf-8", errors="replace")
        return DeviceInfo(
            brand=brand_name(int(self._call("nvmlDeviceGetBrand"))),
            name=name,
            power_limit_mw=int(self._call("nvmlDeviceGetEnforcedPowerLimit")),
            memory_total=self.memory_info().total,
        )

    @staticmethod
    def _readings(procs) -> list[ProcessReading]:
        # usedGpuMemory is None when the driver cannot attribute memory (e.g. WDDM)
        return [
            ProcessReading(pid=int(p.pid),
                           used_memory=None if p.usedGpuMemory is None else int(p.usedGpuMemory))
            for p in procs
        ]


class MockDevice:
    """Random test data, no GPU needed."""

    TOTAL = 8192 * MIB

    def __init__(self, index: int = 0):
        self.index = index

    def open(self) -> "MockDevice":
        return self

    def close(self) -> None:
        pass

    def __enter__(self) -> "MockDevice":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def overall_utilization(self) -> int:
        return random.randint(20, 80)

    def memory_info(self) -> MemorySample:
        used = random.randint(1024, 6144) * MIB
        return MemorySample(total=self.TOTAL, used=used, free=self.TOTAL - used)

    def running_compute_processes(self) -> list[ProcessReading]:
        return [ProcessReading(pid=os.getpid(), used_memory=random.randint(64, 1024) * MIB)]

    def running_graphics_processes(self) -> list[ProcessReading]:
        return [
            ProcessReading(pid=os.getpid(), used_memory=random.randint(1, 32) * MIB),
            ProcessReading(pid=os.getppid(), used_memory=None),
        ]

    def static_info(self) -> DeviceInfo:
        return DeviceInfo(brand="GeForce", name="Mock GPU", power_limit_mw=250000,
                          memory_total=self.TOTAL)


def open_device(index: int = 0, mock: bool = False):
    """Return an opened device; raises InitializationFailure."""
    cls = MockDevice if mock else NvmlDevice
    return cls(index).open()
