"""Telemetry snapshot — point-in-time GPU report built from raw device facts.

Handles: merging the compute and graphics process lists, byte → MiB
conversion, name resolution, deterministic row ordering, and the
fixed-width text report.

Everything here is a pure function of its inputs, apart from the
``resolve_name`` callable supplied by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional

from gpuquery.errors import GpuQueryError, MetricsUnavailable

MIB = 1024 * 1024

RULE = "-" * 27
NO_PROCESSES = "(No active GPU processes)"
ROW_FMT = "{:<8} {:<24} {:<16}\n"


def to_mib(num_bytes: Optional[int]) -> int:
    """Truncating byte → MiB conversion; ``None`` (unavailable) is 0."""
    if num_bytes is None:
        return 0
    return num_bytes // MIB


# ---- raw samples ----

@dataclass(frozen=True)
class UtilizationSample:
    gpu: int


@dataclass(frozen=True)
class MemorySample:
    """Device memory in bytes, as reported by the driver."""
    total: int
    used: int
    free: int

    @property
    def total_mib(self) -> int:
        return to_mib(self.total)

    @property
    def used_mib(self) -> int:
        return to_mib(self.used)

    @property
    def free_mib(self) -> int:
        return to_mib(self.free)


@dataclass(frozen=True)
class ProcessReading:
    """One row of a driver process list. ``used_memory`` is bytes or None."""
    pid: int
    used_memory: Optional[int]


@dataclass(frozen=True)
class ProcessMemoryEntry:
    pid: int
    name: str
    used_mib: int


# ---- process table ----

class ProcessMemoryTable:
    """Ordered pid → reading map with insert-if-absent semantics."""

    def __init__(self) -> None:
        self._readings: dict[int, Optional[int]] = {}

    def add(self, pid: int, reading: Optional[int]) -> bool:
        """Insert ``reading`` unless ``pid`` is already present."""
        if pid in self._readings:
            return False
        self._readings[pid] = reading
        return True

    def get(self, pid: int) -> Optional[int]:
        return self._readings.get(pid)

    def items(self) -> Iterator[tuple[int, Optional[int]]]:
        return iter(self._readings.items())

    def __contains__(self, pid: object) -> bool:
        return pid in self._readings

    def __len__(self) -> int:
        return len(self._readings)


def merge_processes(compute: Iterable[ProcessReading],
                    graphics: Iterable[ProcessReading]) -> ProcessMemoryTable:
    """Compute readings first; graphics only fills in pids not yet seen."""
    table = ProcessMemoryTable()
    for proc in compute:
        table.add(proc.pid, proc.used_memory)
    for proc in graphics:
        table.add(proc.pid, proc.used_memory)
    return table


# ---- snapshot ----

@dataclass(frozen=True)
class Snapshot:
    utilization: UtilizationSample
    memory: MemorySample
    processes: tuple[ProcessMemoryEntry, ...]

    def render(self) -> str:
        return render_report(self)


def build_snapshot(utilization_percent: int,
                   memory: MemorySample,
                   compute_processes: Iterable[ProcessReading],
                   graphics_processes: Iterable[ProcessReading],
                   resolve_name: Callable[[int], str]) -> Snapshot:
    table = merge_processes(compute_processes, graphics_processes)
    rows = [
        ProcessMemoryEntry(pid=pid, name=resolve_name(pid), used_mib=to_mib(reading))
        for pid, reading in table.items()
    ]
    # sorted() is stable, so case-insensitive ties keep merge order
    rows = sorted(rows, key=lambda row: row.name.lower())
    return Snapshot(
        utilization=UtilizationSample(gpu=utilization_percent),
        memory=memory,
        processes=tuple(rows),
    )


def render_report(snapshot: Snapshot) -> str:
    mem = snapshot.memory
    lines = [
        f"Overall GPU utilization: {snapshot.utilization.gpu}%\n",
        f"{RULE}\n\n",
        f"GPU Memory Usage: {mem.used_mib} MiB used / {mem.total_mib} MiB total "
        f"({mem.free_mib} MiB free)\n",
        f"{RULE}\n\n",
        "Processes using GPU memory:\n",
        f"{RULE}\n\n",
        ROW_FMT.format("PID", "NAME", "GPU Memory (MiB)"),
    ]
    if snapshot.processes:
        lines.extend(ROW_FMT.format(p.pid, p.name, p.used_mib) for p in snapshot.processes)
    else:
        lines.append(f"{NO_PROCESSES}\n")
    return "".join(lines)


def take_snapshot(device, resolve_name: Callable[[int], str]) -> Snapshot:
    """Query ``device`` once and build a snapshot; all-or-nothing.

    Raises MetricsUnavailable if any query fails, so callers never see a
    partially populated report.
    """
    try:
        utilization = device.overall_utilization()
        memory = device.memory_info()
        compute = device.running_compute_processes()
        graphics = device.running_graphics_processes()
    except MetricsUnavailable:
        raise
    except GpuQueryError as exc:
        raise MetricsUnavailable(str(exc)) from exc
    return build_snapshot(utilization, memory, compute, graphics, resolve_name)
