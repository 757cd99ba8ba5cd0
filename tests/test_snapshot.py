"""Tests for the telemetry snapshot builder."""

import pytest

from gpuquery.errors import MetricsUnavailable
from gpuquery.snapshot import (
    MIB,
    NO_PROCESSES,
    MemorySample,
    ProcessMemoryTable,
    ProcessReading,
    build_snapshot,
    merge_processes,
    take_snapshot,
    to_mib,
)

from conftest import DictResolver, FailingDevice, FakeDevice

MEMORY = MemorySample(total=8589934592, used=4294967296, free=4294967296)


@pytest.mark.parametrize("num_bytes, expected", [
    (0, 0),
    (1048575, 0),
    (1048576, 1),
    (2097151, 1),
    (2097152, 2),
    (8589934592, 8192),
    (None, 0),
])
def test_to_mib_truncates(num_bytes, expected):
    assert to_mib(num_bytes) == expected


def test_memory_sample_mib_properties():
    mem = MemorySample(total=3 * MIB + 5, used=MIB - 1, free=2 * MIB)
    assert (mem.total_mib, mem.used_mib, mem.free_mib) == (3, 0, 2)


def test_table_insert_if_absent():
    table = ProcessMemoryTable()
    assert table.add(7, 100)
    assert not table.add(7, 200)
    assert table.get(7) == 100
    assert 7 in table
    assert len(table) == 1


def test_merge_compute_reading_wins():
    table = merge_processes(
        [ProcessReading(pid=1, used_memory=10 * MIB)],
        [ProcessReading(pid=1, used_memory=99 * MIB), ProcessReading(pid=2, used_memory=3 * MIB)],
    )
    assert list(table.items()) == [(1, 10 * MIB), (2, 3 * MIB)]


def test_merge_duplicate_pid_within_one_list_keeps_first():
    table = merge_processes(
        [ProcessReading(pid=4, used_memory=2 * MIB), ProcessReading(pid=4, used_memory=6 * MIB)],
        [],
    )
    assert list(table.items()) == [(4, 2 * MIB)]


def test_merge_keeps_unavailable_compute_reading():
    table = merge_processes(
        [ProcessReading(pid=1, used_memory=None)],
        [ProcessReading(pid=1, used_memory=5 * MIB)],
    )
    assert table.get(1) is None


def test_sort_case_insensitive_and_stable():
    compute = [
        ProcessReading(pid=1, used_memory=MIB),
        ProcessReading(pid=2, used_memory=MIB),
        ProcessReading(pid=3, used_memory=MIB),
    ]
    names = DictResolver({1: "beta", 2: "Alpha", 3: "alpha"})
    snapshot = build_snapshot(10, MEMORY, compute, [], names)
    assert [p.name for p in snapshot.processes] == ["Alpha", "alpha", "beta"]

    # reversed merge order flips the case-insensitive tie
    snapshot = build_snapshot(10, MEMORY, list(reversed(compute)), [], names)
    assert [p.name for p in snapshot.processes] == ["alpha", "Alpha", "beta"]


def test_render_is_idempotent(resolver):
    args = (42, MEMORY, [ProcessReading(pid=100, used_memory=MIB)], [], resolver)
    assert build_snapshot(*args).render() == build_snapshot(*args).render()


def test_empty_table_placeholder():
    report = build_snapshot(0, MEMORY, [], [], DictResolver()).render()
    lines = report.splitlines()
    assert NO_PROCESSES in lines
    assert lines[-1] == NO_PROCESSES
    assert lines[-2].startswith("PID      NAME")


def test_unavailable_reading_renders_zero():
    snapshot = build_snapshot(5, MEMORY, [], [ProcessReading(pid=9, used_memory=None)],
                              DictResolver({9: "Xorg"}))
    assert snapshot.processes[0].used_mib == 0
    assert snapshot.render().splitlines()[-1].rstrip() == "9        Xorg                     0"


def test_unresolved_name_uses_sentinel():
    snapshot = build_snapshot(5, MEMORY, [ProcessReading(pid=9, used_memory=MIB)], [],
                              DictResolver())
    assert snapshot.processes[0].name == "unknown"


def test_end_to_end_report(resolver):
    snapshot = build_snapshot(42, MEMORY, [ProcessReading(pid=100, used_memory=1048576)], [],
                              resolver)
    assert snapshot.render() == (
        "Overall GPU utilization: 42%\n"
        "---------------------------\n"
        "\n"
        "GPU Memory Usage: 4096 MiB used / 8192 MiB total (4096 MiB free)\n"
        "---------------------------\n"
        "\n"
        "Processes using GPU memory:\n"
        "---------------------------\n"
        "\n"
        "PID      NAME                     GPU Memory (MiB)\n"
        "100      render                   1               \n"
    )


def test_long_names_are_not_truncated():
    name = "a-very-long-process-name-exceeding-columns"
    snapshot = build_snapshot(1, MEMORY, [ProcessReading(pid=1, used_memory=MIB)], [],
                              DictResolver({1: name}))
    assert f"1        {name} 1" in snapshot.render()


def test_take_snapshot(device, resolver):
    snapshot = take_snapshot(device, resolver)
    assert snapshot.utilization.gpu == 42
    assert [(p.pid, p.name, p.used_mib) for p in snapshot.processes] == [(100, "render", 1)]


QUERIES = [
    "overall_utilization",
    "memory_info",
    "running_compute_processes",
    "running_graphics_processes",
]


@pytest.mark.parametrize("failing", QUERIES)
def test_take_snapshot_failure_raises(failing):
    device = FailingDevice(failing, compute=[ProcessReading(pid=1, used_memory=MIB)])
    with pytest.raises(MetricsUnavailable, match=failing):
        take_snapshot(device, DictResolver({1: "python"}))


def test_take_snapshot_merges_device_lists():
    device = FakeDevice(
        compute=[ProcessReading(pid=1, used_memory=2 * MIB)],
        graphics=[ProcessReading(pid=1, used_memory=8 * MIB), ProcessReading(pid=2, used_memory=None)],
    )
    snapshot = take_snapshot(device, DictResolver({1: "python", 2: "Xorg"}))
    assert [(p.name, p.used_mib) for p in snapshot.processes] == [("python", 2), ("Xorg", 0)]
