"""Process name resolution — pid → display name, never raising."""

from __future__ import annotations

from pathlib import Path

import psutil
from loguru import logger

UNKNOWN_NAME = "unknown"


class ProcessTableResolver:
    """Looks pids up in a snapshot of the live OS process table.

    Call refresh() once per poll; lookups between refreshes hit the cache.
    """

    def __init__(self):
        self._names: dict[int, str] = {}

    def refresh(self) -> None:
        names = {}
        for proc in psutil.process_iter(["pid", "name"]):
            name = proc.info.get("name")
            if name:
                names[proc.info["pid"]] = name
        self._names = names
        logger.debug("Process table refreshed: {} processes", len(names))

    def __call__(self, pid: int) -> str:
        return self._names.get(pid, UNKNOWN_NAME)


class ProcfsResolver:
    """Reads /proc/<pid>/comm on every lookup."""

    def __init__(self, root: str | Path = "/proc"):
        self._root = Path(root)

    def refresh(self) -> None:
        pass

    def __call__(self, pid: int) -> str:
        try:
            name = (self._root / str(pid) / "comm").read_text(encoding="utf-8", errors="replace")
        except OSError:
            return UNKNOWN_NAME
        return name.strip() or UNKNOWN_NAME


def make_resolver(source: str = "table"):
    if source == "procfs":
        return ProcfsResolver()
    if source == "table":
        return ProcessTableResolver()
    raise ValueError(f"Unknown name source: {source}")
