"""query — utilization, memory and per-process GPU memory, once or live."""

from __future__ import annotations

from argparse import ArgumentParser
from typing import Optional

from loguru import logger

from gpuquery import register
from gpuquery.base import BaseCommand
from gpuquery.config import clamp_interval, default_interval, interval
from gpuquery.errors import MetricsUnavailable
from gpuquery.snapshot import take_snapshot


@register
class QueryCommand(BaseCommand):
    name = "query"
    help = "Get GPU metrics"
    aliases = ("q",)

    @classmethod
    def add_args(cls, parser: ArgumentParser) -> None:
        parser.add_argument("-w", "--watch", action="store_true",
                            help="Watch for GPU metric changes")
        parser.add_argument("--interval", type=interval, default=default_interval(),
                            help="Refresh interval in seconds for --watch (default: 1)")

    def frame(self) -> Optional[str]:
        """One report, or None if any device query failed this tick."""
        self.resolver.refresh()
        try:
            snapshot = take_snapshot(self.device, self.resolver)
        except MetricsUnavailable as exc:
            logger.debug("Skipping tick: {}", exc)
            return None
        return snapshot.render()

    def run(self) -> int:
        if self.args.watch:
            self.watch(self.frame, clamp_interval(self.args.interval))
            return 0

        text = self.frame()
        if text is not None:
            self.write(text)
        return 0
