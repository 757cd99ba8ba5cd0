"""info — static identity of the selected GPU."""

from __future__ import annotations

from gpuquery import register
from gpuquery.base import BaseCommand
from gpuquery.snapshot import to_mib


@register
class InfoCommand(BaseCommand):
    name = "info"
    help = "Display GPU info"
    aliases = ("i",)

    def run(self) -> int:
        # MetricsUnavailable propagates: a failed info query is fatal
        info = self.device.static_info()
        self.write(
            f"{'Brand':<16}: {info.brand}\n"
            f"{'Name':<16}: {info.name}\n"
            f"{'Power Limit':<16}: {info.power_limit_w} (watts)\n"
            f"{'Total GPU Memory':<16}: {to_mib(info.memory_total)} (MiB)\n"
        )
        return 0
