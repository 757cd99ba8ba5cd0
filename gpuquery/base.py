"""BaseCommand — shared plumbing for all gpuquery subcommands.

Handles: per-command argparse flags, ANSI cursor/clear primitives, and the
deadline-based watch loop with cooperative Ctrl+C cancellation.

Subclasses implement: name, help, add_args(), run().
"""

from __future__ import annotations

import signal
import sys
import threading
import time
from abc import ABC, abstractmethod
from argparse import ArgumentParser, Namespace
from typing import Callable, Optional, TextIO

from loguru import logger

# ---- terminal primitives ----

HIDE_CURSOR = "\033[?25l"
SHOW_CURSOR = "\033[?25h"
CURSOR_HOME = "\033[H"
CLEAR_SCREEN = "\033[2J"


class BaseCommand(ABC):
    """Abstract base for all subcommands.

    Lifecycle:
        1. add_args() contributes flags to the command's subparser
        2. __init__() receives parsed args and the opened collaborators
        3. run() does the work and returns the exit code
    """

    name: str = ""      # e.g. "query" — used by registry & CLI
    help: str = ""
    aliases: tuple[str, ...] = ()

    def __init__(self, args: Namespace, device, resolver,
                 out: Optional[TextIO] = None):
        self.args = args
        self.device = device
        self.resolver = resolver
        self.out = out if out is not None else sys.stdout
        # Set by the SIGINT handler, polled by the watch loop
        self.stop = threading.Event()

    # ---- subclass interface ----

    @classmethod
    def add_args(cls, parser: ArgumentParser) -> None:
        """Override to add command-specific CLI flags."""

    @abstractmethod
    def run(self) -> int:
        """Execute the command. Return the process exit code."""

    # ---- output ----

    def write(self, text: str) -> None:
        self.out.write(text)
        self.out.flush()

    # ---- watch loop ----

    def watch(self, frame: Callable[[], Optional[str]], interval_s: float) -> None:
        """Redraw ``frame()`` every ``interval_s`` until Ctrl+C.

        A ``None`` frame means the tick failed; the screen is left as is.
        """
        self.write(HIDE_CURSOR + CLEAR_SCREEN)

        def on_interrupt(signum, _frame):
            self.stop.set()

        previous = signal.signal(signal.SIGINT, on_interrupt)

        next_tick = time.monotonic()
        try:
            while not self.stop.is_set():
                next_tick += interval_s
                text = frame()
                if text is not None:
                    self.write(CURSOR_HOME + CLEAR_SCREEN + text)
                self.stop.wait(max(0, next_tick - time.monotonic()))
        finally:
            signal.signal(signal.SIGINT, previous)
            self.write(SHOW_CURSOR)
            logger.debug("Watch loop stopped")
