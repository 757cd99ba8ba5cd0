"""gpuquery — GPU utilization, memory and per-process usage in the terminal.

Subcommands are BaseCommand subclasses, one per module; importing the
module registers the command and its aliases.
"""

from gpuquery.base import BaseCommand

__version__ = "0.1.0"

REGISTRY: dict[str, type[BaseCommand]] = {}
ALIASES: dict[str, str] = {}


def register(cls: type[BaseCommand]) -> type[BaseCommand]:
    """Class decorator: add a command and its ``aliases`` to the registry."""
    if not cls.name:
        raise ValueError(f"{cls.__name__} has no command name")
    for key in (cls.name, *cls.aliases):
        owner = REGISTRY.get(resolve(key))
        if owner is not None and owner is not cls:
            raise ValueError(f"Command name {key!r} is already registered")
    REGISTRY[cls.name] = cls
    for alias in cls.aliases:
        ALIASES[alias] = cls.name
    return cls


def resolve(name: str) -> str:
    """Map an alias to its canonical command name."""
    return ALIASES.get(name, name)
