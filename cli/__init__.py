"""CLI package for running the analytics against exported sensor feeds."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# The Typer application lives in ``cli.app``; keeping the package root free of
# it lets tests patch attributes on the module path.

__all__ = []
