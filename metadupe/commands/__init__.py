"""Command registration for the metadupe CLI."""
from __future__ import annotations

from typing import Iterable

from . import dedupe

COMMAND_MODULES: Iterable = (dedupe,)

__all__ = ["COMMAND_MODULES"]
