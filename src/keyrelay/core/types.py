"""Shared type aliases used across keyrelay."""

from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

# Config value types
ConfigDict = dict[str, Any]

# Path types
PathLike = str | Path

# Async persistence hook handed to the rotation manager
SaveCallback = Callable[[dict[str, Any]], Awaitable[None]]
