"""
Scoped YAML settings store.

Each :class:`SettingScope` maps to one YAML file.  Reads go through the
``merged`` view (user < workspace < system, recursive merge); writes go to a
single scope with :meth:`SettingsStore.set_value`, mirroring the
read-modify-write surface the rotation manager expects from its host.

The store treats values as opaque.  The ``apiKeyRotation`` entry is owned by
:class:`keyrelay.rotation.manager.CredentialRotationManager`; the store only
round-trips it.

Usage::

    store = SettingsStore()
    rotation = store.merged.get(ROTATION_SETTINGS_KEY, {})
    manager = CredentialRotationManager(
        rotation,
        fallback_credential=os.environ.get("OPENAI_API_KEY"),
        on_settings_update=store.rotation_callback(SettingScope.USER),
    )
"""

from __future__ import annotations

import copy
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any

import aiofiles
import yaml
from loguru import logger

from .exceptions import SettingsError
from .types import PathLike, SaveCallback

ROTATION_SETTINGS_KEY = "apiKeyRotation"

SYSTEM_SETTINGS_ENV = "KEYRELAY_SYSTEM_SETTINGS_PATH"


class SettingScope(str, Enum):
    """Where a setting lives.  Later scopes override earlier ones."""

    USER = "user"
    WORKSPACE = "workspace"
    SYSTEM = "system"


def default_settings_paths(workspace_dir: PathLike | None = None) -> dict[SettingScope, Path]:
    """Return the conventional settings file for each scope."""
    workspace = Path(workspace_dir) if workspace_dir else Path.cwd()
    paths = {
        SettingScope.USER: Path.home() / ".keyrelay" / "settings.yaml",
        SettingScope.WORKSPACE: workspace / ".keyrelay" / "settings.yaml",
    }
    system_path = os.environ.get(SYSTEM_SETTINGS_ENV)
    if system_path:
        paths[SettingScope.SYSTEM] = Path(system_path).expanduser()
    return paths


def _merge(target: dict, source: dict) -> None:
    for key, value in source.items():
        if key in target and isinstance(target[key], dict) and isinstance(value, dict):
            _merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


class SettingsStore:
    """Per-scope YAML files with a merged read view."""

    _MERGE_ORDER = (SettingScope.USER, SettingScope.WORKSPACE, SettingScope.SYSTEM)

    def __init__(self, paths: dict[SettingScope, PathLike] | None = None):
        resolved = paths if paths is not None else default_settings_paths()
        self.paths: dict[SettingScope, Path] = {
            SettingScope(scope): Path(p).expanduser() for scope, p in resolved.items()
        }
        self._data: dict[SettingScope, dict[str, Any]] = {scope: self._load(path) for scope, path in self.paths.items()}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def _load(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise SettingsError(f"Could not read settings from {path}: {e}") from e
        if not isinstance(data, dict):
            logger.warning(f"Ignoring settings file {path}: top level is not a mapping")
            return {}
        return data

    @property
    def merged(self) -> dict[str, Any]:
        """A deep-copied merge of every scope, highest precedence last."""
        result: dict[str, Any] = {}
        for scope in self._MERGE_ORDER:
            if scope in self._data:
                _merge(result, self._data[scope])
        return result

    def for_scope(self, scope: SettingScope) -> dict[str, Any]:
        return copy.deepcopy(self._data.get(scope, {}))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _require_path(self, scope: SettingScope) -> Path:
        path = self.paths.get(scope)
        if path is None:
            raise SettingsError(f"No settings file configured for scope '{scope.value}'")
        return path

    def set_value(self, scope: SettingScope, key: str, value: Any) -> None:
        """Set a top-level *key* in *scope* and write that scope's file."""
        path = self._require_path(scope)
        self._data.setdefault(scope, {})[key] = copy.deepcopy(value)
        self._write(path, self._data[scope])

    @staticmethod
    def _write(path: Path, data: dict[str, Any]) -> None:
        """Atomic write: temp file + rename so a kill can't corrupt."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                yaml.safe_dump(data, f, sort_keys=False)
            os.replace(tmp, path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

    async def save_async(self, scope: SettingScope) -> None:
        """Write *scope* without blocking the event loop."""
        path = self._require_path(scope)
        path.parent.mkdir(parents=True, exist_ok=True)
        text = yaml.safe_dump(self._data.get(scope, {}), sort_keys=False)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            async with aiofiles.open(tmp, "w") as f:
                await f.write(text)
            os.replace(tmp, path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

    def rotation_callback(self, scope: SettingScope = SettingScope.USER) -> SaveCallback:
        """Build the async save hook for a rotation manager.

        The returned coroutine function stores the snapshot under
        ``apiKeyRotation`` in *scope* and writes the file.
        """

        async def _save(snapshot: dict[str, Any]) -> None:
            self._data.setdefault(scope, {})[ROTATION_SETTINGS_KEY] = copy.deepcopy(snapshot)
            await self.save_async(scope)
            logger.debug(f"Rotation settings written to {scope.value} scope")

        return _save
