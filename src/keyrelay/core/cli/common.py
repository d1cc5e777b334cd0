"""Shared setup logic for CLI commands."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click
from pydantic import ValidationError

from keyrelay.backends.modes import AuthMode, fallback_credential_for
from keyrelay.core.auth import GoogleOAuth
from keyrelay.core.config import Config
from keyrelay.core.config_schema import KeyRelayConfig, PathsConfig
from keyrelay.core.settings import ROTATION_SETTINGS_KEY, SettingScope, SettingsStore
from keyrelay.core.utils.logging import setup_logging
from keyrelay.rotation import CredentialRotationManager, Outcome

KEYRELAY_DIR = Path.home() / ".keyrelay"
CONFIG_PATH = KEYRELAY_DIR / "config.yaml"


def load_config(config_file: str | None = None) -> Config:
    return Config(config_file=config_file or str(CONFIG_PATH), data_dir=str(KEYRELAY_DIR))


def load_validated_config(config_file: str | None = None) -> KeyRelayConfig:
    """Typed config for commands that build a backend; bad sections exit non-zero."""
    try:
        return load_config(config_file).validated()
    except ValidationError as e:
        raise click.ClickException(f"Invalid keyrelay config: {e}")


def configure_logging(config_file: str | None, verbose: bool = False) -> None:
    config = load_config(config_file)
    level = "DEBUG" if verbose else config.get("logging.level", "WARNING")
    setup_logging(level=level, log_file=config.get("logging.file"))


def load_settings() -> SettingsStore:
    return SettingsStore()


def settings_scope(config: Config) -> SettingScope:
    return SettingScope(config.get("settings.scope", SettingScope.USER.value))


def build_oauth(paths: PathsConfig) -> GoogleOAuth | None:
    """GoogleOAuth over the configured client-secrets and token paths."""
    if paths.oauth_client_secrets is None:
        return None
    token_path = paths.oauth_token or paths.data_dir / "oauth_token.pickle"
    return GoogleOAuth(paths.oauth_client_secrets, token_path)


async def _open_manager(store: SettingsStore, scope: SettingScope) -> CredentialRotationManager:
    manager = await CredentialRotationManager.create(
        store.merged.get(ROTATION_SETTINGS_KEY) or {},
        fallback_credential=fallback_credential_for(AuthMode.OPENAI_COMPATIBLE),
        on_settings_update=store.rotation_callback(scope),
    )
    # Reading the current key persists a repaired pointer
    await manager.current_credential()
    return manager


def build_manager(store: SettingsStore, scope: SettingScope) -> CredentialRotationManager:
    """Fresh manager for one command, saving back into *scope*.

    A daily reset or a repaired pointer found while loading is written back
    before the command runs.
    """
    return asyncio.run(_open_manager(store, scope))


def echo_outcome(outcome: Outcome) -> None:
    """Print an outcome; error kinds exit non-zero."""
    if outcome.ok:
        click.echo(click.style(f"✓ {outcome.message}", fg="green"))
    elif outcome.is_error:
        click.echo(click.style(outcome.message, fg="red"), err=True)
        raise SystemExit(1)
    else:
        click.echo(click.style(outcome.message, fg="yellow"))
