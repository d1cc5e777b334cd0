"""keyrelay keys — inspect and manage the API key rotation pool."""

from __future__ import annotations

import asyncio
import os
from typing import Any

import click

from keyrelay.rotation import is_rate_limit_error, mask_credential

_USAGE_HINT = (
    "Available commands:\n"
    "  keyrelay keys add <key>         Add new API key\n"
    "  keyrelay keys remove <preview>  Remove API key\n"
    "  keyrelay keys rotate            Manually rotate to next key\n"
    "  keyrelay keys test              Test all keys for rate limits\n"
    "  keyrelay keys toggle            Enable/disable auto-rotation"
)


def _config():
    from keyrelay.core.cli.common import load_config

    ctx = click.get_current_context()
    return load_config((ctx.find_root().obj or {}).get("config_file"))


def _manager():
    from keyrelay.core.cli.common import build_manager, load_settings, settings_scope

    return build_manager(load_settings(), settings_scope(_config()))


def describe_key_error(error: Any) -> tuple[str, str]:
    """Map a test-request failure to ``(label, detail)`` for display."""
    message = str(error)
    lowered = message.lower()
    first_line = message.split("\n")[0]
    if is_rate_limit_error(error) or "quota" in lowered:
        return "rate limited", first_line
    if "401" in lowered or "unauthorized" in lowered or "authentication" in lowered:
        return "invalid key", "Authentication failed"
    if "timeout" in lowered or "timed out" in lowered:
        return "timeout", "Request timed out"
    return "error", first_line[:60]


@click.group(invoke_without_command=True)
@click.pass_context
def keys(ctx: click.Context) -> None:
    """Manage API key rotation for rate-limit handling."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(status)


@keys.command()
def status() -> None:
    """Show current API key rotation status."""
    manager = _manager()
    info = manager.status()

    if info.total_keys == 0:
        click.echo(click.style("No API keys configured for rotation.", fg="yellow"))
        click.echo("\nAdd keys with `keyrelay keys add <your-api-key>`, or set CEREBRAS_API_KEY.")
        return

    click.echo(click.style("API Key Rotation Status", fg="green", bold=True))
    click.echo(f"  Total keys:    {info.total_keys}")
    click.echo(f"  Current key:   {info.current_key_preview} (index {info.current_index})")
    auto = click.style("Enabled", fg="green") if info.auto_rotate_enabled else click.style("Disabled", fg="yellow")
    click.echo(f"  Auto-rotation: {auto}")

    if info.daily_usage:
        click.echo(click.style("\nDaily Usage:", fg="cyan"))
        for key_id, usage in info.daily_usage.items():
            click.echo(f"  Key ...{key_id}: {usage['requests']} requests ({usage['date']})")

    click.echo("\n" + _USAGE_HINT)


@keys.command()
@click.argument("api_key")
def add(api_key: str) -> None:
    """Add a new API key to rotation."""
    from keyrelay.core.cli.common import echo_outcome

    manager = _manager()
    outcome = asyncio.run(manager.add_credential(api_key))
    echo_outcome(outcome)
    if outcome.ok:
        click.echo(f"  Total keys in rotation: {manager.status().total_keys}")


@keys.command()
@click.argument("preview")
def remove(preview: str) -> None:
    """Remove an API key by its trailing characters (see `keys status`)."""
    from keyrelay.core.cli.common import echo_outcome

    manager = _manager()
    echo_outcome(asyncio.run(manager.remove_credential(preview)))


@keys.command()
def rotate() -> None:
    """Manually rotate to the next API key."""
    from keyrelay.core.cli.common import echo_outcome

    manager = _manager()
    echo_outcome(asyncio.run(manager.rotate_to_next()))
    info = manager.status()
    click.echo(f"  Current key: {info.current_key_preview} ({info.current_index + 1} of {info.total_keys})")


@keys.command()
def toggle() -> None:
    """Enable/disable automatic rotation on rate limits."""
    manager = _manager()
    enabled = not manager.auto_rotate
    asyncio.run(manager.update_settings({"autoRotateOnRateLimit": enabled}))

    if enabled:
        click.echo(click.style("✓ Auto-rotation enabled", fg="green"))
        click.echo("API keys will switch automatically when rate limits are detected.")
    else:
        click.echo(click.style("✓ Auto-rotation disabled", fg="yellow"))
        click.echo("Rotate keys manually with `keyrelay keys rotate`.")


@keys.command()
@click.option("--model", default=None, help="Model to send the test prompt to.")
@click.option("--timeout", default=5, show_default=True, help="Seconds to wait per key.")
def test(model: str | None, timeout: int) -> None:
    """Send a tiny request with every key and report which ones work."""
    from keyrelay.backends.base import import_litellm, qualify_model
    from keyrelay.backends.modes import DEFAULT_MODEL, DEFAULT_OPENAI_BASE_URL

    manager = _manager()
    all_keys = manager.available_credentials()
    if not all_keys:
        click.echo("No API keys available to test.", err=True)
        raise SystemExit(1)

    litellm = import_litellm()
    base_url = os.environ.get("CEREBRAS_BASE_URL") or os.environ.get("OPENAI_BASE_URL") or DEFAULT_OPENAI_BASE_URL
    model = (
        model
        or _config().get("backend.model")
        or os.environ.get("CEREBRAS_MODEL")
        or os.environ.get("OPENAI_MODEL")
        or DEFAULT_MODEL
    )

    click.echo(click.style("Testing API keys...\n", fg="cyan"))
    for i, key in enumerate(all_keys, 1):
        label = mask_credential(key)
        if key == manager.fallback_credential:
            label += " (env)"
        click.echo(click.style(f"Key {i}/{len(all_keys)}: {label}", fg="yellow"))

        try:
            response = litellm.completion(
                model=qualify_model(model, "openai"),
                messages=[{"role": "user", "content": "Hello"}],
                api_key=key,
                api_base=base_url,
                max_tokens=5,
                temperature=0,
                timeout=timeout,
                num_retries=0,
            )
        except Exception as e:
            kind, detail = describe_key_error(e)
            colour = "yellow" if kind == "timeout" else "red"
            click.echo("  " + click.style(f"✗ {kind.capitalize()}", fg=colour) + f" - {detail}")
            continue

        if response.choices:
            content = (response.choices[0].message.content or "").strip() or "OK"
            click.echo("  " + click.style("✓ Working", fg="green") + f' - Response: "{content}"')
        else:
            click.echo("  " + click.style("⚠ Unexpected response format", fg="yellow"))
