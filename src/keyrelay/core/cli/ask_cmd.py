"""keyrelay ask — send one prompt through the configured backend."""

from __future__ import annotations

import asyncio

import click


async def _ask(prompt: str, mode: str | None, config_file: str | None):
    from keyrelay.backends import create_backend, resolve_backend_config
    from keyrelay.core.cli.common import build_oauth, load_settings, load_validated_config

    config = load_validated_config(config_file)
    backend_config = resolve_backend_config(
        mode or config.backend.mode,
        model=config.backend.model or None,
        timeout=config.backend.timeout,
        num_retries=config.backend.num_retries,
    )

    store = load_settings()
    backend = await create_backend(
        backend_config,
        settings=store.merged,
        on_settings_update=store.rotation_callback(config.settings.scope),
        oauth=build_oauth(config.paths),
    )
    return await backend.generate([{"role": "user", "content": prompt}])


@click.command()
@click.argument("prompt")
@click.option("--mode", default=None, help="Auth mode, overriding backend.mode from the config file.")
@click.pass_context
def ask(ctx: click.Context, prompt: str, mode: str | None) -> None:
    """Send PROMPT to the configured backend and print the reply."""
    from keyrelay.core.exceptions import KeyRelayError

    config_file = (ctx.find_root().obj or {}).get("config_file")
    try:
        response = asyncio.run(_ask(prompt, mode, config_file))
    except KeyRelayError as e:
        raise click.ClickException(str(e))

    if not response.choices:
        click.echo(click.style("⚠ Unexpected response format", fg="yellow"))
        return
    click.echo((response.choices[0].message.content or "").strip())
