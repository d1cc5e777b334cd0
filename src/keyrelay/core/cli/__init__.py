"""keyrelay CLI — entry point for credential rotation commands."""

import click

from keyrelay import __version__


@click.group()
@click.version_option(version=__version__, package_name="keyrelay")
@click.option("--verbose", "-v", is_flag=True, help="Log rotation decisions to stderr.")
@click.option("--config", "config_file", default=None, help="Path to a keyrelay config file.")
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_file: str | None) -> None:
    """keyrelay — API key rotation for LLM backends."""
    from keyrelay.core.cli.common import configure_logging

    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    configure_logging(config_file, verbose=verbose)


from .ask_cmd import ask
from .keys_cmd import keys

main.add_command(ask)
main.add_command(keys)
