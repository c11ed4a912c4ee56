import dataclasses
import typing

import rich_click as click

from spacectl.clients import session as _session
from spacectl.clis.utils import CliContext, pass_cli_context


@click.command("login")
@click.option(
    "--token",
    required=True,
    envvar=_session.TOKEN_ENV_VAR,
    help="API token of your platform account, can also be set through envvar ``SPACECTL_TOKEN``",
)
@click.option("--url", required=False, help="Platform URL, defaults to [platform] url of the config file")
@pass_cli_context
def login(cli_ctx: CliContext, token: str, url: typing.Optional[str]):
    """
    Store a platform session used by build and namespace commands.
    """
    cfg = cli_ctx.platform_config()
    if url:
        cfg = dataclasses.replace(cfg, url=url)
    s = _session.login(cfg, token)
    click.secho(f"Logged in as {s.username} @ {s.url}", fg="green")
