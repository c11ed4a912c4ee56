import rich_click as click

from spacectl import __version__
from spacectl.clis.build import build
from spacectl.clis.login import login
from spacectl.clis.namespace import namespace
from spacectl.clis.utils import CliContext, ErrorHandlingCommand

_main_help = """
Build images on a remote BuildKit daemon and manage platform namespaces.
"""


@click.group("spacectl", cls=ErrorHandlingCommand, help=_main_help)
@click.option(
    "-v",
    "--verbose",
    required=False,
    default=0,
    count=True,
    help="Show verbose messages and exception traces, repeat for more details (-vv, -vvv).",
)
@click.option(
    "-c",
    "--config",
    required=False,
    type=click.Path(dir_okay=False),
    help="Path to the config file to use. Defaults to $SPACECTL_CONFIG, ./spacectl.config or ~/.spacectl/config.",
)
@click.version_option(__version__, prog_name="spacectl")
@click.pass_context
def main(ctx: click.Context, verbose: int, config: str):
    ctx.obj = CliContext(config=config, verbose=verbose)


main.add_command(build)
main.add_command(namespace)
main.add_command(login)

if __name__ == "__main__":
    main()
