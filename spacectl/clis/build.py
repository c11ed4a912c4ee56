import typing

import rich_click as click

from spacectl.buildkit.solve import run_build
from spacectl.clis.utils import CliContext, pass_cli_context


@click.command("build")
@click.argument("path", type=click.Path(exists=True, file_okay=False))
@click.option(
    "-f",
    "--file",
    required=False,
    type=click.Path(dir_okay=False),
    help="Name of the Dockerfile (default is 'PATH/Dockerfile')",
)
@click.option(
    "-t",
    "--tag",
    required=False,
    help="Name and optionally a tag in the 'name:tag' format (it is automatically pushed)",
)
@click.option("--target", required=False, help="Set the target build stage to build")
@click.option("--no-cache", is_flag=True, default=False, help="Do not use cache when building the image")
@pass_cli_context
def build(
    cli_ctx: CliContext,
    path: str,
    file: typing.Optional[str],
    tag: typing.Optional[str],
    target: typing.Optional[str],
    no_cache: bool,
):
    """
    Build (and optionally push) a Docker image from the build context PATH.
    """
    digest = run_build(
        path,
        file=file,
        tag=tag,
        target=target,
        no_cache=no_cache,
        platform_cfg=cli_ctx.platform_config(),
        build_cfg=cli_ctx.build_config(),
    )
    if tag:
        click.secho(f"Image '{tag}' successfully pushed", fg="green")
    if digest:
        click.echo(digest)
