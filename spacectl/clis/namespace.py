import dataclasses

import rich_click as click

from spacectl.clients.graphql import GraphQLClient
from spacectl.clients.session import get_token, load_session
from spacectl.clis.utils import CliContext, pass_cli_context
from spacectl.remote.namespace import create_namespace, delete_namespace


def _client(cli_ctx: CliContext) -> GraphQLClient:
    cfg = cli_ctx.platform_config()
    session = load_session()
    if session is not None:
        # talk to the platform the session was issued by
        cfg = dataclasses.replace(cfg, url=session.url)
    return GraphQLClient.for_platform(cfg, get_token(cfg.url))


@click.group("namespace")
def namespace():
    """
    Create and delete namespaces.
    """


@namespace.command("create")
@click.argument("name")
@pass_cli_context
def create(cli_ctx: CliContext, name: str):
    """
    Create the namespace NAME.
    """
    namespace_id = create_namespace(_client(cli_ctx), name)
    click.secho(f"Namespace '{namespace_id}' created", fg="green")


@namespace.command("delete")
@click.argument("name")
@pass_cli_context
def delete(cli_ctx: CliContext, name: str):
    """
    Delete the namespace NAME.
    """
    delete_namespace(_client(cli_ctx), name)
    click.secho(f"Namespace '{name}' deleted", fg="green")
