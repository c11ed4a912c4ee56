"""
``docker-credential-spacectl``: a docker credential helper backed by a running auth relay.

Only ``get`` is supported. The server URL is read from stdin and the answer is written to stdout in the format
docker expects from credential helpers.
"""

import json
import os
import sys

import click
import grpc

from spacectl.buildkit.relay_server import RELAY_ADDR_ENV_VAR, fetch_credentials

# docker-py and the docker CLI both recognize this exact message as "no credentials stored"
CREDENTIALS_NOT_FOUND = "credentials not found in native keychain"
TOKEN_USERNAME = "<token>"


def to_helper_output(server_url: str, username: str, secret: str) -> dict:
    """
    Formats a relay answer the way docker credential helpers answer ``get``.

    The relay answers an identity token with an empty username, so every answer without a username is passed on as
    an identity token (username ``<token>``). A stored entry that has a password but no username therefore reaches
    the build client as an identity token too; the session auth messages have no way to tell the two apart.
    """
    if not username:
        username = TOKEN_USERNAME
    return {"ServerURL": server_url, "Username": username, "Secret": secret}


@click.command("docker-credential-spacectl")
@click.argument("action")
@click.pass_context
def main(ctx: click.Context, action: str):
    if action != "get":
        click.echo(f"docker-credential-spacectl is read-only, '{action}' is not supported", err=True)
        ctx.exit(1)

    address = os.environ.get(RELAY_ADDR_ENV_VAR)
    if not address:
        click.echo(f"{RELAY_ADDR_ENV_VAR} is not set, no auth relay to ask", err=True)
        ctx.exit(1)

    server_url = sys.stdin.read().strip()
    try:
        response = fetch_credentials(address, server_url)
    except grpc.RpcError as e:
        if e.code() == grpc.StatusCode.NOT_FOUND:
            click.echo(CREDENTIALS_NOT_FOUND)
        else:
            click.echo(f"auth relay failed: {e.details()}", err=True)
        ctx.exit(1)

    click.echo(json.dumps(to_helper_output(server_url, response.Username, response.Secret)))


if __name__ == "__main__":
    main()
