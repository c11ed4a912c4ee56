"""
Serving an :class:`~spacectl.buildkit.auth.AuthRelay` to a build client running in a subprocess.

The relay listens on a private unix socket. A temporary docker configuration directory points ``credsStore`` at the
``docker-credential-spacectl`` helper, which forwards every lookup of the build client to that socket.
"""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
import typing
from concurrent import futures
from dataclasses import dataclass

import grpc

from spacectl.buildkit import auth_pb
from spacectl.loggers import logger

if typing.TYPE_CHECKING:
    from spacectl.buildkit.auth import AuthRelay

RELAY_ADDR_ENV_VAR = "SPACECTL_AUTH_RELAY_ADDR"
CREDENTIAL_HELPER_NAME = "spacectl"


@dataclass(frozen=True)
class RelayHandle(object):
    address: str
    docker_config_dir: str

    def env(self) -> typing.Dict[str, str]:
        """
        Environment variables that make a docker compatible client resolve credentials through the relay.
        """
        return {"DOCKER_CONFIG": self.docker_config_dir, RELAY_ADDR_ENV_VAR: self.address}


def _write_docker_config(config_dir: str):
    os.makedirs(config_dir, exist_ok=True)
    with open(os.path.join(config_dir, "config.json"), "w", encoding="utf-8") as fh:
        json.dump({"credsStore": CREDENTIAL_HELPER_NAME}, fh)


@contextlib.contextmanager
def serve_relay(relay: AuthRelay, max_workers: int = 4) -> typing.Iterator[RelayHandle]:
    """
    Serves ``relay`` for the duration of the context. Each credential request is handled on its own worker thread.
    """
    with tempfile.TemporaryDirectory(prefix="spacectl-") as tmp_dir:
        address = f"unix://{os.path.join(tmp_dir, 'relay.sock')}"
        server = grpc.server(futures.ThreadPoolExecutor(max_workers=max_workers))
        relay.register(server)
        server.add_insecure_port(address)
        server.start()
        logger.debug(f"Auth relay for {relay.home_registry} listening on {address}")

        config_dir = os.path.join(tmp_dir, "docker")
        _write_docker_config(config_dir)
        try:
            yield RelayHandle(address=address, docker_config_dir=config_dir)
        finally:
            server.stop(grace=None)
            logger.debug("Auth relay stopped")


def fetch_credentials(address: str, host: str, timeout: typing.Optional[float] = 30):
    """
    Asks the relay listening on ``address`` for the credentials of ``host``.

    :raises grpc.RpcError: ``NOT_FOUND`` when the relay has no credentials for the host
    """
    with grpc.insecure_channel(address) as channel:
        credentials = channel.unary_unary(
            auth_pb.CREDENTIALS_PATH,
            request_serializer=auth_pb.CredentialsRequest.SerializeToString,
            response_deserializer=auth_pb.CredentialsResponse.FromString,
        )
        return credentials(auth_pb.CredentialsRequest(Host=host), timeout=timeout)
