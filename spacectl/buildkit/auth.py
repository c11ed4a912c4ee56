"""
Registry credentials for the build daemon.

While a build runs, the daemon asks its client "which credential should be presented to registry H?" through the
BuildKit session auth service. :class:`AuthRelay` answers those requests from two sources:

1. the platform session, for the platform's own (home) registry. This always wins, whatever the local docker
   configuration holds for that host;
2. the local docker credential store, for every other registry.

The local store is loaded once and never modified, the override is kept next to it rather than inside it so that it
can never be written back to the user's docker configuration.
"""

from __future__ import annotations

import threading
import typing
from dataclasses import dataclass
from types import MappingProxyType

import grpc

from spacectl.buildkit import auth_pb
from spacectl.buildkit.docker_config import INDEX_URL, DockerConfigFile
from spacectl.exceptions.system import CredentialsHelperError
from spacectl.exceptions.user import CredentialsNotFoundError
from spacectl.loggers import logger

HOST_ALIASES: typing.Mapping[str, str] = MappingProxyType(
    {
        # The daemon asks for the docker hub API host, the docker CLI stores hub credentials under the index URL
        "registry-1.docker.io": INDEX_URL,
    }
)
"""
Registry hosts as presented by the build daemon, mapped to the key the local credential store uses for them.
"""

_store_lock = threading.Lock()


@dataclass(frozen=True)
class RegistryCredentials(object):
    """
    The credential presented to a registry. ``username`` is empty when ``secret`` is an identity token.
    """

    username: str
    secret: str

    def __repr__(self):
        return f"RegistryCredentials(username={self.username!r}, secret=***)"


class AuthRelay(object):
    """
    Resolves registry credentials for the build daemon, giving the home registry precedence over local docker
    credentials.

    :param home_registry: host of the platform registry, as the daemon presents it
    :param username: user the session token belongs to
    :param secret: session token
    :param docker_config: path of a docker ``config.json`` or an already loaded store. The default docker
        configuration is used when omitted.
    :raises CredentialsLoadError: the local credential store could not be read
    """

    def __init__(
        self,
        home_registry: str,
        username: str,
        secret: str,
        docker_config: typing.Optional[typing.Union[str, DockerConfigFile]] = None,
    ):
        if isinstance(docker_config, DockerConfigFile):
            self._store = docker_config
        else:
            self._store = DockerConfigFile.load(docker_config)
        self._home_registry = home_registry
        self._home_credentials = RegistryCredentials(username=username, secret=secret)

    @property
    def home_registry(self) -> str:
        return self._home_registry

    @property
    def store(self) -> DockerConfigFile:
        return self._store

    def resolve_credentials(self, host: str) -> RegistryCredentials:
        """
        Returns the credential to present to ``host``.

        :raises CredentialsNotFoundError: neither the home registry nor the local store knows the host
        :raises CredentialsHelperError: the platform credential helper failed
        """
        if host == self._home_registry:
            return self._home_credentials

        lookup_host = HOST_ALIASES.get(host, host)
        # Platform credential helpers are not safe to run concurrently: docker-credential-osxkeychain hangs when
        # two lookups overlap (https://github.com/docker/cli/issues/1862). Only the store access is serialized.
        with _store_lock:
            ac = self._store.get_auth_config(lookup_host)

        if ac.identity_token:
            return RegistryCredentials(username="", secret=ac.identity_token)
        return RegistryCredentials(username=ac.username, secret=ac.password)

    def Credentials(self, request, context: grpc.ServicerContext):
        """
        gRPC handler for ``moby.filesync.v1.Auth/Credentials``.
        """
        try:
            creds = self.resolve_credentials(request.Host)
        except CredentialsNotFoundError as e:
            logger.info(f"No credentials for registry {request.Host}")
            context.abort(grpc.StatusCode.NOT_FOUND, str(e))
        except CredentialsHelperError as e:
            logger.warning(f"Credential helper failed for registry {request.Host}: {e}")
            context.abort(grpc.StatusCode.INTERNAL, str(e))
        logger.debug(f"Resolved credentials for registry {request.Host}")
        return auth_pb.CredentialsResponse(Username=creds.username, Secret=creds.secret)

    def register(self, server: grpc.Server):
        """
        Attaches the relay to ``server`` as the session auth service.
        """
        handler = grpc.method_handlers_generic_handler(
            auth_pb.SERVICE_NAME,
            {
                auth_pb.CREDENTIALS_METHOD: grpc.unary_unary_rpc_method_handler(
                    self.Credentials,
                    request_deserializer=auth_pb.CredentialsRequest.FromString,
                    response_serializer=auth_pb.CredentialsResponse.SerializeToString,
                ),
            },
        )
        server.add_generic_rpc_handlers((handler,))
