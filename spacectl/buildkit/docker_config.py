"""
Read-only access to the local docker credential store.

The store is the docker CLI ``config.json``: registry entries under ``auths`` plus optional platform credential
helpers configured through ``credsStore`` (all hosts) and ``credHelpers`` (per host). Secrets kept by a helper live
in the platform keychain and are fetched by running ``docker-credential-<name> get``.
"""

from __future__ import annotations

import json
import typing
from dataclasses import dataclass, field

from docker.auth import INDEX_URL, TOKEN_USERNAME, decode_auth
from docker.credentials import Store
from docker.credentials.errors import CredentialsNotFound, StoreError
from docker.utils.config import find_config_file

from spacectl.exceptions.system import CredentialsHelperError, CredentialsLoadError
from spacectl.exceptions.user import CredentialsNotFoundError
from spacectl.loggers import logger

__all__ = ["INDEX_URL", "AuthConfig", "DockerConfigFile", "convert_to_hostname"]


@dataclass(frozen=True)
class AuthConfig(object):
    """
    A stored registry credential. Either ``identity_token`` is set, or the ``username`` / ``password`` pair is.
    """

    username: str = ""
    password: str = ""
    identity_token: str = ""
    server_address: str = ""


def convert_to_hostname(url: str) -> str:
    """
    Strips the scheme and any path from a registry address, ``https://index.docker.io/v1/`` -> ``index.docker.io``
    """
    stripped = url
    if url.startswith("http://"):
        stripped = url[len("http://") :]
    elif url.startswith("https://"):
        stripped = url[len("https://") :]
    return stripped.split("/", 1)[0]


def _parse_auth_entry(registry: str, entry: typing.Any) -> AuthConfig:
    if not isinstance(entry, dict):
        raise ValueError(f"entry for '{registry}' is not an object")
    username = entry.get("username") or ""
    password = entry.get("password") or ""
    if entry.get("auth"):
        username, password = decode_auth(entry["auth"])
    return AuthConfig(
        username=username,
        password=password,
        identity_token=entry.get("identitytoken") or "",
        server_address=entry.get("serveraddress") or registry,
    )


@dataclass
class DockerConfigFile(object):
    location: typing.Optional[str] = None
    auths: typing.Dict[str, AuthConfig] = field(default_factory=dict)
    creds_store: typing.Optional[str] = None
    cred_helpers: typing.Dict[str, str] = field(default_factory=dict)
    credstore_env: typing.Optional[typing.Dict[str, str]] = None

    @classmethod
    def load(
        cls, location: typing.Optional[str] = None, credstore_env: typing.Optional[typing.Dict[str, str]] = None
    ) -> DockerConfigFile:
        """
        Loads the credential store from ``location``, or from the default docker config location when not given.
        A missing default file results in an empty store; an unreadable or malformed file raises
        :class:`CredentialsLoadError`.
        """
        if location is None:
            location = find_config_file()
            if location is None:
                logger.debug("No docker config file found, using an empty credential store")
                return cls(credstore_env=credstore_env)

        try:
            with open(location, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            raise CredentialsLoadError(location, str(e)) from e

        if not isinstance(data, dict):
            raise CredentialsLoadError(location, "top level value is not an object")

        if location.endswith(".dockercfg") and "auths" not in data:
            # legacy format, registry entries at the top level
            raw_auths = data
        else:
            raw_auths = data.get("auths", {})
        if not isinstance(raw_auths, dict):
            raise CredentialsLoadError(location, "'auths' is not an object")
        cred_helpers = data.get("credHelpers") or {}
        if not isinstance(cred_helpers, dict):
            raise CredentialsLoadError(location, "'credHelpers' is not an object")

        auths = {}
        for registry, entry in raw_auths.items():
            try:
                auths[registry] = _parse_auth_entry(registry, entry)
            except ValueError as e:
                raise CredentialsLoadError(location, f"invalid auth for '{registry}': {e}") from e

        logger.debug(f"Loaded {len(auths)} registry entries from {location}")
        return cls(
            location=location,
            auths=auths,
            creds_store=data.get("credsStore") or None,
            cred_helpers=cred_helpers,
            credstore_env=credstore_env,
        )

    def credential_store_name(self, host: str) -> typing.Optional[str]:
        """
        Returns the helper responsible for ``host``, or None when the secret is stored in the file itself.
        """
        helper = self.cred_helpers.get(convert_to_hostname(host)) or self.cred_helpers.get(host)
        if helper:
            return helper
        return self.creds_store

    def get_auth_config(self, host: str) -> AuthConfig:
        """
        Returns the credential stored for ``host``.

        :raises CredentialsNotFoundError: nothing is stored for the host
        :raises CredentialsHelperError: the credential helper failed
        """
        store_name = self.credential_store_name(host)
        if store_name:
            return self._get_from_helper(store_name, host)
        return self._get_from_file(host)

    def _get_from_file(self, host: str) -> AuthConfig:
        if host in self.auths:
            return self.auths[host]
        for registry, ac in self.auths.items():
            if host == convert_to_hostname(registry):
                return ac
        raise CredentialsNotFoundError(host)

    def _get_from_helper(self, store_name: str, host: str) -> AuthConfig:
        store = Store(store_name, environment=self.credstore_env)
        try:
            data = store.get(host)
        except CredentialsNotFound as e:
            raise CredentialsNotFoundError(host) from e
        except StoreError as e:
            raise CredentialsHelperError(f"credential helper '{store_name}' failed for '{host}': {e}") from e

        username = data.get("Username") or ""
        secret = data.get("Secret") or ""
        if username == TOKEN_USERNAME:
            return AuthConfig(identity_token=secret, server_address=host)
        return AuthConfig(username=username, password=secret, server_address=host)

