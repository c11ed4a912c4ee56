import typing
from dataclasses import dataclass

import keyring as _keyring
from keyring.errors import NoKeyringError

from spacectl.loggers import logger


@dataclass
class Credentials(object):
    """
    A platform session token and the API it was issued by
    """

    token: str
    for_endpoint: str


class KeyringStore:
    """
    Methods to access Keyring Store.
    """

    _token_key = "session_token"

    @staticmethod
    def store(credentials: Credentials) -> Credentials:
        try:
            _keyring.set_password(
                credentials.for_endpoint,
                KeyringStore._token_key,
                credentials.token,
            )
        except NoKeyringError as e:
            logger.warning(f"KeyRing not available, the session token will not be persisted. Error: {e}")
        return credentials

    @staticmethod
    def retrieve(for_endpoint: str) -> typing.Optional[Credentials]:
        try:
            token = _keyring.get_password(for_endpoint, KeyringStore._token_key)
        except NoKeyringError as e:
            logger.debug(f"KeyRing not available, no stored session token. Error: {e}")
            return None
        if not token:
            return None
        return Credentials(token, for_endpoint)

