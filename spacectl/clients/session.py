"""
The operator's platform session.

Non secret fields are kept in ``~/.spacectl/session.json``, the token itself in the platform keyring keyed by the
API url. ``SPACECTL_TOKEN`` takes precedence over the keyring, which is convenient on CI machines.
"""

from __future__ import annotations

import os
import typing
from dataclasses import dataclass
from pathlib import Path

from mashumaro.mixins.json import DataClassJSONMixin

from spacectl.clients.auth.keyring import Credentials, KeyringStore
from spacectl.clients.graphql import GraphQLClient
from spacectl.configuration import PlatformConfig
from spacectl.exceptions.user import NotLoggedInError
from spacectl.loggers import logger

TOKEN_ENV_VAR = "SPACECTL_TOKEN"
SPACECTL_HOME_ENV_VAR = "SPACECTL_HOME"

USER_QUERY = """query {
    user {
        id
        name
        buildkit
        registry
    }
}"""


@dataclass
class Session(DataClassJSONMixin):
    id: str
    username: str
    url: str
    registry: str = ""
    buildkit: str = ""


def session_path() -> Path:
    home = os.environ.get(SPACECTL_HOME_ENV_VAR) or Path(Path.home(), ".spacectl")
    return Path(home, "session.json")


def load_session() -> typing.Optional[Session]:
    """
    Returns the stored session, or None when nobody logged in yet.
    """
    p = session_path()
    if not p.exists():
        return None
    try:
        return Session.from_json(p.read_text(encoding="utf-8"))
    except Exception as e:
        raise NotLoggedInError(f"the session file {p} is corrupted, run 'spacectl login' again") from e


def save_session(session: Session) -> Path:
    p = session_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(session.to_json(), encoding="utf-8")
    os.chmod(p, 0o600)
    return p


def get_token(url: str) -> str:
    """
    Returns the session token for the platform at ``url``.

    :raises NotLoggedInError: no token is configured
    """
    from_env = os.environ.get(TOKEN_ENV_VAR)
    if from_env:
        return from_env
    creds = KeyringStore.retrieve(url)
    if creds is None:
        raise NotLoggedInError("failed to read the session token. Did you run 'spacectl login'?")
    return creds.token


def login(cfg: PlatformConfig, token: str) -> Session:
    """
    Validates ``token`` against the platform and stores the resulting session.
    """
    client = GraphQLClient.for_platform(cfg, token)
    user = client.query(USER_QUERY).get("user") or {}
    if not user.get("id"):
        raise NotLoggedInError(f"{cfg.url} did not return a user for the given token")

    session = Session(
        id=user["id"],
        username=user.get("name") or user["id"],
        url=cfg.url,
        registry=user.get("registry") or cfg.registry or "",
        buildkit=user.get("buildkit") or cfg.buildkit or "",
    )
    KeyringStore.store(Credentials(token=token, for_endpoint=cfg.url))
    p = save_session(session)
    logger.info(f"Session for {session.username} stored in {p}")
    return session
