import typing

import requests as _requests

from spacectl.configuration import PlatformConfig
from spacectl.exceptions.system import APIError
from spacectl.exceptions.user import NotLoggedInError
from spacectl.loggers import logger


class GraphQLClient(object):
    """
    Minimal client for the platform's GraphQL API. Every call is a single request, failures are not retried.
    """

    def __init__(
        self,
        url: str,
        token: str,
        timeout: typing.Optional[float] = 30,
        verify: bool = True,
        session: typing.Optional[_requests.Session] = None,
    ):
        self._endpoint = _requests.compat.urljoin(url.rstrip("/") + "/", "graphql")
        self._token = token
        self._timeout = timeout
        self._verify = verify
        self._session = session or _requests.Session()

    @classmethod
    def for_platform(cls, cfg: PlatformConfig, token: str) -> "GraphQLClient":
        return cls(cfg.url, token, timeout=cfg.timeout, verify=not cfg.insecure)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def query(
        self, q: str, variables: typing.Optional[typing.Dict[str, typing.Any]] = None
    ) -> typing.Dict[str, typing.Any]:
        """
        Runs a query or mutation and returns its ``data`` object.
        """
        payload: typing.Dict[str, typing.Any] = {"query": q}
        if variables:
            payload["variables"] = variables

        logger.debug(f"POST {self._endpoint}")
        try:
            resp = self._session.post(
                self._endpoint,
                json=payload,
                headers={"Authorization": f"Bearer {self._token}"},
                timeout=self._timeout,
                verify=self._verify,
            )
        except _requests.RequestException as e:
            raise APIError(f"failed to reach {self._endpoint}") from e

        if resp.status_code == 401:
            raise NotLoggedInError("the session token was rejected, run 'spacectl login' again")
        if not resp.ok:
            raise APIError(f"{self._endpoint} answered with HTTP {resp.status_code}", status_code=resp.status_code)

        try:
            body = resp.json()
        except ValueError as e:
            raise APIError(f"{self._endpoint} returned a response that is not JSON") from e
        if not isinstance(body, dict):
            raise APIError(f"{self._endpoint} returned a response that is not a JSON object")

        errors = body.get("errors")
        if errors:
            messages = "; ".join(err.get("message", str(err)) if isinstance(err, dict) else str(err) for err in errors)
            if "not-authorized" in messages:
                raise NotLoggedInError("the session token was rejected, run 'spacectl login' again")
            raise APIError(messages, status_code=resp.status_code)
        return body.get("data") or {}
