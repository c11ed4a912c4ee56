from spacectl.exceptions.base import SpaceException as _SpaceException


class SpaceUserException(_SpaceException):
    _ERROR_CODE = "USER:Unknown"


class SpaceValueException(SpaceUserException, ValueError):
    _ERROR_CODE = "USER:ValueError"

    @classmethod
    def _create_verbose_message(cls, received_value, error_message):
        return "Value error!  Received: {}. {}".format(received_value, error_message)

    def __init__(self, received_value, error_message):
        super(SpaceValueException, self).__init__(self._create_verbose_message(received_value, error_message))


class SpaceAssertion(SpaceUserException, AssertionError):
    _ERROR_CODE = "USER:AssertionError"


class NotLoggedInError(SpaceAssertion):
    """
    Raised when an operation needs a session token and none is stored or it was rejected by the API.
    """

    _ERROR_CODE = "USER:NotLoggedIn"


class BuildContextError(SpaceValueException):
    _ERROR_CODE = "USER:BuildContextError"


class CredentialsNotFoundError(SpaceUserException, KeyError):
    """
    No credential exists for the requested registry host, neither as the home-registry override nor in the local
    credential store.
    """

    _ERROR_CODE = "USER:CredentialsNotFound"

    def __init__(self, host: str):
        super().__init__(f"no credentials found for registry host '{host}'")
        self._host = host

    @property
    def host(self) -> str:
        return self._host
