import typing

from spacectl.exceptions.base import SpaceException as _SpaceException


class SpaceSystemException(_SpaceException):
    _ERROR_CODE = "SYSTEM:Unknown"


class CredentialsLoadError(SpaceSystemException):
    """
    The local credential store exists but could not be read or parsed.
    """

    _ERROR_CODE = "SYSTEM:CredentialsLoadError"

    def __init__(self, location: str, reason: str):
        super().__init__(f"failed to load credentials from '{location}': {reason}")
        self._location = location

    @property
    def location(self) -> str:
        return self._location


class CredentialsHelperError(SpaceSystemException):
    """
    A platform credential helper failed for a reason other than a missing entry.
    """

    _ERROR_CODE = "SYSTEM:CredentialsHelperError"


class APIError(SpaceSystemException):
    _ERROR_CODE = "SYSTEM:APIError"

    def __init__(self, message: str, status_code: typing.Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BuildError(SpaceSystemException):
    _ERROR_CODE = "SYSTEM:BuildError"

    def __init__(self, message: str, returncode: typing.Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode
