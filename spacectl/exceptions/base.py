class _SpaceCodedExceptionMetaclass(type):
    @property
    def error_code(cls):
        return cls._ERROR_CODE


class SpaceException(Exception, metaclass=_SpaceCodedExceptionMetaclass):
    _ERROR_CODE = "UnknownSpaceException"

    def __str__(self):
        error_message = f"error={','.join(str(a) for a in self.args) if self.args else 'None'}"
        if self.__cause__:
            error_message += f", cause={self.__cause__}"

        return f"{self._ERROR_CODE}: {error_message}"
