"""Module containing custom exceptions and warnings."""


class AlphaFeatureError(Exception):
    """Base error class carrying an error code and a detail message."""

    _error_code = ""
    _msg = ""
    _detail_msg = ""
    _user_msg = ""

    @property
    def error_code(self):
        return self._error_code

    @property
    def msg(self):
        return self._msg

    @property
    def detail_msg(self):
        return self._detail_msg

    def __init__(self, msg: str = "", detail_msg: str = ""):
        self._user_msg = msg
        if detail_msg:
            self._detail_msg = detail_msg

        super().__init__(msg or self._msg)

    def __str__(self):
        text = f"{self._error_code}: {self._msg}"
        if self._user_msg:
            text += f" '{self._user_msg}'"
        if self._detail_msg:
            text += f"\n{self._detail_msg}"
        return text


class ConfigurationError(AlphaFeatureError):
    """Raise when a parameter set or the combination of inputs is invalid.

    Fatal for the unit of work: it is raised before any output is produced.
    """

    _error_code = "CONFIGURATION_ERROR"
    _msg = "Invalid configuration"


class DataAccessError(AlphaFeatureError):
    """Raise when the scan-data store cannot be read or written."""

    _error_code = "DATA_ACCESS_ERROR"
    _msg = "Failed to access scan data"


class TaskCancelled(AlphaFeatureError):
    """Raised by a cancellation token to unwind a cancelled unit of work.

    This is a stop signal, not a failure.
    """

    _error_code = "CANCELLED"
    _msg = "Task was cancelled"


class EmptyInputWarning(UserWarning):
    """Issued when an operation receives no usable scans or rows."""
