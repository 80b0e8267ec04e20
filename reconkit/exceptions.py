"""
This module implements custom exceptions
"""

## Base Error ##################################################################


class ReconkitError(Exception):
    """Base class for all reconkit exceptions"""

    def __init__(self, message: str, is_fatal_error: bool):
        """Construct with a flag indicating whether this is a fatal error. This
        will be a static property of all children.
        """
        super().__init__(message)
        self._is_fatal_error = is_fatal_error

    @property
    def is_fatal_error(self):
        """Property indicating whether or not this error should stop any retry
        loop that observes it
        """
        return self._is_fatal_error


## Fatal Errors ################################################################


class ReconkitFatalError(ReconkitError):
    """A ReconkitFatalError indicates a programming or wiring mistake that
    retrying will never fix.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=True)


class InvalidConfigError(ReconkitFatalError):
    """Exception caused by invalid construction arguments"""


class LoopDetectedError(ReconkitFatalError):
    """Exception raised when following a wrapper chain does not terminate"""


## Expected Errors #############################################################


class ReconkitExpectedError(ReconkitError):
    """A ReconkitExpectedError indicates a failure that should terminate the
    current reconciliation, but is expected to resolve in a subsequent one.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=False)


class IncompatibleUnderlyingResourceError(ReconkitExpectedError):
    """Exception raised when a CRUD-aware decorator is asked to decorate a
    resource whose underlying implementation is not a CRUD resource
    """


class ExecutionFailedError(ReconkitExpectedError):
    """Exception raised when a reconciliation cannot be executed"""


class NoResourceSetError(ExecutionFailedError):
    """Exception raised when the resource set for an object is ambiguous"""


class InvalidEventError(ReconkitExpectedError):
    """Exception raised when a watch event cannot be decoded"""


class ResourceVersionExpiredError(ReconkitExpectedError):
    """Exception raised when a watch cannot resume from the requested
    resourceVersion and a fresh list is required
    """


class ConflictError(ReconkitExpectedError):
    """Exception raised when a compare-and-swap update lost a race"""


class ObjectNotFoundError(ReconkitExpectedError):
    """Exception raised when the object being updated no longer exists"""


## Assertions ##################################################################


def assert_config(condition: bool, message: str = ""):
    """Replacement for assert() which will throw an InvalidConfigError. This
    should be used when validating construction arguments.
    """
    if not condition:
        raise InvalidConfigError(message)


def assert_execution(condition: bool, message: str = ""):
    """Replacement for assert() which will throw an ExecutionFailedError. This
    should be used when a reconciliation cannot proceed.
    """
    if not condition:
        raise ExecutionFailedError(message)
