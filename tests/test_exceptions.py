"""
Test the custom exceptions and assert functions
"""

# Third Party
import pytest

# Local
from reconkit import exceptions


def test_assert_config_pass():
    """Make sure that no exception is thrown by assert_config when it passes"""
    exceptions.assert_config(True)


def test_assert_config_fail():
    """Make sure the right exception is thrown by assert_config when it fails"""
    exception_msg = "error message"
    with pytest.raises(exceptions.InvalidConfigError, match=exception_msg):
        exceptions.assert_config(False, exception_msg)


def test_assert_execution_fail():
    """Make sure the right exception is thrown by assert_execution when it
    fails
    """
    with pytest.raises(exceptions.ExecutionFailedError, match="nope"):
        exceptions.assert_execution(False, "nope")


def test_exception_derived_from_base():
    """Make sure the derived classes are instances of the base class"""
    assert isinstance(exceptions.ReconkitFatalError(), exceptions.ReconkitError)
    assert isinstance(exceptions.ReconkitExpectedError(), exceptions.ReconkitError)


@pytest.mark.parametrize(
    "error_class",
    [exceptions.InvalidConfigError, exceptions.LoopDetectedError],
)
def test_fatal_errors(error_class):
    """Make sure wiring errors are fatal"""
    assert error_class().is_fatal_error


@pytest.mark.parametrize(
    "error_class",
    [
        exceptions.IncompatibleUnderlyingResourceError,
        exceptions.ExecutionFailedError,
        exceptions.NoResourceSetError,
        exceptions.InvalidEventError,
        exceptions.ResourceVersionExpiredError,
        exceptions.ConflictError,
        exceptions.ObjectNotFoundError,
    ],
)
def test_expected_errors(error_class):
    """Make sure recoverable errors are not fatal"""
    assert not error_class().is_fatal_error


def test_no_resource_set_is_execution_failure():
    """Make sure an ambiguous routing is reported as an execution failure"""
    assert isinstance(exceptions.NoResourceSetError(), exceptions.ExecutionFailedError)
