"""
Shared test config
"""
# Third Party
from prometheus_client import CollectorRegistry
import pytest

# Local
from reconkit.test_helpers.helpers import configure_logging

configure_logging()


@pytest.fixture
def registry():
    """Private metrics registry so that metric families never collide between
    tests
    """
    return CollectorRegistry()
