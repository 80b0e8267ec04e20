"""
Tests for the ManagedObject view
"""

# Third Party
import pytest

# Local
from reconkit.exceptions import InvalidEventError
from reconkit.managed_object import ManagedObject, object_key
from reconkit.test_helpers.helpers import make_object


def test_managed_object_fields():
    obj = ManagedObject(
        make_object(
            name="w",
            finalizers=["a/b"],
            deletion_timestamp="2024-01-01T00:00:00Z",
            resource_version="7",
        )
    )
    assert obj.key == "test/w"
    assert obj.finalizers == ["a/b"]
    assert obj.has_finalizer("a/b")
    assert obj.is_deleting
    assert obj.resource_version == "7"
    assert obj.get("spec") == {}


def test_cluster_scoped_key():
    obj = ManagedObject(make_object(name="w", namespace=None))
    assert obj.key == "w"
    assert object_key(None, "w") == "w"


def test_finalizers_are_copied():
    obj = ManagedObject(make_object(finalizers=["a"]))
    obj.finalizers.append("b")
    assert obj.finalizers == ["a"]


@pytest.mark.parametrize("definition", [None, "str", {"metadata": {}}])
def test_invalid_objects(definition):
    with pytest.raises(InvalidEventError):
        ManagedObject(definition)
