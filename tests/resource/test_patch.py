"""
Tests for the Patch container
"""

# Local
from reconkit.resource import Patch


def test_empty_patch():
    patch = Patch()
    assert not patch
    assert patch.get_create_change() == (None, False)
    assert patch.get_delete_change() == (None, False)
    assert patch.get_update_change() == (None, False)


def test_none_change_is_set():
    """Make sure an explicit None is distinct from unset"""
    patch = Patch()
    patch.set_update_change(None)
    assert patch
    assert patch.get_update_change() == (None, True)
    assert patch.get_create_change() == (None, False)


def test_changes_are_independent():
    patch = Patch()
    patch.set_create_change({"a": 1})
    patch.set_delete_change([1, 2])
    assert patch.get_create_change() == ({"a": 1}, True)
    assert patch.get_delete_change() == ([1, 2], True)
    assert patch.get_update_change() == (None, False)
