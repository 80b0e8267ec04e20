"""
A Patch collects the changes that bring current state to desired state
"""

# Standard
from typing import Any, Tuple


class Patch:
    """Container for up to three independent change payloads. A payload that
    was never set is distinct from one that was explicitly set to None, and
    only set payloads are applied.
    """

    _CREATE = "create"
    _DELETE = "delete"
    _UPDATE = "update"

    def __init__(self):
        self._changes = {}

    ## Setters #################################################################

    def set_create_change(self, change: Any):
        self._changes[self._CREATE] = change

    def set_delete_change(self, change: Any):
        self._changes[self._DELETE] = change

    def set_update_change(self, change: Any):
        self._changes[self._UPDATE] = change

    ## Getters #################################################################

    def get_create_change(self) -> Tuple[Any, bool]:
        return self._get(self._CREATE)

    def get_delete_change(self) -> Tuple[Any, bool]:
        return self._get(self._DELETE)

    def get_update_change(self) -> Tuple[Any, bool]:
        return self._get(self._UPDATE)

    ## Implementation ##########################################################

    def _get(self, key: str) -> Tuple[Any, bool]:
        return self._changes.get(key), key in self._changes

    def __bool__(self):
        return bool(self._changes)

    def __repr__(self):
        return f"Patch({', '.join(sorted(self._changes))})"
