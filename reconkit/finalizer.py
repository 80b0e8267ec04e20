"""
Helpers to add and remove a controller's finalizer on a watched object
"""

# Standard
from typing import Optional

# First Party
import alog

# Local
from . import config
from .backoff import BackOff, MaxRetriesBackOff, retry_notify
from .client.base import FinalizerClientBase
from .exceptions import ConflictError, ObjectNotFoundError, assert_config
from .managed_object import ManagedObject

log = alog.use_channel("FINLZ")


def finalizer_name(controller_name: str, prefix: Optional[str] = None) -> str:
    """Get the finalizer a controller places on the objects it reconciles"""
    assert_config(bool(controller_name), "controller_name must not be empty")
    prefix = prefix or config.controller.finalizer_prefix
    return f"{prefix}/{controller_name}"


def default_backoff() -> BackOff:
    """The conflict retry policy from the controller library config"""
    return MaxRetriesBackOff(
        config.controller.finalizer_max_retries,
        config.controller.finalizer_retry_interval,
    )


def ensure_finalizer(
    client: FinalizerClientBase,
    obj: ManagedObject,
    finalizer: str,
    backoff: Optional[BackOff] = None,
) -> Optional[ManagedObject]:
    """Add finalizer to obj unless it is already present or the object is being
    deleted. Lost compare-and-swap races are retried against a fresh read.

    Args:
        client:  FinalizerClientBase
            The client used to read and update the object
        obj:  ManagedObject
            The object to update
        finalizer:  str
            The finalizer to add
        backoff:  Optional[BackOff]
            The conflict retry policy

    Returns:
        current:  Optional[ManagedObject]
            The latest version of the object or None if it no longer exists
    """

    def attempt() -> Optional[ManagedObject]:
        definition = client.get_object(obj)
        if definition is None:
            log.debug("Object %s is gone, not adding finalizer", obj)
            return None
        current = ManagedObject(definition)
        if current.is_deleting:
            log.debug2("Object %s is being deleted, not adding finalizer", current)
            return current
        if current.has_finalizer(finalizer):
            return current
        log.debug("Adding finalizer %s to %s", finalizer, current)
        try:
            updated = client.update_finalizers(
                current, current.finalizers + [finalizer], current.resource_version
            )
        except ObjectNotFoundError:
            log.debug("Object %s disappeared while adding finalizer", current)
            return None
        return ManagedObject(updated) if updated is not None else None

    return _retry_conflicts(attempt, backoff, obj)


def remove_finalizer(
    client: FinalizerClientBase,
    obj: ManagedObject,
    finalizer: str,
    backoff: Optional[BackOff] = None,
) -> Optional[ManagedObject]:
    """Remove finalizer from obj. An object that is already gone is not an
    error. Lost compare-and-swap races are retried against a fresh read.

    Returns:
        current:  Optional[ManagedObject]
            The latest version of the object or None if it no longer exists
    """

    def attempt() -> Optional[ManagedObject]:
        definition = client.get_object(obj)
        if definition is None:
            log.debug("Object %s is gone, nothing to remove", obj)
            return None
        current = ManagedObject(definition)
        if not current.has_finalizer(finalizer):
            log.warning("Finalizer %s not found on %s", finalizer, current)
            return current
        log.debug("Removing finalizer %s from %s", finalizer, current)
        remaining = [name for name in current.finalizers if name != finalizer]
        try:
            updated = client.update_finalizers(
                current, remaining, current.resource_version
            )
        except ObjectNotFoundError:
            log.debug("Object %s disappeared while removing finalizer", current)
            return None
        return ManagedObject(updated) if updated is not None else None

    return _retry_conflicts(attempt, backoff, obj)


def _retry_conflicts(attempt, backoff: Optional[BackOff], obj: ManagedObject):
    def notify(err: Exception, interval: float):
        log.debug2("Retrying finalizer update on %s in %.2fs: %s", obj, interval, err)

    return retry_notify(
        attempt,
        backoff or default_backoff(),
        notify=notify,
        is_retryable=lambda err: isinstance(err, ConflictError),
    )
