"""
Helpers to walk and rebuild chains of wrapped resources
"""

# Standard
from typing import List

# First Party
import alog

# Local
from ..constants import MAX_UNWRAP_DEPTH
from ..exceptions import LoopDetectedError
from .base import Resource, Wrapper

log = alog.use_channel("UNWRP")


def underlying(resource: Resource) -> Resource:
    """Follow wrapped() until reaching a resource that wraps nothing

    Args:
        resource:  Resource
            The outermost resource of the chain

    Returns:
        underlying:  Resource
            The innermost resource. A resource that wraps nothing is its own
            underlying resource.

    Raises:
        LoopDetectedError:  If the chain does not end within MAX_UNWRAP_DEPTH
            hops
    """
    return _chain(resource)[-1]


def replace_underlying(resource: Resource, new_underlying: Resource) -> Resource:
    """Rebuild a wrapper chain so that it ends in new_underlying. Every wrapper
    in the chain is copied and none of the originals are modified.

    Args:
        resource:  Resource
            The outermost resource of the existing chain
        new_underlying:  Resource
            The resource that should replace the innermost resource

    Returns:
        resource:  Resource
            The outermost resource of the new chain
    """
    chain = _chain(resource)
    rebuilt = new_underlying
    for wrapper in reversed(chain[:-1]):
        rebuilt = wrapper.with_wrapped(rebuilt)
    return rebuilt


## Implementation ##############################################################


def _chain(resource: Resource) -> List[Resource]:
    chain = [resource]
    current = resource
    for _ in range(MAX_UNWRAP_DEPTH):
        if not isinstance(current, Wrapper):
            return chain
        current = current.wrapped()
        chain.append(current)
    if not isinstance(current, Wrapper):
        return chain
    log.warning("Wrapper chain from %s did not terminate", _describe(resource))
    raise LoopDetectedError(
        f"Wrapper chain exceeded {MAX_UNWRAP_DEPTH} hops starting at {_describe(resource)}"
    )


def _describe(resource: Resource) -> str:
    # Wrapper names usually delegate inward, so they cannot be read on a cycle
    return type(resource).__name__
