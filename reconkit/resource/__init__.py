"""
Resource interfaces, the CRUD protocol, and resource sets
"""

# Local
from .base import Resource, ResourceKind, Wrapper
from .crud import CRUDResource, CRUDResourceOps
from .patch import Patch
from .resource_set import ResourceSet
from .unwrap import replace_underlying, underlying
