"""
Core moraine functionality.

- Resources and principals: what gets provisioned
- Grants: who may read or write what
- Stack: registers everything and builds an immutable Graph
- Resolver: orders a Graph for provisioning
"""

from moraine.core.errors import (
    BackendError,
    CyclicDependencyError,
    DuplicateIdError,
    DuplicateScheduleError,
    ForeignHandleError,
    GraphError,
    InvalidTargetError,
    MalformedCronError,
    MoraineError,
)
from moraine.core.grants import AccessMode, Grant
from moraine.core.resource import Resource, ResourceKind

__all__ = [
    "AccessMode",
    "BackendError",
    "CyclicDependencyError",
    "DuplicateIdError",
    "DuplicateScheduleError",
    "ForeignHandleError",
    "Grant",
    "GraphError",
    "InvalidTargetError",
    "MalformedCronError",
    "MoraineError",
    "Resource",
    "ResourceKind",
]
