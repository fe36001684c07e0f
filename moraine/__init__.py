"""
moraine: declarative provisioning for small serverless applications.

A Stack registers tables, functions, users and service roles, declares
who may read or write what, and binds cron schedules to functions. The
resulting Graph is ordered by dependency and handed to a provisioning
backend.

Example:
    from moraine import Stack, User, table
    from moraine.providers import LocalBackend

    stack = Stack(name="demo")
    users = stack.register_resource(
        table("UserTable", "name", sort_key="order", sort_type="Number")
    )
    tester = stack.register_principal(User("LocalTestUser"))
    stack.grant_read(tester, users)

    stack.plan()   # [UserTable, LocalTestUser, grant(LocalTestUser, UserTable, Read)]
    stack.materialize(LocalBackend())
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
from moraine.storage import AttributeType, KeyAttribute, Table, table
from moraine.compute import Architecture, Function
from moraine.identity import ServiceRole, User
from moraine.scheduling import CronSchedule, parse_cron
from moraine.core.graph import Graph, PrincipalHandle, ResourceHandle, ScheduleHandle
from moraine.core.resolver import resolve
from moraine.core.stack import Stack
from moraine.core.materialize import MaterializationResult, materialize
from moraine.core.synth import synthesize

__version__ = "0.1.0"
__all__ = [
    "AccessMode",
    "Architecture",
    "AttributeType",
    "BackendError",
    "CronSchedule",
    "CyclicDependencyError",
    "DuplicateIdError",
    "DuplicateScheduleError",
    "ForeignHandleError",
    "Function",
    "Grant",
    "Graph",
    "GraphError",
    "InvalidTargetError",
    "KeyAttribute",
    "MalformedCronError",
    "MaterializationResult",
    "MoraineError",
    "PrincipalHandle",
    "ResourceHandle",
    "ScheduleHandle",
    "ServiceRole",
    "Stack",
    "Table",
    "User",
    "materialize",
    "parse_cron",
    "resolve",
    "synthesize",
    "table",
]
