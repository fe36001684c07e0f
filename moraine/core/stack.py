"""
Stack: the composer that registers everything an application needs.

A Stack collects resources, principals, grants and schedule bindings,
validating each registration as it happens. `build()` snapshots the
collected entities into an immutable Graph, which the resolver orders
and `materialize()` hands to a provisioning backend.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from moraine.compute.resources import Function
from moraine.core.errors import (
    DuplicateIdError,
    DuplicateScheduleError,
    ForeignHandleError,
    InvalidTargetError,
)
from moraine.core.graph import (
    Entity,
    Graph,
    Handle,
    PrincipalHandle,
    ResourceHandle,
    ScheduleHandle,
)
from moraine.core.grants import AccessMode, Grant
from moraine.core.resource import Resource, ResourceKind
from moraine.identity.principals import Principal, ServiceRole
from moraine.scheduling.cron import parse_cron
from moraine.scheduling.resources import CronSchedule, schedule_id_for

if TYPE_CHECKING:
    from moraine.config.provider import StackConfig
    from moraine.core.materialize import MaterializationResult
    from moraine.providers.base import Backend

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Stack:
    """
    Container for all infrastructure of one application.

    Example:
        from moraine import Stack, Function, ServiceRole, User, table

        stack = Stack(name="notifications")

        tokens = stack.register_resource(table("TokenTable", "singleton_key"))
        tester = stack.register_principal(User("LocalTestUser"))
        stack.grant_read_write(tester, tokens)

        role = stack.register_principal(
            ServiceRole("NotifierRole", trusted_service="lambda.amazonaws.com")
        )
        notifier = stack.register_resource(
            Function("NotifierFunction", entry_point="dist/notifier", role_id="NotifierRole")
        )
        stack.grant_read(role, tokens)
        stack.bind_schedule("0 12 * * *", "Asia/Tokyo", notifier)

        plan = stack.plan()
    """

    name: str
    """Stack name"""

    config: "StackConfig | None" = None
    """Optional deployment configuration"""

    _entities: dict[str, Entity] = field(default_factory=dict, repr=False)
    """All entities keyed by node id, in registration order"""

    _managed_policies: dict[str, list[str]] = field(default_factory=dict, repr=False)
    """Managed policies attached to service roles after registration"""

    def __post_init__(self):
        # Identity token stamped into every handle this stack issues
        self._token = object()

    def register_resource(self, descriptor: Resource) -> ResourceHandle:
        """
        Register a table or function.

        Args:
            descriptor: Table or Function descriptor

        Returns:
            Handle usable as a grant or schedule target

        Raises:
            DuplicateIdError: If the logical id is already registered
            InvalidTargetError: If a Function's role_id is not a registered ServiceRole
            TypeError: If the descriptor is not a table or function
        """
        if not isinstance(descriptor, Resource):
            raise TypeError(f"Expected a resource descriptor, got {type(descriptor).__name__}")
        if descriptor.kind is ResourceKind.SCHEDULE:
            raise TypeError("Schedules are created with bind_schedule(), not register_resource()")

        self._check_free(descriptor.logical_id)
        if isinstance(descriptor, Function) and descriptor.role_id is not None:
            role = self._entities.get(descriptor.role_id)
            if not isinstance(role, ServiceRole):
                raise InvalidTargetError(
                    f"Function '{descriptor.logical_id}' role '{descriptor.role_id}' "
                    f"is not a registered ServiceRole"
                )

        self._entities[descriptor.logical_id] = descriptor
        logger.debug("Registered %r in stack '%s'", descriptor, self.name)
        return ResourceHandle(
            logical_id=descriptor.logical_id,
            stack_name=self.name,
            owner=self._token,
            kind=descriptor.kind,
        )

    def register_principal(self, descriptor: Principal) -> PrincipalHandle:
        """
        Register a user or service role.

        Raises:
            DuplicateIdError: If the logical id is already registered
            TypeError: If the descriptor is not a principal
        """
        if not isinstance(descriptor, Principal):
            raise TypeError(f"Expected a principal descriptor, got {type(descriptor).__name__}")

        self._check_free(descriptor.logical_id)
        self._entities[descriptor.logical_id] = descriptor
        logger.debug("Registered principal %r in stack '%s'", descriptor, self.name)
        return PrincipalHandle(
            logical_id=descriptor.logical_id,
            stack_name=self.name,
            owner=self._token,
        )

    def attach_managed_policy(self, principal: PrincipalHandle, policy_ref: str) -> None:
        """
        Attach a managed policy to a service role. Attaching the same
        policy twice has no further effect.

        Raises:
            ForeignHandleError: If the handle belongs to another stack
            InvalidTargetError: If the principal is not a ServiceRole
        """
        self._check_handle(principal, PrincipalHandle)
        descriptor = self._entities[principal.logical_id]
        if not isinstance(descriptor, ServiceRole):
            raise InvalidTargetError(
                f"Managed policies can only be attached to service roles, "
                f"'{principal.logical_id}' is a {descriptor.kind.value}"
            )

        policies = self._managed_policies.setdefault(principal.logical_id, [])
        if policy_ref not in policies:
            policies.append(policy_ref)

    def grant(self, principal: PrincipalHandle, resource: ResourceHandle, mode: AccessMode) -> Grant:
        """
        Declare that a principal may access a resource.

        Read and Write grants on the same pair are additive. Repeating an
        identical grant returns the existing record and adds nothing.

        Raises:
            ForeignHandleError: If either handle belongs to another stack
        """
        self._check_handle(principal, PrincipalHandle)
        self._check_handle(resource, ResourceHandle)

        record = Grant(principal.logical_id, resource.logical_id, AccessMode(mode))
        existing = self._entities.get(record.node_id)
        if existing is not None:
            logger.debug("Grant %r already declared", record)
            return existing

        self._entities[record.node_id] = record
        logger.debug("Declared %r in stack '%s'", record, self.name)
        return record

    def grant_read(self, principal: PrincipalHandle, resource: ResourceHandle) -> Grant:
        return self.grant(principal, resource, AccessMode.READ)

    def grant_write(self, principal: PrincipalHandle, resource: ResourceHandle) -> Grant:
        return self.grant(principal, resource, AccessMode.WRITE)

    def grant_read_write(self, principal: PrincipalHandle, resource: ResourceHandle) -> tuple[Grant, Grant]:
        """Declare both Read and Write access."""
        return (
            self.grant_read(principal, resource),
            self.grant_write(principal, resource),
        )

    def bind_schedule(
        self,
        cron_expression: str,
        timezone: str,
        target: ResourceHandle,
        enabled: bool = True,
        description: str | None = None,
    ) -> ScheduleHandle:
        """
        Bind a cron schedule to a function.

        Args:
            cron_expression: Five or six field cron expression
            timezone: Timezone the expression is evaluated in
            target: Handle of a Function registered in this stack

        Returns:
            Handle of the schedule

        Raises:
            InvalidTargetError: If target is not a Function of this stack
            MalformedCronError: If the expression cannot be parsed
            DuplicateScheduleError: If the function already has a schedule
            DuplicateIdError: If the schedule's logical id is taken

        Example:
            # Daily at noon, Tokyo time
            stack.bind_schedule("0 12 * * *", "Asia/Tokyo", notifier)
        """
        if (
            not isinstance(target, ResourceHandle)
            or target.owner is not self._token
            or not isinstance(self._entities.get(target.logical_id), Function)
        ):
            raise InvalidTargetError(
                f"Schedules must target a Function registered in stack '{self.name}', "
                f"got {target!r}"
            )

        parse_cron(cron_expression)

        if any(
            isinstance(e, CronSchedule) and e.target_logical_id == target.logical_id
            for e in self._entities.values()
        ):
            raise DuplicateScheduleError(target.logical_id)

        logical_id = schedule_id_for(target.logical_id)
        self._check_free(logical_id)

        schedule = CronSchedule(
            logical_id=logical_id,
            cron_expression=cron_expression,
            timezone=timezone,
            target_logical_id=target.logical_id,
            enabled=enabled,
            description=description,
        )
        self._entities[logical_id] = schedule
        logger.debug("Bound %r in stack '%s'", schedule, self.name)
        return ScheduleHandle(
            logical_id=logical_id,
            stack_name=self.name,
            owner=self._token,
            target_logical_id=target.logical_id,
        )

    def build(self) -> Graph:
        """
        Snapshot the stack into an immutable Graph.

        Managed policies attached after registration are folded into the
        service role descriptors.
        """
        entities: list[Entity] = []
        for entity in self._entities.values():
            if isinstance(entity, ServiceRole) and entity.logical_id in self._managed_policies:
                policies = tuple(entity.managed_policies) + tuple(
                    p for p in self._managed_policies[entity.logical_id]
                    if p not in entity.managed_policies
                )
                entity = replace(entity, managed_policies=policies)
            entities.append(entity)
        return Graph(name=self.name, entities=tuple(entities))

    def plan(self) -> list[Entity]:
        """Resolve the provisioning order of the current stack."""
        from moraine.core.resolver import resolve

        return resolve(self.build())

    def materialize(self, backend: "Backend") -> "MaterializationResult":
        """Build the stack and materialize it against a backend."""
        from moraine.core.materialize import materialize

        return materialize(self.build(), backend)

    def list_resources(self) -> list[str]:
        """List logical ids of tables and functions."""
        return [
            e.logical_id for e in self._entities.values()
            if isinstance(e, Resource) and e.kind is not ResourceKind.SCHEDULE
        ]

    def list_principals(self) -> list[str]:
        return [e.logical_id for e in self._entities.values() if isinstance(e, Principal)]

    def list_grants(self) -> list[Grant]:
        return [e for e in self._entities.values() if isinstance(e, Grant)]

    def _check_free(self, logical_id: str) -> None:
        if logical_id in self._entities:
            raise DuplicateIdError(logical_id)

    def _check_handle(self, handle: Handle, expected: type) -> None:
        if not isinstance(handle, expected):
            raise TypeError(f"Expected {expected.__name__}, got {type(handle).__name__}")
        if handle.owner is not self._token:
            raise ForeignHandleError(handle.logical_id, self.name)

    def __repr__(self) -> str:
        return (
            f"Stack({self.name}, resources={len(self.list_resources())}, "
            f"principals={len(self.list_principals())}, grants={len(self.list_grants())})"
        )
