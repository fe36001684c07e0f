"""
Graph: immutable snapshot of everything a stack declares.

Handles are issued by a Stack when an entity is registered and are the
only way to reference that entity in later grants and schedule bindings.
"""

from dataclasses import dataclass, field
from typing import Union

from moraine.compute.resources import Function
from moraine.core.errors import DuplicateIdError, DuplicateScheduleError, InvalidTargetError
from moraine.core.grants import Grant
from moraine.core.resource import Resource, ResourceKind
from moraine.identity.principals import Principal, ServiceRole
from moraine.scheduling.resources import CronSchedule

Entity = Union[Resource, Principal, Grant]


@dataclass(frozen=True)
class Handle:
    """Opaque reference to an entity registered in a particular stack."""

    logical_id: str
    stack_name: str = field(compare=False)
    owner: object = field(repr=False)
    """Identity token of the issuing stack"""


@dataclass(frozen=True)
class ResourceHandle(Handle):
    kind: ResourceKind = ResourceKind.TABLE


@dataclass(frozen=True)
class PrincipalHandle(Handle):
    pass


@dataclass(frozen=True)
class ScheduleHandle(Handle):
    target_logical_id: str = ""


@dataclass(frozen=True)
class Graph:
    """
    All resources, principals, grants and schedules of a stack, in
    registration order.

    The graph checks its own invariants on construction, so a graph
    assembled by hand obeys the same rules as one built by a Stack:
    - logical ids are unique
    - grants reference a registered principal and a non-schedule resource
    - schedules target a Function, at most one schedule per Function
    - a Function's role_id names a registered ServiceRole

    Repeated identical grants collapse into one.
    """

    name: str
    entities: tuple[Entity, ...] = ()

    def __post_init__(self):
        entities: list[Entity] = []
        seen_grants: set[Grant] = set()
        by_id: dict[str, Entity] = {}

        for entity in self.entities:
            if isinstance(entity, Grant):
                if entity in seen_grants:
                    continue
                seen_grants.add(entity)
            elif entity.logical_id in by_id:
                raise DuplicateIdError(entity.logical_id)
            else:
                by_id[entity.logical_id] = entity
            entities.append(entity)

        object.__setattr__(self, "entities", tuple(entities))
        self._validate_references(by_id)

    def _validate_references(self, by_id: dict[str, Entity]) -> None:
        scheduled: set[str] = set()

        for entity in self.entities:
            if isinstance(entity, Grant):
                principal = by_id.get(entity.principal_id)
                if not isinstance(principal, Principal):
                    raise InvalidTargetError(
                        f"Grant {entity!r} references unknown principal '{entity.principal_id}'"
                    )
                resource = by_id.get(entity.resource_id)
                if not isinstance(resource, Resource) or resource.kind is ResourceKind.SCHEDULE:
                    raise InvalidTargetError(
                        f"Grant {entity!r} references '{entity.resource_id}', "
                        f"which is not a table or function"
                    )
            elif isinstance(entity, CronSchedule):
                target = by_id.get(entity.target_logical_id)
                if not isinstance(target, Function):
                    raise InvalidTargetError(
                        f"Schedule '{entity.logical_id}' must target a Function, "
                        f"got '{entity.target_logical_id}'"
                    )
                if entity.target_logical_id in scheduled:
                    raise DuplicateScheduleError(entity.target_logical_id)
                scheduled.add(entity.target_logical_id)
            elif isinstance(entity, Function) and entity.role_id is not None:
                if not isinstance(by_id.get(entity.role_id), ServiceRole):
                    raise InvalidTargetError(
                        f"Function '{entity.logical_id}' role '{entity.role_id}' "
                        f"is not a registered ServiceRole"
                    )

    @property
    def resources(self) -> tuple[Resource, ...]:
        """Tables and functions."""
        return tuple(
            e for e in self.entities
            if isinstance(e, Resource) and e.kind is not ResourceKind.SCHEDULE
        )

    @property
    def principals(self) -> tuple[Principal, ...]:
        return tuple(e for e in self.entities if isinstance(e, Principal))

    @property
    def grants(self) -> tuple[Grant, ...]:
        return tuple(e for e in self.entities if isinstance(e, Grant))

    @property
    def schedules(self) -> tuple[CronSchedule, ...]:
        return tuple(e for e in self.entities if isinstance(e, CronSchedule))

    def get(self, logical_id: str) -> Resource | Principal | None:
        """Get a resource or principal by logical id."""
        for entity in self.entities:
            if not isinstance(entity, Grant) and entity.logical_id == logical_id:
                return entity
        return None

    def schedule_for(self, function_id: str) -> CronSchedule | None:
        """Get the schedule bound to a function, if any."""
        for schedule in self.schedules:
            if schedule.target_logical_id == function_id:
                return schedule
        return None

    def __len__(self) -> int:
        return len(self.entities)

    def __repr__(self) -> str:
        return (
            f"Graph({self.name}, resources={len(self.resources)}, "
            f"principals={len(self.principals)}, grants={len(self.grants)}, "
            f"schedules={len(self.schedules)})"
        )
