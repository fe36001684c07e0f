"""
Base provisioning backend abstraction.

A backend turns graph entities into real (or recorded) infrastructure.
moraine calls it one entity at a time, in resolver order, and treats each
call as blocking: it either returns or raises.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from moraine.core.grants import AccessMode
from moraine.core.resource import Resource
from moraine.identity.principals import Principal


@dataclass(frozen=True)
class ProviderRef:
    """Opaque identifier a backend returns once an entity exists."""

    logical_id: str
    physical_id: str
    kind: str


class Backend(ABC):
    """
    Base class for provisioning backends.

    Every operation must be idempotent keyed by logical id: creating an
    entity that already exists updates it in place, and applying a grant
    twice leaves one permission. Re-running materialization after a
    failure relies on this.
    """

    @abstractmethod
    def create_resource(self, descriptor: Resource) -> ProviderRef:
        """Create or update a table or function."""
        pass

    @abstractmethod
    def create_principal(self, descriptor: Principal) -> ProviderRef:
        """Create or update a user or service role."""
        pass

    @abstractmethod
    def apply_grant(self, principal: ProviderRef, resource: ProviderRef, mode: AccessMode) -> None:
        """Give a principal Read or Write access to a resource."""
        pass

    @abstractmethod
    def create_schedule(
        self, cron_expression: str, timezone: str, target: ProviderRef, enabled: bool = True
    ) -> None:
        """Create or update the schedule that invokes a function.

        A disabled schedule is still created but never fires.
        """
        pass

    @abstractmethod
    def get_provider_type(self) -> str:
        """Return the provider type (aws, local)."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type='{self.get_provider_type()}')"
