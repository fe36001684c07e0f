"""
Principals: identities that can be granted access to resources.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from moraine.core.resource import validate_logical_id


class PrincipalKind(str, Enum):
    """Kinds of principals."""

    USER = "User"
    SERVICE_ROLE = "ServiceRole"


class Principal(ABC):
    """Abstract base class for principals."""

    logical_id: str

    @property
    @abstractmethod
    def kind(self) -> PrincipalKind:
        pass

    @abstractmethod
    def attributes(self) -> dict[str, Any]:
        pass

    @property
    def node_id(self) -> str:
        return self.logical_id

    def references(self) -> list[str]:
        return []

    def to_dict(self) -> dict[str, Any]:
        return {
            "logical_id": self.logical_id,
            "kind": self.kind.value,
            "attributes": self.attributes(),
        }


@dataclass(frozen=True)
class User(Principal):
    """
    Human identity, e.g. a user for running the application locally
    against real tables.
    """

    logical_id: str
    user_name: str | None = None

    def __post_init__(self):
        validate_logical_id(self.logical_id)

    @property
    def kind(self) -> PrincipalKind:
        return PrincipalKind.USER

    def attributes(self) -> dict[str, Any]:
        return {"user_name": self.user_name} if self.user_name else {}


@dataclass(frozen=True)
class ServiceRole(Principal):
    """
    Role assumed by a cloud service, e.g. a function's execution role.

    Managed policies are usually attached after registration through
    Stack.attach_managed_policy; the built graph carries them here.
    """

    logical_id: str
    trusted_service: str
    """Service principal allowed to assume the role (lambda.amazonaws.com)"""

    managed_policies: tuple[str, ...] = ()
    """Managed policy references (ARNs)"""

    role_name: str | None = None

    def __post_init__(self):
        validate_logical_id(self.logical_id)
        if not self.trusted_service:
            raise ValueError(f"ServiceRole '{self.logical_id}' needs a trusted service")
        object.__setattr__(self, "managed_policies", tuple(self.managed_policies))

    @property
    def kind(self) -> PrincipalKind:
        return PrincipalKind.SERVICE_ROLE

    def attributes(self) -> dict[str, Any]:
        attrs: dict[str, Any] = {
            "trusted_service": self.trusted_service,
            "managed_policies": list(self.managed_policies),
        }
        if self.role_name:
            attrs["role_name"] = self.role_name
        return attrs
