"""
Shared base for provisionable entities.

Resources (tables, functions, schedules) and principals (users, roles)
share one logical id namespace within a stack.
"""

import re
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

_LOGICAL_ID = re.compile(r"^[A-Za-z][A-Za-z0-9]*$")


class ResourceKind(str, Enum):
    """Kinds of provisionable resources."""

    TABLE = "Table"
    FUNCTION = "Function"
    SCHEDULE = "Schedule"


def validate_logical_id(logical_id: str) -> None:
    """
    Check that a logical id is usable as a CloudFormation logical id.

    Raises:
        ValueError: If the id is empty or not alphanumeric
    """
    if not isinstance(logical_id, str) or not _LOGICAL_ID.match(logical_id):
        raise ValueError(
            f"Invalid logical id {logical_id!r}: must be alphanumeric "
            f"and start with a letter"
        )


class Resource(ABC):
    """
    Abstract base class for resource descriptors.

    Subclasses are frozen dataclasses with a `logical_id` field.
    """

    logical_id: str

    @property
    @abstractmethod
    def kind(self) -> ResourceKind:
        """Resource kind."""
        pass

    @abstractmethod
    def attributes(self) -> dict[str, Any]:
        """Kind-specific attributes as plain data."""
        pass

    @property
    def node_id(self) -> str:
        return self.logical_id

    def references(self) -> list[str]:
        """Logical ids this resource depends on."""
        return []

    def to_dict(self) -> dict[str, Any]:
        return {
            "logical_id": self.logical_id,
            "kind": self.kind.value,
            "attributes": self.attributes(),
        }
