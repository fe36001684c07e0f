"""
Grant relations: declared access from a principal to a resource.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class AccessMode(str, Enum):
    """Access modes. Read and Write on the same pair are additive."""

    READ = "Read"
    WRITE = "Write"


@dataclass(frozen=True)
class Grant:
    """
    Immutable (principal, resource, mode) record.

    Two grants are equal when all three fields match, which is what
    makes repeated identical grants idempotent.
    """

    principal_id: str
    resource_id: str
    mode: AccessMode

    def __post_init__(self):
        object.__setattr__(self, "mode", AccessMode(self.mode))

    @property
    def node_id(self) -> str:
        return f"grant:{self.principal_id}:{self.resource_id}:{self.mode.value}"

    def references(self) -> list[str]:
        return [self.principal_id, self.resource_id]

    def to_dict(self) -> dict[str, Any]:
        return {
            "principal_id": self.principal_id,
            "resource_id": self.resource_id,
            "mode": self.mode.value,
        }

    def __repr__(self):
        return f"grant({self.principal_id}, {self.resource_id}, {self.mode.value})"
