"""
Storage Resources: key-value tables.

A Table defines the key schema the application reads and writes by.
The backend decides what it becomes (a DynamoDB table on AWS, a dict
in the local backend).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from moraine.core.resource import Resource, ResourceKind, validate_logical_id


class AttributeType(str, Enum):
    """Scalar types allowed in a key schema."""

    STRING = "String"
    NUMBER = "Number"


@dataclass(frozen=True)
class KeyAttribute:
    """A named, typed key attribute."""

    name: str
    """Attribute name"""

    type: AttributeType = AttributeType.STRING
    """Attribute type"""

    def __post_init__(self):
        if not self.name:
            raise ValueError("Key attribute name must not be empty")
        # Accept plain strings ("String", "Number")
        object.__setattr__(self, "type", AttributeType(self.type))

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "type": self.type.value}


@dataclass(frozen=True)
class Table(Resource):
    """
    Persistent key-value table.

    Maps to:
    - DynamoDB (TableV2 / GlobalTable) on AWS
    - An in-memory mapping locally

    Example:
        users = Table(
            "UserTable",
            partition_key=KeyAttribute("name", AttributeType.STRING),
            sort_key=KeyAttribute("order", AttributeType.NUMBER),
        )
    """

    logical_id: str
    """Stable logical id within the stack"""

    partition_key: KeyAttribute
    """Partition (hash) key"""

    sort_key: KeyAttribute | None = None
    """Optional sort (range) key"""

    table_name: str | None = None
    """Optional physical table name"""

    def __post_init__(self):
        validate_logical_id(self.logical_id)
        if self.sort_key is not None and self.sort_key.name == self.partition_key.name:
            raise ValueError(
                f"Table '{self.logical_id}': sort key must differ from partition key"
            )

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.TABLE

    def key_attributes(self) -> list[KeyAttribute]:
        """Partition key followed by sort key, if any."""
        if self.sort_key is None:
            return [self.partition_key]
        return [self.partition_key, self.sort_key]

    def attributes(self) -> dict[str, Any]:
        attrs: dict[str, Any] = {"partition_key": self.partition_key.to_dict()}
        if self.sort_key is not None:
            attrs["sort_key"] = self.sort_key.to_dict()
        if self.table_name is not None:
            attrs["table_name"] = self.table_name
        return attrs

    def __repr__(self):
        keys = ", ".join(f"{k.name}:{k.type.value}" for k in self.key_attributes())
        return f"Table({self.logical_id}, keys=[{keys}])"


def table(
    logical_id: str,
    partition_key: str,
    partition_type: AttributeType | str = AttributeType.STRING,
    sort_key: str | None = None,
    sort_type: AttributeType | str = AttributeType.STRING,
    table_name: str | None = None,
) -> Table:
    """
    Create a table descriptor.

    Example:
        # Single-item table keyed by a constant
        tokens = table("TokenTable", "singleton_key")

        # Composite key
        users = table("UserTable", "name", sort_key="order", sort_type="Number")
    """
    return Table(
        logical_id=logical_id,
        partition_key=KeyAttribute(partition_key, partition_type),
        sort_key=KeyAttribute(sort_key, sort_type) if sort_key else None,
        table_name=table_name,
    )
