"""
Storage resources for moraine stacks.
"""

from moraine.storage.resources import AttributeType, KeyAttribute, Table, table

__all__ = ["AttributeType", "KeyAttribute", "Table", "table"]
