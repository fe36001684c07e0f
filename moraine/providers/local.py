"""
Local provider for development and testing.
"""

from typing import Any

from moraine.core.grants import AccessMode
from moraine.core.resource import Resource
from moraine.identity.principals import Principal
from moraine.providers.base import Backend, ProviderRef


class LocalBackend(Backend):
    """
    In-memory backend for development and testing.

    Keeps every created entity in dictionaries keyed by logical id and
    records each call in `calls`. Useful for:
    - Dry runs of a stack
    - Testing materialization without a cloud account
    - Checking that re-running a stack is idempotent

    Example:
        backend = LocalBackend()
        stack.materialize(backend)

        backend.resources["UserTable"]
        backend.grants  # {("LocalTestUser", "UserTable", AccessMode.READ)}
    """

    def __init__(self, prefix: str = "local"):
        """
        Initialize local backend.

        Args:
            prefix: Prefix of the physical ids handed out
        """
        self.prefix = prefix
        self.resources: dict[str, Resource] = {}
        self.principals: dict[str, Principal] = {}
        self.grants: set[tuple[str, str, AccessMode]] = set()
        self.schedules: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []

    def _ref(self, logical_id: str, kind: str) -> ProviderRef:
        return ProviderRef(
            logical_id=logical_id,
            physical_id=f"{self.prefix}:{kind.lower()}:{logical_id}",
            kind=kind,
        )

    def create_resource(self, descriptor: Resource) -> ProviderRef:
        self.calls.append(("create_resource", descriptor.logical_id))
        self.resources[descriptor.logical_id] = descriptor
        return self._ref(descriptor.logical_id, descriptor.kind.value)

    def create_principal(self, descriptor: Principal) -> ProviderRef:
        self.calls.append(("create_principal", descriptor.logical_id))
        self.principals[descriptor.logical_id] = descriptor
        return self._ref(descriptor.logical_id, descriptor.kind.value)

    def apply_grant(self, principal: ProviderRef, resource: ProviderRef, mode: AccessMode) -> None:
        self.calls.append(
            ("apply_grant", f"{principal.logical_id}:{resource.logical_id}:{mode.value}")
        )
        self.grants.add((principal.logical_id, resource.logical_id, mode))

    def create_schedule(
        self, cron_expression: str, timezone: str, target: ProviderRef, enabled: bool = True
    ) -> None:
        self.calls.append(("create_schedule", target.logical_id))
        self.schedules[target.logical_id] = {
            "cron_expression": cron_expression,
            "timezone": timezone,
            "target": target.physical_id,
            "enabled": enabled,
        }

    def get_provider_type(self) -> str:
        return "local"
