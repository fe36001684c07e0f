"""
Compute Resources: serverless functions.

A Function wraps an opaque reference to an externally built code
artifact. moraine never inspects or executes the artifact.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from moraine.core.resource import Resource, ResourceKind, validate_logical_id


class Architecture(str, Enum):
    """Instruction set the function runs on."""

    X86_64 = "x86_64"
    ARM_64 = "arm64"


@dataclass(frozen=True)
class Function(Resource):
    """
    Serverless compute function.

    Maps to:
    - AWS Lambda
    - A recorded entry locally

    Example:
        notifier = Function(
            "NotifierFunction",
            entry_point="backend/target/lambda/notifier",
            architecture=Architecture.ARM_64,
            timeout_seconds=30,
            role_id="NotifierRole",
        )
    """

    logical_id: str
    """Stable logical id within the stack"""

    entry_point: str
    """Opaque reference to the code artifact (asset path, image URI, ...)"""

    architecture: Architecture = Architecture.X86_64
    """Instruction set architecture"""

    timeout_seconds: int = 3
    """Timeout in seconds"""

    memory_mb: int = 128
    """Memory in MB"""

    runtime: str = "provided.al2023"
    """Runtime identifier"""

    handler: str = "bootstrap"
    """Handler name within the artifact"""

    function_name: str | None = None
    """Optional physical function name"""

    role_id: str | None = None
    """Logical id of the service role the function executes as"""

    environment: Mapping[str, str] = field(default_factory=dict, hash=False)
    """Environment variables (copied and read-only once constructed)"""

    def __post_init__(self):
        validate_logical_id(self.logical_id)
        if not self.entry_point:
            raise ValueError(f"Function '{self.logical_id}' needs an entry point")
        if self.timeout_seconds <= 0:
            raise ValueError(
                f"Function '{self.logical_id}': timeout must be positive, "
                f"got {self.timeout_seconds}"
            )
        if self.memory_mb <= 0:
            raise ValueError(
                f"Function '{self.logical_id}': memory must be positive, "
                f"got {self.memory_mb}"
            )
        object.__setattr__(self, "architecture", Architecture(self.architecture))
        object.__setattr__(self, "environment", MappingProxyType(dict(self.environment)))

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.FUNCTION

    def references(self) -> list[str]:
        return [self.role_id] if self.role_id else []

    def attributes(self) -> dict[str, Any]:
        attrs: dict[str, Any] = {
            "architecture": self.architecture.value,
            "timeout_seconds": self.timeout_seconds,
            "memory_mb": self.memory_mb,
            "runtime": self.runtime,
            "handler": self.handler,
            "entry_point": self.entry_point,
        }
        if self.function_name is not None:
            attrs["function_name"] = self.function_name
        if self.role_id is not None:
            attrs["role_id"] = self.role_id
        if self.environment:
            attrs["environment"] = dict(sorted(self.environment.items()))
        return attrs

    def __repr__(self):
        return (
            f"Function({self.logical_id}, arch={self.architecture.value}, "
            f"timeout={self.timeout_seconds})"
        )
