"""
Errors raised while composing and materializing a stack.

Everything under GraphError is a local validation failure detected
before any backend call. BackendError wraps failures reported by a
provisioning backend during materialization.
"""


class MoraineError(Exception):
    """Base class for all moraine errors."""
    pass


class GraphError(MoraineError):
    """Raised when a stack graph fails validation."""
    pass


class DuplicateIdError(GraphError):
    """Raised when a logical id is registered twice."""

    def __init__(self, logical_id: str):
        self.logical_id = logical_id
        super().__init__(f"Logical id '{logical_id}' is already registered")


class ForeignHandleError(GraphError):
    """Raised when a handle issued by a different stack is used."""

    def __init__(self, logical_id: str, stack_name: str):
        self.logical_id = logical_id
        self.stack_name = stack_name
        super().__init__(
            f"Handle for '{logical_id}' was not issued by stack '{stack_name}'"
        )


class CyclicDependencyError(GraphError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, cycle: list[str] | None = None):
        self.cycle = cycle or []
        path = " -> ".join(self.cycle) if self.cycle else "unknown"
        super().__init__(f"Dependency graph contains a cycle: {path}")


class InvalidTargetError(GraphError):
    """Raised when a reference does not point at an entity of the right kind."""
    pass


class DuplicateScheduleError(GraphError):
    """Raised when a function already has a schedule bound to it."""

    def __init__(self, function_id: str):
        self.function_id = function_id
        super().__init__(f"Function '{function_id}' already has a schedule")


class MalformedCronError(GraphError):
    """Raised when a cron expression cannot be parsed."""

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Malformed cron expression '{expression}': {reason}")


class BackendError(MoraineError):
    """
    Raised when the provisioning backend fails during materialization.

    The original exception is chained as __cause__. Entities materialized
    before the failing step are left in place.
    """

    def __init__(self, logical_id: str, operation: str, message: str):
        self.logical_id = logical_id
        self.operation = operation
        super().__init__(f"{operation} failed for '{logical_id}': {message}")
