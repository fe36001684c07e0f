"""
Scheduling Resources: time-based triggers for functions.

A CronSchedule binds a cron expression, evaluated in a timezone, to a
Function in the same stack.
"""

from dataclasses import dataclass
from typing import Any

from moraine.core.resource import Resource, ResourceKind, validate_logical_id
from moraine.scheduling.cron import parse_cron


def schedule_id_for(function_id: str) -> str:
    """Logical id of the schedule bound to a function."""
    return f"{function_id}Schedule"


@dataclass(frozen=True)
class CronSchedule(Resource):
    """
    Time-based invocation trigger for a function.

    Maps to:
    - EventBridge Scheduler on AWS
    - A recorded entry locally

    Standard cron format: "minute hour day month weekday [year]"
    Examples:
    - "0 12 * * *" - Daily at noon
    - "0 */4 * * *" - Every 4 hours
    - "0 9 * * 1-5" - Weekdays at 9:00
    """

    logical_id: str
    cron_expression: str
    """Cron expression defining the schedule"""

    timezone: str
    """Timezone for schedule evaluation (IANA name)"""

    target_logical_id: str
    """Logical id of the Function to invoke"""

    enabled: bool = True
    """Whether the schedule is active"""

    description: str | None = None

    def __post_init__(self):
        validate_logical_id(self.logical_id)
        if not self.timezone:
            raise ValueError(f"Schedule '{self.logical_id}' needs a timezone")
        parse_cron(self.cron_expression)

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.SCHEDULE

    def references(self) -> list[str]:
        return [self.target_logical_id]

    def attributes(self) -> dict[str, Any]:
        attrs: dict[str, Any] = {
            "cron_expression": self.cron_expression,
            "timezone": self.timezone,
            "target_logical_id": self.target_logical_id,
            "enabled": self.enabled,
        }
        if self.description is not None:
            attrs["description"] = self.description
        return attrs

    def __repr__(self):
        status = "enabled" if self.enabled else "disabled"
        return f"CronSchedule({self.cron_expression} {self.timezone} -> {self.target_logical_id}, {status})"
