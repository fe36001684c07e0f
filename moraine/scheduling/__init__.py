"""
Scheduling resources for moraine stacks.
"""

from moraine.scheduling.cron import CronExpression, parse_cron
from moraine.scheduling.resources import CronSchedule, schedule_id_for

__all__ = ["CronExpression", "CronSchedule", "parse_cron", "schedule_id_for"]
