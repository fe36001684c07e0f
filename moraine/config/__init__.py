"""
Configuration classes for moraine stacks.
"""

from moraine.config.provider import AwsConfig, StackConfig, load_config

__all__ = ["AwsConfig", "StackConfig", "load_config"]
