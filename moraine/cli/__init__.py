"""
Command-line interface for moraine.
"""

from moraine.cli.main import cli

__all__ = ["cli"]
