"""
Compute resources for moraine stacks.
"""

from moraine.compute.resources import Architecture, Function

__all__ = ["Architecture", "Function"]
