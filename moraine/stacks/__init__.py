"""
Application stacks built with moraine.
"""

from moraine.stacks.playlist_notification import build_stack

__all__ = ["build_stack"]
