"""
Provisioning backends.

Example:
    from moraine.providers import LocalBackend, CloudFormationBackend

    stack.materialize(LocalBackend())
"""

from moraine.providers.base import Backend, ProviderRef
from moraine.providers.local import LocalBackend
from moraine.providers.aws import CloudFormationBackend

__all__ = ["Backend", "CloudFormationBackend", "LocalBackend", "ProviderRef"]
