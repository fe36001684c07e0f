"""
Identities (users and service roles) for moraine stacks.
"""

from moraine.identity.principals import Principal, PrincipalKind, ServiceRole, User

__all__ = ["Principal", "PrincipalKind", "ServiceRole", "User"]
