"""Authentication and authorization for the EHS Platform."""
from .ability import Ability, AbilityBuilder, Action, Subject, define_abilities
from .models import SessionUser
from .roles import Permission, Role, get_permissions, has_permission

__all__ = [
    "Ability",
    "AbilityBuilder",
    "Action",
    "Subject",
    "define_abilities",
    "SessionUser",
    "Permission",
    "Role",
    "get_permissions",
    "has_permission",
]
