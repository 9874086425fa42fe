"""Household membership: roles and per-user permissions."""

from .manager import RoleManager, can_change_role, can_edit_member

__all__ = ["RoleManager", "can_change_role", "can_edit_member"]
