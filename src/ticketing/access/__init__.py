"""Role directory factory.

Provides get_directory() / set_directory() to swap implementations.
ROLE_DIRECTORY selects the adapter; "memory" is the only built-in one.
"""

import os

from ticketing.access.port import SYSTEM_IDENTITY, AuthorizationDenied, Role, RoleDirectory

__all__ = [
    "SYSTEM_IDENTITY",
    "AuthorizationDenied",
    "Role",
    "RoleDirectory",
    "get_directory",
    "set_directory",
    "reset_directory",
]

_current_directory: RoleDirectory | None = None


def get_directory() -> RoleDirectory:
    """Return the configured role directory (singleton)."""
    global _current_directory
    if _current_directory is None:
        adapter = os.environ.get("ROLE_DIRECTORY", "memory")
        if adapter == "memory":
            from ticketing.access.memory_adapter import InMemoryRoleDirectory

            _current_directory = InMemoryRoleDirectory()
        else:
            raise ValueError(f"Unknown role directory: {adapter}")
    return _current_directory


def set_directory(directory: RoleDirectory) -> None:
    """Override the active role directory (useful for tests)."""
    global _current_directory
    _current_directory = directory


def reset_directory() -> None:
    """Reset to the default directory."""
    global _current_directory
    _current_directory = None
