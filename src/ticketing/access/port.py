"""Role directory port (abstract interface).

The ticketing core never inspects identity records. It asks one question,
"which roles does this identity hold for this event?", and gets back a
closed set of roles. Answers are never cached: every decision is taken
against the directory's current state.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Protocol

# Identity used when the platform itself acts, e.g. auto-approved refunds.
SYSTEM_IDENTITY = "system"


class Role(Enum):
    EVENT_OWNER = "event_owner"
    ORG_ADMIN = "org_admin"
    EVENT_MANAGER = "event_manager"
    SCANNER = "scanner"
    PLATFORM_ADMIN = "platform_admin"


class EventRef(Protocol):
    """The slice of an event the directory needs to answer a lookup."""

    id: str
    owner_id: str
    org_id: str | None


class AuthorizationDenied(Exception):
    """The acting identity lacks the roles an operation requires.

    Carries a stable ``reason`` code so callers can render a precise message.
    """

    def __init__(self, reason: str, identity_id: str | None = None, event_id: str | None = None) -> None:
        self.reason = reason
        self.identity_id = identity_id
        self.event_id = event_id
        super().__init__(reason)


class RoleDirectory(ABC):
    """Abstract role lookup."""

    @abstractmethod
    def roles_for(self, identity_id: str, event: EventRef) -> frozenset[Role]:
        """Return every role ``identity_id`` holds for ``event``."""
        ...

    @abstractmethod
    def is_platform_admin(self, identity_id: str) -> bool:
        """Whether ``identity_id`` administers the whole platform."""
        ...
