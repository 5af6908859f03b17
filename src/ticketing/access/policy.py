"""Who may do what, expressed over the closed Role set."""

from ticketing.access import SYSTEM_IDENTITY, AuthorizationDenied, Role, get_directory
from ticketing.access.port import EventRef

SCAN_ROLES = frozenset({Role.EVENT_OWNER, Role.ORG_ADMIN, Role.EVENT_MANAGER, Role.SCANNER})
REFUND_ROLES = frozenset({Role.EVENT_OWNER, Role.ORG_ADMIN, Role.PLATFORM_ADMIN})
AUDIT_ROLES = frozenset({Role.EVENT_OWNER, Role.ORG_ADMIN, Role.EVENT_MANAGER, Role.PLATFORM_ADMIN})
ORGANIZER_ROLES = frozenset({Role.EVENT_OWNER, Role.ORG_ADMIN})


def roles_for(identity_id: str, event: EventRef) -> frozenset[Role]:
    """Look up roles fresh from the directory.

    The platform's own identity acts with platform-admin rights.
    """
    if identity_id == SYSTEM_IDENTITY:
        return frozenset({Role.PLATFORM_ADMIN})
    return get_directory().roles_for(identity_id, event)


def authorize_scanner(identity_id: str, event: EventRef) -> frozenset[Role]:
    roles = roles_for(identity_id, event)
    if not roles & SCAN_ROLES:
        raise AuthorizationDenied("not_event_scanner", identity_id=identity_id, event_id=str(event.id))
    return roles


def authorize_refund_manager(identity_id: str, event: EventRef) -> frozenset[Role]:
    roles = roles_for(identity_id, event)
    if not roles & REFUND_ROLES:
        raise AuthorizationDenied("not_refund_manager", identity_id=identity_id, event_id=str(event.id))
    return roles


def authorize_auditor(identity_id: str, event: EventRef) -> frozenset[Role]:
    roles = roles_for(identity_id, event)
    if not roles & AUDIT_ROLES:
        raise AuthorizationDenied("not_event_manager", identity_id=identity_id, event_id=str(event.id))
    return roles


def authorize_platform_admin(identity_id: str) -> None:
    """Platform-wide operations that are not tied to one event."""
    if identity_id == SYSTEM_IDENTITY or get_directory().is_platform_admin(identity_id):
        return
    raise AuthorizationDenied("not_platform_admin", identity_id=identity_id)


def refund_type(roles: frozenset[Role]) -> str:
    """Classify a refund as organizer-initiated or admin-initiated."""
    return "organizer" if roles & ORGANIZER_ROLES else "admin"
