"""In-memory role directory for development and testing.

Event ownership comes from the event itself; every other role is an
explicit grant. Scanner grants can be disabled without being removed,
mirroring how door staff are switched off after an event.
"""

from ticketing.access.port import EventRef, Role, RoleDirectory


class InMemoryRoleDirectory(RoleDirectory):
    def __init__(self) -> None:
        self.platform_admins: set[str] = set()
        self.org_admins: set[tuple[str, str]] = set()
        self.event_managers: set[tuple[str, str]] = set()
        self.scanners: dict[tuple[str, str], bool] = {}

    def grant_platform_admin(self, identity_id: str) -> None:
        self.platform_admins.add(identity_id)

    def grant_org_admin(self, org_id: str, identity_id: str) -> None:
        self.org_admins.add((org_id, identity_id))

    def grant_event_manager(self, event_id: str, identity_id: str) -> None:
        self.event_managers.add((event_id, identity_id))

    def grant_scanner(self, event_id: str, identity_id: str, enabled: bool = True) -> None:
        self.scanners[(event_id, identity_id)] = enabled

    def disable_scanner(self, event_id: str, identity_id: str) -> None:
        if (event_id, identity_id) in self.scanners:
            self.scanners[(event_id, identity_id)] = False

    def is_platform_admin(self, identity_id: str) -> bool:
        return identity_id in self.platform_admins

    def roles_for(self, identity_id: str, event: EventRef) -> frozenset[Role]:
        event_id = str(event.id)
        roles = set()

        if str(event.owner_id) == identity_id:
            roles.add(Role.EVENT_OWNER)
        if event.org_id and (str(event.org_id), identity_id) in self.org_admins:
            roles.add(Role.ORG_ADMIN)
        if (event_id, identity_id) in self.event_managers:
            roles.add(Role.EVENT_MANAGER)
        if self.scanners.get((event_id, identity_id), False):
            roles.add(Role.SCANNER)
        if self.is_platform_admin(identity_id):
            roles.add(Role.PLATFORM_ADMIN)

        return frozenset(roles)
