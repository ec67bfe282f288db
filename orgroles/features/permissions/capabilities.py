"""
Capabilities and the per-request authorization context.
"""
import enum
from dataclasses import dataclass
from typing import Iterable, Optional

from orgroles.features.organizations.models import Organization
from orgroles.features.users.models import User


class Capability(str, enum.Enum):
    # Global
    VIEW_ORGANIZATIONS = "view-organizations"
    MANAGE_ORGANIZATIONS = "manage-organizations"
    # Organization scoped
    VIEW_ORGANIZATION = "view-organization"
    MANAGE_ORGANIZATION = "manage-organization"
    VIEW_MEMBERS = "view-members"
    MANAGE_MEMBERS = "manage-members"
    VIEW_ROLES = "view-roles"
    MANAGE_ROLES = "manage-roles"


GLOBAL_CAPABILITIES = frozenset({
    Capability.VIEW_ORGANIZATIONS,
    Capability.MANAGE_ORGANIZATIONS,
})

SCOPED_CAPABILITIES = frozenset(Capability) - GLOBAL_CAPABILITIES

ADMIN_ROLE = "admin"
MEMBER_ROLE = "member"

# Roles every organization carries; never deletable
DEFAULT_ORG_ROLES = frozenset({ADMIN_ROLE, MEMBER_ROLE})

DEFAULT_ROLE_DESCRIPTIONS = {
    ADMIN_ROLE: "Manage the organization, its members and its roles",
    MEMBER_ROLE: "View the organization, its members and its roles",
}

ROLE_CAPABILITIES = {
    ADMIN_ROLE: SCOPED_CAPABILITIES,
    MEMBER_ROLE: frozenset({
        Capability.VIEW_ORGANIZATION,
        Capability.VIEW_MEMBERS,
        Capability.VIEW_ROLES,
    }),
}


def global_capabilities_for(user: User) -> frozenset[Capability]:
    return GLOBAL_CAPABILITIES if user.is_admin else frozenset()


def capabilities_for_roles(role_names: Iterable[str]) -> frozenset[Capability]:
    """
    Scoped capabilities granted by holding the given organization roles.

    Default roles map through ROLE_CAPABILITIES; a role named exactly after a
    scoped capability grants that capability.
    """
    granted: set[Capability] = set()
    for name in role_names:
        granted |= ROLE_CAPABILITIES.get(name, frozenset())
        try:
            capability = Capability(name)
        except ValueError:
            continue
        if capability in SCOPED_CAPABILITIES:
            granted.add(capability)
    return frozenset(granted)


@dataclass(frozen=True)
class AuthContext:
    """
    What the acting user may do, optionally scoped to one organization.
    """
    actor: User
    global_capabilities: frozenset[Capability]
    organization: Optional[Organization] = None
    organization_capabilities: frozenset[Capability] = frozenset()

    def allows(self, global_capability: Capability, scoped_capability: Capability) -> bool:
        if global_capability in self.global_capabilities:
            return True
        return self.organization is not None and scoped_capability in self.organization_capabilities

    def can_manage_roles(self) -> bool:
        return self.allows(Capability.MANAGE_ORGANIZATIONS, Capability.MANAGE_ROLES)

    def can_view_roles(self) -> bool:
        return self.allows(Capability.VIEW_ORGANIZATIONS, Capability.VIEW_ROLES)

    def can_view_organization(self) -> bool:
        return self.allows(Capability.VIEW_ORGANIZATIONS, Capability.VIEW_ORGANIZATION)

    def can_manage_members(self) -> bool:
        return self.allows(Capability.MANAGE_ORGANIZATIONS, Capability.MANAGE_MEMBERS)
