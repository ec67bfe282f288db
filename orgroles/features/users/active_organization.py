"""
Active organization resolution and switching.

A user's active organization is either VALID (the recorded id points to an
organization the user currently belongs to) or UNSET (nothing recorded, or
the recorded id is stale). A switch replaces the recorded id and re-issues
credentials scoped to the new organization.
"""
import enum
from typing import Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from orgroles.core.errors import NotAuthorizedError, NotFoundError
from orgroles.features.organizations.models import Organization
from orgroles.features.organizations.service import get_organization, is_member, list_user_organizations
from orgroles.features.users.models import User
from orgroles.features.users.schemas import TokenResponse
from orgroles.features.users.tokens import TokenManager
from orgroles.utils import get_logger


log = get_logger(__name__)


class ActiveOrganizationState(str, enum.Enum):
    UNSET = "unset"
    VALID = "valid"


class ActiveOrganization:
    """
    Resolves the active organization of one user.

    Usage:
        active = await ActiveOrganization.load(db, user)
        if active.state is ActiveOrganizationState.VALID:
            org = active.organization
    """

    def __init__(self, user: User, memberships: list[Organization]):
        self.user = user
        self.memberships = memberships

    @classmethod
    async def load(cls, db: AsyncSession, user: User) -> "ActiveOrganization":
        return cls(user, await list_user_organizations(db, user.id))

    def has_organization(self) -> bool:
        return bool(self.memberships)

    @property
    def organization(self) -> Optional[Organization]:
        for org in self.memberships:
            if org.id == self.user.active_organization_id:
                return org
        return None

    @property
    def state(self) -> ActiveOrganizationState:
        if self.organization is None:
            return ActiveOrganizationState.UNSET
        return ActiveOrganizationState.VALID

    def is_valid(self) -> bool:
        return self.state is ActiveOrganizationState.VALID


async def get_active_organization(db: AsyncSession, user: User) -> Organization:
    """
    Raises:
        NotFoundError: the user belongs to no organization
        NotAuthorizedError: nothing valid is recorded; no fallback is chosen
    """
    active = await ActiveOrganization.load(db, user)

    if not active.has_organization():
        raise NotFoundError("No available organizations.")

    if not active.is_valid():
        log.warning("User %s has stale active organization %s", user.id, user.active_organization_id)
        raise NotAuthorizedError("Action not allowed.")

    return active.organization


async def switch_active_organization(
    db: AsyncSession,
    user: User,
    organization_id: str,
    claims: Optional[dict[str, Any]] = None,
) -> TokenResponse:
    """
    Make ``organization_id`` the user's only active organization and mint
    credentials for it. Nothing is written when a check fails.

    Raises:
        NotFoundError: the organization does not exist
        NotAuthorizedError: the user is not a member of it
    """
    organization = await get_organization(db, organization_id)
    if organization is None:
        raise NotFoundError(f"{organization_id} not found")

    if not await is_member(db, organization.id, user.id):
        log.warning("User %s tried to switch to non-member organization %s", user.id, organization_id)
        raise NotAuthorizedError("Not a member of this organization.")

    user.active_organization_id = organization.id
    await db.flush()
    log.info("User %s switched active organization to %s", user.id, organization.name)

    return TokenManager(user, organization, claims).generate_tokens()
