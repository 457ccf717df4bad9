"""FastAPI dependencies for authentication, authorization, and context."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import AccessLevel, Profile, ProfileStatus
from .database import get_session, get_session_factory
from .security import BearerIdentity, verify_bearer_token

logger = logging.getLogger(__name__)

# Security scheme
bearer_scheme = HTTPBearer(auto_error=False)

PENDING_PROVIDER_PREFIX = "pending_"


async def get_profile_for_identity(
    session: AsyncSession,
    identity: BearerIdentity,
) -> Profile | None:
    """Find the profile a verified token belongs to.

    Invited team members have a placeholder provider id until they sign up;
    the first Firebase sign-in with a matching email claims that profile.
    """
    if identity.provider == "local":
        if identity.profile_id is None:
            return None
        return await session.get(Profile, identity.profile_id)

    result = await session.execute(
        select(Profile).where(Profile.auth_provider_id == identity.subject)
    )
    profile = result.scalar_one_or_none()
    if profile or not identity.email:
        return profile

    result = await session.execute(
        select(Profile).where(
            func.lower(Profile.email) == identity.email.lower(),
            Profile.auth_provider_id.startswith(PENDING_PROVIDER_PREFIX),
        )
    )
    profile = result.scalar_one_or_none()
    if profile:
        logger.info(f"Linking invited profile {profile.id} to Firebase uid {identity.subject}")
        profile.auth_provider_id = identity.subject
        profile.status = ProfileStatus.ACTIVE
        if identity.picture and not profile.avatar_url:
            profile.avatar_url = identity.picture
        await session.flush()
    return profile


class CurrentUser:
    """Represents the authenticated caller and their organization scope."""

    def __init__(self, profile: Profile):
        self.profile = profile

    @property
    def id(self) -> UUID:
        return self.profile.id

    @property
    def organization_id(self) -> UUID | None:
        return self.profile.organization_id

    @property
    def access_level(self) -> AccessLevel:
        return self.profile.access_level

    @property
    def is_admin(self) -> bool:
        return self.profile.access_level == AccessLevel.ADMIN

    @property
    def is_leadership(self) -> bool:
        """Admins and the executive leadership team."""
        return self.profile.access_level in (AccessLevel.ADMIN, AccessLevel.ELT)


async def get_optional_profile(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> Profile | None:
    """Authenticate the bearer token and return the caller's profile, if any.

    Raises 401 for a missing or invalid token. A valid token without a
    profile yields None (the account is still being provisioned).
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    identity = verify_bearer_token(credentials.credentials)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return await get_profile_for_identity(session, identity)


async def get_current_user(
    profile: Annotated[Profile | None, Depends(get_optional_profile)],
) -> CurrentUser:
    """Dependency to get the current authenticated user's profile."""
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found",
        )
    if profile.status == ProfileStatus.INACTIVE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )
    return CurrentUser(profile)


def require_org_context(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Require that the caller belongs to an organization."""
    if not current_user.organization_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No organization",
        )
    return current_user


def require_admin(
    current_user: Annotated[CurrentUser, Depends(require_org_context)],
) -> CurrentUser:
    """Require the admin access level."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden - Admin access required",
        )
    return current_user


def require_leadership(
    current_user: Annotated[CurrentUser, Depends(require_org_context)],
) -> CurrentUser:
    """Require admin or ELT access level."""
    if not current_user.is_leadership:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        )
    return current_user


# Type aliases for cleaner dependency injection
OptionalProfileDep = Annotated[Profile | None, Depends(get_optional_profile)]
CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
OrgContextDep = Annotated[CurrentUser, Depends(require_org_context)]
AdminDep = Annotated[CurrentUser, Depends(require_admin)]
LeadershipDep = Annotated[CurrentUser, Depends(require_leadership)]
SessionDep = Annotated[AsyncSession, Depends(get_session)]
SessionFactoryDep = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
