"""Core application utilities."""

from .config import Settings, get_settings
from .crypto import TokenEncryptionError, decrypt_token, encrypt_token
from .database import (
    async_session_factory,
    close_db,
    engine,
    get_session,
    get_session_context,
    get_session_factory,
    init_db,
)
from .dependencies import (
    AdminDep,
    CurrentUser,
    CurrentUserDep,
    LeadershipDep,
    OptionalProfileDep,
    OrgContextDep,
    SessionDep,
    SessionFactoryDep,
    get_current_user,
    get_optional_profile,
    require_admin,
    require_leadership,
    require_org_context,
)
from .security import (
    BearerIdentity,
    create_access_token,
    verify_bearer_token,
    verify_slack_signature,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Crypto
    "encrypt_token",
    "decrypt_token",
    "TokenEncryptionError",
    # Database
    "engine",
    "async_session_factory",
    "get_session",
    "get_session_context",
    "get_session_factory",
    "init_db",
    "close_db",
    # Dependencies
    "CurrentUser",
    "get_current_user",
    "get_optional_profile",
    "require_org_context",
    "require_admin",
    "require_leadership",
    "CurrentUserDep",
    "OptionalProfileDep",
    "OrgContextDep",
    "AdminDep",
    "LeadershipDep",
    "SessionDep",
    "SessionFactoryDep",
    # Security
    "BearerIdentity",
    "create_access_token",
    "verify_bearer_token",
    "verify_slack_signature",
]
