"""Security utilities: bearer token verification and webhook signatures."""

import hashlib
import hmac
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Literal
from uuid import UUID

import jwt
from pydantic import BaseModel

from .config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

SLACK_SIGNATURE_MAX_AGE_SECONDS = 60 * 5
JWT_ALGORITHM = "HS256"

_firebase_app = None


class BearerIdentity(BaseModel):
    """Who a verified bearer token belongs to.

    `subject` is the Firebase uid for identity-provider tokens and the
    profile id for locally issued JWTs.
    """

    provider: Literal["firebase", "local"]
    subject: str
    email: str | None = None
    picture: str | None = None
    expires_at: datetime | None = None

    @property
    def profile_id(self) -> UUID | None:
        if self.provider != "local":
            return None
        try:
            return UUID(self.subject)
        except ValueError:
            return None


# =============================================================================
# FIREBASE
# =============================================================================


def get_firebase_app():
    """Initialize the Firebase Admin SDK on first use; None when not configured."""
    global _firebase_app

    if not settings.firebase_enabled:
        return None

    if _firebase_app is None:
        try:
            import firebase_admin
            from firebase_admin import credentials

            # Keys pasted into env vars usually carry literal "\n"
            private_key = settings.firebase_private_key.replace("\\n", "\n")
            cred = credentials.Certificate({
                "type": "service_account",
                "project_id": settings.firebase_project_id,
                "client_email": settings.firebase_client_email,
                "private_key": private_key,
                "token_uri": "https://oauth2.googleapis.com/token",
            })
            _firebase_app = firebase_admin.initialize_app(cred)
            logger.info(f"Firebase Admin SDK initialized for project {settings.firebase_project_id}")
        except (ValueError, OSError) as e:
            logger.error(f"Failed to initialize Firebase Admin SDK: {e}")
            return None

    return _firebase_app


def verify_firebase_token(token: str) -> BearerIdentity | None:
    if get_firebase_app() is None:
        return None

    from firebase_admin import auth

    try:
        claims = auth.verify_id_token(token)
    except (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError) as e:
        logger.debug(f"Firebase token rejected: {e}")
        return None

    return BearerIdentity(
        provider="firebase",
        subject=claims["uid"],
        email=claims.get("email"),
        picture=claims.get("picture"),
        expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
    )


# =============================================================================
# LOCAL JWTS
# =============================================================================


def create_access_token(profile_id: UUID, expires_delta: timedelta | None = None) -> str:
    """Issue an HS256 access token for a profile (service accounts, local dev)."""
    now = datetime.now(timezone.utc)
    expires = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    payload = {"sub": str(profile_id), "iat": now, "exp": expires, "type": "access"}
    return jwt.encode(payload, settings.secret_key, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> BearerIdentity | None:
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[JWT_ALGORITHM])
    except jwt.InvalidTokenError:
        return None
    if claims.get("type") != "access" or "sub" not in claims:
        return None
    return BearerIdentity(
        provider="local",
        subject=str(claims["sub"]),
        expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
    )


def verify_bearer_token(token: str) -> BearerIdentity | None:
    """Firebase ID token first when Firebase is configured, then a local JWT."""
    if settings.firebase_enabled:
        identity = verify_firebase_token(token)
        if identity:
            return identity
    return decode_token(token)


# =============================================================================
# SLACK
# =============================================================================


def verify_slack_signature(
    body: bytes,
    timestamp: str | None,
    signature: str | None,
    signing_secret: str | None = None,
    now: float | None = None,
) -> bool:
    """
    Check an `X-Slack-Signature` header against the raw request body.

    The signature is HMAC-SHA256 of `v0:{timestamp}:{body}` keyed with the
    app's signing secret. Requests older than five minutes are rejected.
    """
    secret = signing_secret or get_settings().slack_signing_secret
    if not secret:
        logger.warning("Slack signing secret not configured")
        return False

    if not timestamp or not signature:
        return False

    try:
        request_timestamp = int(timestamp)
    except ValueError:
        return False

    current = time.time() if now is None else now
    if abs(current - request_timestamp) > SLACK_SIGNATURE_MAX_AGE_SECONDS:
        logger.warning("Slack request timestamp outside the replay window")
        return False

    base = f"v0:{timestamp}:{body.decode()}".encode()
    expected = "v0=" + hmac.new(secret.encode(), base, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)
