from __future__ import annotations

from contextvars import ContextVar
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.rpm_backend.config import settings
from src.rpm_backend.domain.models.user import ApprovalStatus, Identity, UserRole
from src.rpm_backend.infra.db import inmemory as repos

# Bearer token is expected in the Authorization header. auto_error is off so
# that a missing header produces our own 401 body.
_bearer = HTTPBearer(auto_error=False)

# Context variable storing a stable identifier for the current caller. This
# allows downstream consumers such as the audit logger to associate events
# with a subject without threading the identity through every call.
_current_subject: ContextVar[Optional[str]] = ContextVar("current_subject", default=None)


def get_current_subject() -> Optional[str]:
    """Return the current subject identifier, if any.

    This is set by :func:`get_current_identity` once a bearer token has been
    verified.
    """

    return _current_subject.get()


def issue_token(user_id: UUID, *, expires_minutes: Optional[int] = None) -> str:
    """Sign a bearer token for ``user_id``.

    Token issuance normally belongs to the external auth provider; this helper
    exists for tooling and tests that need to mint tokens the oracle accepts.
    """

    now = datetime.now(timezone.utc)
    ttl = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(minutes=ttl),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_token(token: str) -> Identity:
    """Identity oracle: resolve a bearer token to the caller's Identity.

    The token only proves *who* the caller is. Role and institution always come
    from the stored UserProfile so that a stale or forged claim in the token
    can never widen access.
    """

    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid authentication token")

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise _unauthorized("Invalid authentication token")

    user = repos.user_repository.get(user_id)
    if user is None:
        raise _unauthorized("User not found")

    profile = repos.user_repository.get_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User profile not found")

    return Identity(
        user_id=user.id,
        email=user.email,
        email_confirmed=user.email_confirmed,
        role=profile.role,
        institution_id=profile.institution_id,
        approval_status=user.approval_status,
    )


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(_bearer),
) -> Identity:
    """FastAPI dependency resolving the authenticated caller."""

    if credentials is None or not credentials.credentials:
        raise _unauthorized("Authentication token is missing")

    identity = verify_token(credentials.credentials)
    if not identity.email_confirmed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Please confirm your email address before continuing",
        )

    _current_subject.set(f"user:{identity.user_id}")
    return identity


def ensure_approved(identity: Identity) -> None:
    """Raise HTTP 403 unless the caller's account is usable.

    Accounts that never needed approval (status None) and approved accounts
    pass; pending and rejected accounts are refused.
    """

    if identity.approval_status == ApprovalStatus.PENDING:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account is pending approval",
        )
    if identity.approval_status == ApprovalStatus.REJECTED:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been rejected",
        )


def require_role(*roles: UserRole, approved: bool = False):
    """Build a dependency admitting only callers whose role is in ``roles``.

    With ``approved=True`` the caller must also pass :func:`ensure_approved`.
    """

    allowed = frozenset(roles)

    async def _dependency(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        if approved:
            ensure_approved(identity)
        return identity

    return _dependency
