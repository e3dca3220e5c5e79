"""
auth.py — Bearer-token session verification for API routes.

The identity provider signs HS256 JWTs with a secret shared with this service.
The token's `email` claim is the consultant's contact address; consultant_id and
is_admin are resolved from the consultants table on every request.

Usage:
    async def route(session: Session = Depends(get_session)): ...
    async def admin_route(session: Session = Depends(require_admin)): ...
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from invoicedesk import store
from invoicedesk.config import settings
from invoicedesk.database import get_db
from invoicedesk.errors import AuthError, ForbiddenError

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


@dataclass
class Session:
    email: str
    consultant_id: Optional[str]
    is_admin: bool
    display_name: Optional[str] = None


def decode_token(token: str) -> dict[str, Any]:
    """Verify signature, expiry and audience. Raises AuthError on any failure."""
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
        )
    except jwt.InvalidTokenError as exc:
        raise AuthError("Invalid or expired session") from exc

    email = claims.get("email")
    if not email:
        raise AuthError("Session token carries no email")
    return claims


async def get_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    db: AsyncSession = Depends(get_db),
) -> Session:
    """FastAPI dependency: authenticated caller, or 401."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("Missing or invalid authorization header").as_http()
    try:
        claims = decode_token(credentials.credentials)
    except AuthError as exc:
        raise exc.as_http()

    email = claims["email"].strip().lower()
    consultant = await store.get_consultant_by_email(db, email)
    metadata = claims.get("user_metadata") or {}
    return Session(
        email=email,
        consultant_id=consultant.consultant_id if consultant else None,
        is_admin=bool(consultant and consultant.is_admin),
        display_name=metadata.get("full_name") or metadata.get("name"),
    )


async def require_admin(session: Session = Depends(get_session)) -> Session:
    """Same as get_session but 403 unless the caller is an admin."""
    if not session.is_admin:
        logger.info("Admin route refused for non-admin caller")
        raise ForbiddenError("Admin access required").as_http()
    return session
