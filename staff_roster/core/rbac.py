"""Request authentication and permission dependencies."""

import logging
from typing import Annotated, Optional

from fastapi import Depends, Request

from staff_roster.core.errors import UnauthorizedError
from staff_roster.core.rbac_policy import Permission, authorize
from staff_roster.core.security import COOKIE_ACCESS_NAME, decode_access_token
from staff_roster.db.session import DbSession
from staff_roster.models.user import User
from staff_roster.services.audit_service import AuditContext
from staff_roster.services.store_service import StoreService

logger = logging.getLogger("auth")


def get_client_ip(request: Request) -> str:
    """Best-effort client address, honouring X-Forwarded-For."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP", "")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else ""


def _token_payload(request: Request) -> Optional[dict]:
    payload = None

    # Try Authorization header first
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            payload = decode_access_token(token)

    # Fall back to cookie if no Bearer or Bearer was invalid
    if payload is None:
        cookie_token = request.cookies.get(COOKIE_ACCESS_NAME)
        if cookie_token:
            payload = decode_access_token(cookie_token)

    return payload


def get_current_user(request: Request, db: DbSession) -> User:
    """Resolve the authenticated user.

    Checks in order:
    1. Authorization: Bearer <token> header
    2. access_token cookie (HttpOnly)

    The user is reloaded on every request so deactivation and role
    changes take effect immediately.
    """
    payload = _token_payload(request)
    if payload is None:
        raise UnauthorizedError("Not authenticated")

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise UnauthorizedError("Invalid token payload")

    user = db.query(User).filter(User.id == user_id, User.not_deleted()).first()
    if user is None or not user.is_active:
        logger.info("Rejected token for missing or inactive user %s", user_id)
        raise UnauthorizedError("User account is disabled")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def get_audit_context(request: Request, current_user: CurrentUser) -> AuditContext:
    """Who is acting and from where, for audit entries."""
    return AuditContext(
        actor=current_user,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent", "")[:500],
    )


Actor = Annotated[AuditContext, Depends(get_audit_context)]


def require_permission(action: Permission):
    """Dependency that checks a store-level permission for the caller."""

    def permission_checker(ctx: Actor, db: DbSession) -> AuditContext:
        store_settings = StoreService(db).get_settings(ctx.actor.store_id)
        authorize(ctx.actor, action, store_settings=store_settings)
        return ctx

    return permission_checker
