"""Authentication routes."""

import logging

from fastapi import APIRouter, Request, Response
from sqlalchemy import func

from staff_roster.core.errors import UnauthorizedError, ValidationFailedError
from staff_roster.core.rate_limit import LOGIN_LIMIT, limiter
from staff_roster.core.rbac import CurrentUser, get_client_ip
from staff_roster.core.responses import success_response
from staff_roster.core.security import (
    ACCESS_TOKEN_MAX_AGE,
    COOKIE_ACCESS_NAME,
    COOKIE_SAMESITE,
    COOKIE_SECURE,
    create_access_token,
    get_password_hash,
    verify_password,
)
from staff_roster.db.base import utcnow
from staff_roster.db.session import DbSession
from staff_roster.models.user import User
from staff_roster.schemas.auth import ChangePasswordRequest, LoginRequest, Token
from staff_roster.schemas.user import UserResponse
from staff_roster.services.audit_service import AuditContext, log_action
from staff_roster.services.store_service import StoreService

logger = logging.getLogger("auth")

router = APIRouter()


@router.post("/login")
@limiter.limit(LOGIN_LIMIT)
def login(request: Request, response: Response, login_request: LoginRequest, db: DbSession):
    """Authenticate by email and password; returns a JWT and sets the session cookie."""
    client_ip = get_client_ip(request)
    user = (
        db.query(User)
        .filter(func.lower(User.email) == login_request.email.lower(), User.not_deleted())
        .first()
    )

    if not user or not verify_password(login_request.password, user.password_hash):
        logger.warning(f"Failed login attempt for email: {login_request.email} from IP: {client_ip}")
        raise UnauthorizedError("Invalid email or password")
    if not user.is_active:
        logger.warning(f"Login attempt for inactive user: {login_request.email} (ID: {user.id}) from IP: {client_ip}")
        raise UnauthorizedError("User account is inactive")

    user.last_login_at = utcnow()
    ctx = AuditContext(actor=user, ip_address=client_ip, user_agent=request.headers.get("User-Agent", "")[:500])
    log_action(
        db, ctx, "LOGIN",
        entity_type="session", entity_id=user.id, entity_name=user.full_name,
        enabled=StoreService(db).get_settings(user.store_id).enable_audit_log,
    )
    db.commit()

    logger.info(f"Successful login: {user.email} (ID: {user.id}, role: {user.role.kind}) from IP: {client_ip}")
    token = create_access_token(
        data={"sub": str(user.id), "email": user.email, "store_id": user.store_id}
    )
    response.set_cookie(
        key=COOKIE_ACCESS_NAME,
        value=token,
        max_age=ACCESS_TOKEN_MAX_AGE,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite=COOKIE_SAMESITE,
    )
    return success_response({
        "token": Token(access_token=token, expires_in=ACCESS_TOKEN_MAX_AGE),
        "user": UserResponse.model_validate(user),
    })


@router.post("/logout")
def logout(response: Response, current_user: CurrentUser):
    """Clear the session cookie. Bearer tokens simply expire."""
    response.delete_cookie(COOKIE_ACCESS_NAME, secure=COOKIE_SECURE, samesite=COOKIE_SAMESITE)
    logger.info(f"User logged out: {current_user.email} (ID: {current_user.id})")
    return success_response({"message": "Logged out successfully"})


@router.get("/me")
def get_current_user_info(current_user: CurrentUser):
    return success_response(UserResponse.model_validate(current_user))


@router.post("/change-password")
@limiter.limit(LOGIN_LIMIT)
def change_password(request: Request, data: ChangePasswordRequest, current_user: CurrentUser, db: DbSession):
    """Change password for the current user."""
    if not verify_password(data.current_password, current_user.password_hash):
        raise ValidationFailedError("Current password is incorrect")
    if data.current_password == data.new_password:
        raise ValidationFailedError("New password must differ from the current password")

    current_user.password_hash = get_password_hash(data.new_password)
    current_user.updated_by = current_user.id
    ctx = AuditContext(actor=current_user, ip_address=get_client_ip(request))
    log_action(
        db, ctx, "CHANGE_PASSWORD",
        entity_type="user", entity_id=current_user.id, entity_name=current_user.full_name,
        enabled=StoreService(db).get_settings(current_user.store_id).enable_audit_log,
    )
    db.commit()

    logger.info(f"Password changed for user: {current_user.email} (ID: {current_user.id})")
    return success_response({"message": "Password changed"})
