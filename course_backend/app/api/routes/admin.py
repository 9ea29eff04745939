"""
Admin routes

Public: sign-in and two-step enrollment.
Management (require the "admin_auth" cookie; role checks live in the
service): admin provisioning, listing, removal, role change, password reset and
user ban/unban.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from app.api.deps import AdminPrincipal, get_admin_auth_service, get_current_admin, get_settings
from app.core.config import Settings
from app.core.cookies import clear_admin_cookie, set_admin_cookie
from app.schemas.admin import (
    AdminInfo,
    AdminListResponse,
    AdminPasswordResetRequest,
    AdminRegisterRequest,
    AdminRoleChangeRequest,
    AdminSignInRequest,
    UserModerationRequest,
)
from app.schemas.auth import MessageResponse
from app.services.admin_auth_service import AdminAuthService

router = APIRouter()
management_router = APIRouter()


@router.post("/login", response_model=MessageResponse)
async def admin_login(
    body: AdminSignInRequest,
    response: Response,
    service: AdminAuthService = Depends(get_admin_auth_service),
    settings: Settings = Depends(get_settings),
):
    """Sign in with login, password and TOTP code; earlier admin sessions are revoked."""
    token = await service.sign_in_admin(body.login, body.password, body.code)
    set_admin_cookie(response, token, settings)
    return MessageResponse(message="вход выполнен")


@router.post("/verify", response_model=MessageResponse)
async def admin_verify(
    body: AdminSignInRequest,
    service: AdminAuthService = Depends(get_admin_auth_service),
):
    """Confirm the authenticator app set up from the provisioning QR code."""
    await service.enroll_two_step(body.login, body.password, body.code)
    return MessageResponse(message="двухэтапная аутентификация подключена")


@router.post("/logout", response_model=MessageResponse)
async def admin_logout(
    response: Response,
    principal: AdminPrincipal = Depends(get_current_admin),
    service: AdminAuthService = Depends(get_admin_auth_service),
    settings: Settings = Depends(get_settings),
):
    await service.sign_out_admin(principal.token)
    clear_admin_cookie(response, settings)
    return MessageResponse(message="выход выполнен")


# ==================== Management ====================


@management_router.post("/register")
async def register_admin(
    body: AdminRegisterRequest,
    principal: AdminPrincipal = Depends(get_current_admin),
    service: AdminAuthService = Depends(get_admin_auth_service),
):
    """Provision an admin; responds with the TOTP QR code as image/png."""
    png = await service.register_admin(principal.role, body.login, body.password, body.role)
    return Response(content=png, media_type="image/png")


@management_router.get("/admins", response_model=AdminListResponse, response_model_by_alias=True)
async def list_admins(
    login: Optional[str] = None,
    role: Optional[str] = None,
    two_step: Optional[bool] = Query(None, alias="twoStep"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    principal: AdminPrincipal = Depends(get_current_admin),
    service: AdminAuthService = Depends(get_admin_auth_service),
):
    """List admins by exact login, role and two-step status (super_admin only)."""
    admins, total = await service.list_admins(principal.role, login, role, two_step, page, page_size)
    return AdminListResponse(
        admins=[AdminInfo.model_validate(a) for a in admins],
        total=total,
        page=page,
        page_size=page_size,
    )


@management_router.delete("/removeAdmin", response_model=MessageResponse)
async def remove_admin(
    login: str = "",
    principal: AdminPrincipal = Depends(get_current_admin),
    service: AdminAuthService = Depends(get_admin_auth_service),
):
    await service.remove_admin(principal.role, login)
    return MessageResponse(message="администратор удален")


@management_router.patch("/changeRole", response_model=MessageResponse)
async def change_role(
    body: AdminRoleChangeRequest,
    principal: AdminPrincipal = Depends(get_current_admin),
    service: AdminAuthService = Depends(get_admin_auth_service),
):
    await service.change_role(principal.role, body.login, body.role)
    return MessageResponse(message="роль изменена")


@management_router.patch("/resetPassword", response_model=MessageResponse)
async def reset_admin_password(
    body: AdminPasswordResetRequest,
    principal: AdminPrincipal = Depends(get_current_admin),
    service: AdminAuthService = Depends(get_admin_auth_service),
):
    await service.reset_admin_password(principal.role, body.login, body.password)
    return MessageResponse(message="пароль администратора изменен")


@management_router.post("/ban", response_model=MessageResponse)
async def ban_user(
    body: UserModerationRequest,
    principal: AdminPrincipal = Depends(get_current_admin),
    service: AdminAuthService = Depends(get_admin_auth_service),
):
    await service.ban_user(principal.role, body.user_id)
    return MessageResponse(message="пользователь заблокирован")


@management_router.post("/unban", response_model=MessageResponse)
async def unban_user(
    body: UserModerationRequest,
    principal: AdminPrincipal = Depends(get_current_admin),
    service: AdminAuthService = Depends(get_admin_auth_service),
):
    await service.unban_user(principal.role, body.user_id)
    return MessageResponse(message="пользователь разблокирован")
