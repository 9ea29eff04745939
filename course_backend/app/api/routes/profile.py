"""
Profile routes (require the "auth" session cookie)

- Password change (revokes every session, including the current one)
- Two-step e-mail change: request a code for the new address, then confirm
"""
from fastapi import APIRouter, Depends, Response

from app.api.deps import UserPrincipal, get_auth_service, get_current_user, get_settings
from app.core.config import Settings
from app.core.cookies import clear_user_cookie, set_user_cookie
from app.schemas.auth import (
    ConfirmCodeRequest,
    EmailChangeRequest,
    MessageResponse,
    PasswordChangeRequest,
    SessionResponse,
)
from app.services.auth_service import AuthService

router = APIRouter()


@router.get("/session", response_model=SessionResponse, response_model_by_alias=True)
async def current_session(principal: UserPrincipal = Depends(get_current_user)):
    """Guard context of the presented cookie."""
    return SessionResponse(user_id=principal.user_id, verified=principal.verified)


@router.patch("/editPassword", response_model=MessageResponse)
async def edit_password(
    body: PasswordChangeRequest,
    response: Response,
    principal: UserPrincipal = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    await service.change_password(body.old_password, body.new_password, principal.user_id)
    clear_user_cookie(response, settings)
    return MessageResponse(message="пароль успешно изменен, войдите заново")


@router.post("/editEmail", response_model=MessageResponse)
async def edit_email(
    body: EmailChangeRequest,
    principal: UserPrincipal = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    await service.request_email_change(body.new_email, principal.user_id)
    return MessageResponse(message="код подтверждения отправлен на новую почту")


@router.post("/confirmEmailChange", response_model=MessageResponse)
async def confirm_email_change(
    body: ConfirmCodeRequest,
    response: Response,
    principal: UserPrincipal = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    token = await service.confirm_email_change(body.code, principal.user_id, principal.token)
    set_user_cookie(response, token, settings)
    return MessageResponse(message="почта успешно изменена")
