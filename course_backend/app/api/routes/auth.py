"""
Authentication routes

- Registration with e-mail confirmation code
- Sign-in / sign-out via the HttpOnly "auth" cookie
- E-mail verification and code resend
- Password recovery (rate-gated, never reveals whether an email exists)
"""
from typing import Optional

from fastapi import APIRouter, Depends, Response

from app.api.deps import UserPrincipal, get_auth_service, get_current_user, get_settings
from app.core.config import Settings
from app.core.cookies import clear_user_cookie, set_user_cookie
from app.schemas.auth import (
    ConfirmCodeRequest,
    CredentialsRequest,
    MessageResponse,
    PasswordRecoveryRequest,
    VerificationResponse,
)
from app.services.auth_service import AuthService

router = APIRouter()


@router.post("/register", response_model=MessageResponse)
async def register(
    body: CredentialsRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """Register a new user; the confirmation code goes to the given email."""
    token = await service.register(body.email, body.password)
    set_user_cookie(response, token, settings)
    return MessageResponse(message="пользователь успешно зарегистрирован")


@router.post("/login", response_model=MessageResponse)
async def login(
    body: CredentialsRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    token = await service.log_in(body.email, body.password)
    set_user_cookie(response, token, settings)
    return MessageResponse(message="вход выполнен")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    principal: UserPrincipal = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    await service.sign_out(principal.token)
    clear_user_cookie(response, settings)
    return MessageResponse(message="выход выполнен")


# ==================== E-mail verification ====================


@router.post("/email/verification", response_model=VerificationResponse)
async def verify_email(
    body: ConfirmCodeRequest,
    response: Response,
    principal: UserPrincipal = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """
    Confirm the account email.

    The presented session is revoked and replaced by one with verified=true.
    """
    token = await service.verify_email(body.code, principal.user_id, principal.token)
    set_user_cookie(response, token, settings)
    return VerificationResponse(message="почта успешно подтверждена")


@router.get("/email/newConfirmKey", response_model=MessageResponse)
async def resend_confirmation_code(
    principal: UserPrincipal = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    await service.resend_confirmation_code(principal.user_id)
    return MessageResponse(message="код отправлен")


# ==================== Password recovery ====================


@router.get("/sendRecoveryCode", response_model=MessageResponse)
async def send_recovery_code(
    email: Optional[str] = None,
    service: AuthService = Depends(get_auth_service),
):
    """Always reports success unless the email was asked for less than a minute ago."""
    await service.request_password_recovery(email)
    return MessageResponse(message="если пользователь существует, код отправлен на почту")


@router.post("/recoverPassword", response_model=MessageResponse)
async def recover_password(
    body: PasswordRecoveryRequest,
    service: AuthService = Depends(get_auth_service),
):
    await service.complete_password_recovery(body.email, body.password, body.code)
    return MessageResponse(message="пароль успешно изменен")
