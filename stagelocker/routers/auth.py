"""
Router de autenticación
"""
from typing import Annotated
import math

from fastapi import APIRouter, Depends, Query, Request, Response, status

from stagelocker.core.auth import AuthenticatedSubject
from stagelocker.core.config import get_settings
from stagelocker.core.errors import OutcomeHTTPException
from stagelocker.core.rate_limit import AUTH_RATE_LIMIT, FixedWindowRateLimiter, limiter
from stagelocker.dependencies import get_auth_service, get_authenticated_subject, get_email_rate_limiter
from stagelocker.schemas.auth import (
    AccountRead,
    EmailRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
)
from stagelocker.services.accounts import normalize_email
from stagelocker.services.auth_flow import AuthOutcome, AuthResult, AuthService

router = APIRouter(prefix="/auth", tags=["authentication"])

# Mensajes por outcome de error
ERROR_DETAILS = {
    AuthOutcome.DUPLICATE: "El email ingresado ya está registrado",
    AuthOutcome.SEND_FAILURE: "Error al enviar el email de verificación",
    AuthOutcome.UNAUTHORIZED: "Token o credenciales inválidas",
    AuthOutcome.FORBIDDEN: "No tenés permisos para acceder a este recurso",
    AuthOutcome.NOT_FOUND: "Usuario no encontrado",
    AuthOutcome.ALREADY_VERIFIED: "El email ya está verificado",
    AuthOutcome.INTERNAL_ERROR: "Error al enviar el email de reseteo de contraseña",
}


def _raise_for_outcome(result: AuthResult, *success: AuthOutcome) -> AuthResult:
    if result.outcome in success:
        return result
    raise OutcomeHTTPException(result.outcome, ERROR_DETAILS.get(result.outcome, "Error"))


def _enforce_email_rate_limit(rate_limiter: FixedWindowRateLimiter, scope: str, email: str, limit: int, window: int) -> None:
    decision = rate_limiter.check_and_consume(f"{scope}:{normalize_email(email)}", limit, window)
    if not decision.allowed:
        raise OutcomeHTTPException(
            AuthOutcome.RATE_LIMITED,
            "Demasiadas solicitudes",
            headers={"Retry-After": str(math.ceil(decision.retry_after))},
        )


@router.post("/signup", response_model=AccountRead, status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_RATE_LIMIT)
def signup(
    request: Request,
    payload: SignupRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
):
    """
    Registrar una cuenta nueva

    Envía un email con el link de verificación. La cuenta no puede iniciar
    sesión hasta confirmar el email.
    """
    result = _raise_for_outcome(service.signup(payload.email, payload.password), AuthOutcome.CREATED)
    return result.account


@router.get("/verify-email", status_code=status.HTTP_204_NO_CONTENT)
def verify_email(
    token: Annotated[str, Query(min_length=1)],
    service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Confirmar el email con el token recibido (un solo uso)"""
    _raise_for_outcome(service.verify_email(token), AuthOutcome.OK)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/resend-verification-email", response_model=MessageResponse)
def resend_verification_email(
    payload: EmailRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
    rate_limiter: Annotated[FixedWindowRateLimiter, Depends(get_email_rate_limiter)],
):
    """
    Reenviar el email de verificación

    **Rate Limited**: 3 solicitudes cada 5 minutos por email
    """
    settings = get_settings()
    _enforce_email_rate_limit(
        rate_limiter,
        "resend-verification",
        payload.email,
        settings.resend_verification_rate_limit,
        settings.resend_verification_rate_window_seconds,
    )
    _raise_for_outcome(service.resend_verification(payload.email), AuthOutcome.OK)
    return MessageResponse(message="Email de verificación enviado")


@router.post("/login", response_model=LoginResponse)
@limiter.limit(AUTH_RATE_LIMIT)
def login(
    request: Request,
    payload: LoginRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
):
    """
    Iniciar sesión con email y contraseña

    Solo cuentas existentes y verificadas. Retorna la cuenta y un token JWT
    para usar como `Authorization: Bearer <token>`.
    """
    status_check = service.check_account_status(payload.email)
    if status_check.outcome is AuthOutcome.FORBIDDEN:
        raise OutcomeHTTPException(AuthOutcome.FORBIDDEN, "Prohibido: email no verificado")
    _raise_for_outcome(status_check, AuthOutcome.OK)

    result = _raise_for_outcome(service.login(payload.email, payload.password), AuthOutcome.OK)
    return LoginResponse(id=result.account.id, email=result.account.email, token=result.token)


@router.post("/send-password-reset-email", status_code=status.HTTP_204_NO_CONTENT)
def send_password_reset_email(
    payload: EmailRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
    rate_limiter: Annotated[FixedWindowRateLimiter, Depends(get_email_rate_limiter)],
):
    """
    Solicitar el email de reseteo de contraseña

    Responde 204 aunque el email no esté registrado.
    """
    settings = get_settings()
    _enforce_email_rate_limit(
        rate_limiter,
        "password-reset",
        payload.email,
        settings.password_reset_rate_limit,
        settings.password_reset_rate_window_seconds,
    )
    _raise_for_outcome(service.request_password_reset(payload.email), AuthOutcome.OK)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    payload: ResetPasswordRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Restablecer la contraseña con el token recibido por email"""
    _raise_for_outcome(service.complete_password_reset(payload.token, payload.new_password), AuthOutcome.OK)
    return MessageResponse(message="Contraseña actualizada correctamente")


@router.get("/user/{account_id}", response_model=AccountRead)
def get_user(
    account_id: str,
    subject: Annotated[AuthenticatedSubject, Depends(get_authenticated_subject)],
    service: Annotated[AuthService, Depends(get_auth_service)],
):
    """
    Obtener una cuenta por id

    Requiere token JWT válido en el header:
    Authorization: Bearer <token>

    Solo el dueño de la cuenta puede leerla.
    """
    result = _raise_for_outcome(service.get_account(account_id, subject.account_id), AuthOutcome.OK)
    return result.account
