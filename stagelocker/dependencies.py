"""
Proveedores de dependencias para los routers.

Los componentes sin estado por request (codec, emisor de tokens, rate
limiter, sink de notificaciones) se construyen una vez por proceso a partir
de la configuración; el store y el servicio se arman por request sobre la
sesión de base de datos.
"""
from datetime import timedelta
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Header
from sqlmodel import Session

from stagelocker.core.auth import AuthenticatedSubject, AuthorizationFailure, AuthorizationGate
from stagelocker.core.config import get_settings
from stagelocker.core.database import get_session
from stagelocker.core.errors import OutcomeHTTPException
from stagelocker.core.rate_limit import FixedWindowRateLimiter
from stagelocker.core.security import PasswordCodec
from stagelocker.core.tokens import TokenIssuer
from stagelocker.services.accounts import SqlAccountStore
from stagelocker.services.auth_flow import AuthService
from stagelocker.services.email_service import NotificationSink, build_notification_sink


@lru_cache
def get_password_codec() -> PasswordCodec:
    return PasswordCodec(rounds=get_settings().bcrypt_rounds)


@lru_cache
def get_token_issuer() -> TokenIssuer:
    settings = get_settings()
    return TokenIssuer(
        settings.secret_key,
        issuer=settings.token_issuer,
        audience=settings.token_audience,
        login_lifetime=timedelta(days=settings.login_token_expire_days),
        short_lived_lifetime=timedelta(minutes=settings.short_lived_token_expire_minutes),
    )


@lru_cache
def get_email_rate_limiter() -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(sweep_interval=get_settings().rate_limit_sweep_interval_seconds)


@lru_cache
def get_notification_sink() -> NotificationSink:
    return build_notification_sink(get_settings())


def get_account_store(session: Session = Depends(get_session)) -> SqlAccountStore:
    return SqlAccountStore(session)


def get_auth_service(
    store: SqlAccountStore = Depends(get_account_store),
    passwords: PasswordCodec = Depends(get_password_codec),
    tokens: TokenIssuer = Depends(get_token_issuer),
    notifications: NotificationSink = Depends(get_notification_sink),
) -> AuthService:
    return AuthService(store, passwords, tokens, notifications)


def get_authorization_gate(
    store: SqlAccountStore = Depends(get_account_store),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> AuthorizationGate:
    return AuthorizationGate(tokens, store, require_verified=get_settings().auth_require_verified)


def get_authenticated_subject(
    gate: Annotated[AuthorizationGate, Depends(get_authorization_gate)],
    authorization: Annotated[Optional[str], Header()] = None,
) -> AuthenticatedSubject:
    """Requiere header `Authorization: Bearer <token>` válido"""
    result = gate.authorize(authorization)
    if isinstance(result, AuthorizationFailure):
        raise OutcomeHTTPException(result.outcome, result.reason)
    return result
