"""
Emisión y verificación de tokens JWT firmados.

Cada token lleva el sujeto (id de cuenta), un propósito y una ventana de
validez. La verificación nunca lanza excepciones por tokens inválidos:
devuelve un TokenVerification con un estado tipado para que el llamador
distinga firma inválida, expiración y "todavía no válido".
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional
import logging
import uuid

from jose import JWTError, jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

# A partir de esta duración el token se emite con nbf
LONG_LIVED_THRESHOLD = timedelta(days=1)


class TokenPurpose(str, Enum):
    """Propósitos de token"""
    LOGIN = "login"
    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"


class TokenStatus(str, Enum):
    """Resultado de verificar un token"""
    VALID = "valid"
    MALFORMED = "malformed"
    EXPIRED = "expired"
    NOT_YET_VALID = "not_yet_valid"


@dataclass(frozen=True)
class TokenClaims:
    subject: Optional[str]
    purpose: Optional[str]
    issued_at: Optional[datetime]
    not_before: Optional[datetime]
    expires_at: datetime
    token_id: Optional[str]
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TokenVerification:
    status: TokenStatus
    claims: Optional[TokenClaims] = None

    @property
    def is_valid(self) -> bool:
        return self.status is TokenStatus.VALID


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _from_timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


class TokenIssuer:
    """
    Crea y verifica tokens firmados con un secreto de proceso.

    El secreto se inyecta al construir la instancia y no cambia después;
    la instancia puede compartirse entre hilos.
    """

    def __init__(
        self,
        secret: str,
        *,
        issuer: str,
        audience: str,
        login_lifetime: timedelta = timedelta(days=180),
        short_lived_lifetime: timedelta = timedelta(minutes=15),
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not secret:
            raise ValueError("Se requiere una clave secreta para firmar tokens")
        self._secret = secret
        self.issuer = issuer
        self.audience = audience
        self.login_lifetime = login_lifetime
        self.short_lived_lifetime = short_lived_lifetime
        self._clock = clock

    def issue(
        self,
        subject: str,
        purpose: TokenPurpose,
        lifetime: timedelta,
        extra_claims: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Crear token firmado para el sujeto con la duración indicada"""
        now = int(self._clock().timestamp())
        payload: Dict[str, Any] = dict(extra_claims or {})
        payload.update({
            "sub": subject,
            "purpose": TokenPurpose(purpose).value,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": now,
            "exp": now + int(lifetime.total_seconds()),
            "jti": uuid.uuid4().hex,
        })
        if lifetime >= LONG_LIVED_THRESHOLD:
            payload["nbf"] = now
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def issue_login(self, subject: str) -> str:
        return self.issue(subject, TokenPurpose.LOGIN, self.login_lifetime)

    def issue_short_lived(self, subject: str, purpose: TokenPurpose) -> str:
        return self.issue(subject, purpose, self.short_lived_lifetime)

    def verify(self, token: str) -> TokenVerification:
        """Verificar firma y luego la ventana de validez contra el reloj inyectado"""
        if not token:
            return TokenVerification(TokenStatus.MALFORMED)
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
                # Las fechas se validan abajo con el reloj inyectado
                options={
                    "verify_exp": False,
                    "verify_nbf": False,
                    "verify_iat": False,
                },
            )
        except JWTError as exc:
            logger.debug("Token rechazado: %s", exc)
            return TokenVerification(TokenStatus.MALFORMED)

        try:
            claims = TokenClaims(
                subject=payload.get("sub"),
                purpose=payload.get("purpose"),
                issued_at=_from_timestamp(payload.get("iat")),
                not_before=_from_timestamp(payload.get("nbf")),
                expires_at=_from_timestamp(payload["exp"]),
                token_id=payload.get("jti"),
                raw=payload,
            )
        except (KeyError, TypeError, ValueError, OverflowError, OSError):
            return TokenVerification(TokenStatus.MALFORMED)

        now = self._clock()
        if claims.not_before is not None and now < claims.not_before:
            return TokenVerification(TokenStatus.NOT_YET_VALID, claims)
        if now > claims.expires_at:
            return TokenVerification(TokenStatus.EXPIRED, claims)
        return TokenVerification(TokenStatus.VALID, claims)
