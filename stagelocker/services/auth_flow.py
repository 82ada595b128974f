"""
Flujo de autenticación: registro, verificación de email, login y
recuperación de contraseña.

Cada operación devuelve un AuthResult con un AuthOutcome; las condiciones
esperadas (duplicado, token inválido, cuenta inexistente...) nunca se
lanzan como excepción. Los errores inesperados del store sí se propagan.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging

from stagelocker.core.security import PasswordCodec
from stagelocker.core.tokens import TokenIssuer, TokenPurpose
from stagelocker.models.account import Account
from stagelocker.schemas.auth import AccountRead
from stagelocker.services.accounts import AccountStore, DuplicateAccountError, normalize_email
from stagelocker.services.email_service import NotificationSink

logger = logging.getLogger(__name__)


class AuthOutcome(str, Enum):
    CREATED = "CREATED"
    OK = "OK"
    DUPLICATE = "DUPLICATE"
    SEND_FAILURE = "SEND_FAILURE"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    ALREADY_VERIFIED = "ALREADY_VERIFIED"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass(frozen=True)
class AuthResult:
    outcome: AuthOutcome
    account: Optional[AccountRead] = None
    token: Optional[str] = None


def sanitize(account: Account) -> AccountRead:
    return AccountRead(id=account.id, email=account.email)


class AuthService:
    """Máquina de estados de autenticación"""

    def __init__(
        self,
        store: AccountStore,
        passwords: PasswordCodec,
        tokens: TokenIssuer,
        notifications: NotificationSink,
    ):
        self.store = store
        self.passwords = passwords
        self.tokens = tokens
        self.notifications = notifications

    def signup(self, email: str, password: str) -> AuthResult:
        """
        Registrar una cuenta y enviar el email de verificación.

        Si el envío falla la cuenta queda creada, sin verificar y sin token
        pendiente; el usuario debe pedir un reenvío.
        """
        email = normalize_email(email)
        if self.store.find_by_email(email) is not None:
            return AuthResult(AuthOutcome.DUPLICATE)

        password_hash = self.passwords.hash(password)
        try:
            account = self.store.insert(email=email, password_hash=password_hash)
        except DuplicateAccountError:
            return AuthResult(AuthOutcome.DUPLICATE)

        logger.info("Cuenta creada: %s", account.id)
        if self._dispatch_verification(account) is not AuthOutcome.OK:
            return AuthResult(AuthOutcome.SEND_FAILURE)
        return AuthResult(AuthOutcome.CREATED, account=sanitize(account))

    def verify_email(self, token: str) -> AuthResult:
        verification = self.tokens.verify(token)
        if not verification.is_valid or verification.claims.purpose != TokenPurpose.EMAIL_VERIFICATION.value:
            return AuthResult(AuthOutcome.UNAUTHORIZED)

        # El token vale solo si sigue guardado en la cuenta
        account = self.store.find_by_verification_token(token)
        if account is None:
            return AuthResult(AuthOutcome.NOT_FOUND)

        updated = self.store.update_fields(
            account.id,
            {"verified": True, "verification_token": None},
            expected={"verification_token": token},
        )
        if updated is None:
            return AuthResult(AuthOutcome.NOT_FOUND)

        logger.info("Email verificado: %s", updated.id)
        return AuthResult(AuthOutcome.OK)

    def resend_verification(self, email: str) -> AuthResult:
        account = self.store.find_by_email(normalize_email(email))
        if account is None:
            return AuthResult(AuthOutcome.NOT_FOUND)
        if account.verified:
            return AuthResult(AuthOutcome.ALREADY_VERIFIED)

        return AuthResult(self._dispatch_verification(account))

    def request_password_reset(self, email: str) -> AuthResult:
        """Nunca revela si el email existe: la cuenta ausente responde OK"""
        account = self.store.find_by_email(normalize_email(email))
        if account is None:
            return AuthResult(AuthOutcome.OK)

        token = self.tokens.issue_short_lived(account.id, TokenPurpose.PASSWORD_RESET)
        if self.store.update_fields(account.id, {"password_reset_token": token}) is None:
            return AuthResult(AuthOutcome.OK)

        if not self.notifications.send_password_reset(account.email, token):
            logger.warning("Falló el envío del email de reseteo para %s", account.id)
            self.store.update_fields(
                account.id,
                {"password_reset_token": None},
                expected={"password_reset_token": token},
            )
            return AuthResult(AuthOutcome.INTERNAL_ERROR)
        return AuthResult(AuthOutcome.OK)

    def complete_password_reset(self, token: str, new_password: str) -> AuthResult:
        verification = self.tokens.verify(token)
        if not verification.is_valid or verification.claims.purpose != TokenPurpose.PASSWORD_RESET.value:
            return AuthResult(AuthOutcome.UNAUTHORIZED)

        account = self.store.find_by_password_reset_token(token)
        if account is None:
            return AuthResult(AuthOutcome.UNAUTHORIZED)

        updated = self.store.update_fields(
            account.id,
            {"password_hash": self.passwords.hash(new_password), "password_reset_token": None},
            expected={"password_reset_token": token},
        )
        if updated is None:
            return AuthResult(AuthOutcome.UNAUTHORIZED)

        logger.info("Contraseña restablecida: %s", updated.id)
        return AuthResult(AuthOutcome.OK)

    def check_account_status(self, email: str) -> AuthResult:
        """Gate previo al login: la cuenta debe existir y estar verificada"""
        account = self.store.find_by_email(normalize_email(email))
        if account is None:
            return AuthResult(AuthOutcome.NOT_FOUND)
        if not account.verified:
            return AuthResult(AuthOutcome.FORBIDDEN)
        return AuthResult(AuthOutcome.OK, account=sanitize(account))

    def login(self, email: str, password: str) -> AuthResult:
        account = self.store.find_by_email(normalize_email(email))
        if account is None:
            return AuthResult(AuthOutcome.NOT_FOUND)

        if not self.passwords.verify(password, account.password_hash):
            logger.info("Login fallido para %s", account.id)
            return AuthResult(AuthOutcome.UNAUTHORIZED)

        return AuthResult(AuthOutcome.OK, account=sanitize(account), token=self.tokens.issue_login(account.id))

    def get_account(self, requested_id: str, caller_id: str) -> AuthResult:
        if requested_id != caller_id:
            return AuthResult(AuthOutcome.FORBIDDEN)

        account = self.store.find_by_id(requested_id)
        if account is None:
            return AuthResult(AuthOutcome.NOT_FOUND)
        return AuthResult(AuthOutcome.OK, account=sanitize(account))

    def _dispatch_verification(self, account: Account) -> AuthOutcome:
        """
        Emitir token, guardarlo y enviarlo; si el envío falla se limpia el token.

        El token solo se guarda mientras la cuenta siga sin verificar.
        """
        token = self.tokens.issue_short_lived(account.id, TokenPurpose.EMAIL_VERIFICATION)
        stored = self.store.update_fields(
            account.id,
            {"verification_token": token},
            expected={"verified": False},
        )
        if stored is None:
            return AuthOutcome.ALREADY_VERIFIED

        if self.notifications.send_verification(account.email, token):
            return AuthOutcome.OK

        logger.warning("Falló el envío del email de verificación para %s", account.id)
        self.store.update_fields(
            account.id,
            {"verification_token": None},
            expected={"verification_token": token},
        )
        return AuthOutcome.SEND_FAILURE
