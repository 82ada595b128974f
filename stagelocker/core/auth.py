from dataclasses import dataclass
from typing import Optional, Union

from stagelocker.core.tokens import TokenIssuer, TokenPurpose
from stagelocker.models.account import Account
from stagelocker.services.accounts import AccountStore
from stagelocker.services.auth_flow import AuthOutcome

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class AuthenticatedSubject:
    account_id: str
    account: Account


@dataclass(frozen=True)
class AuthorizationFailure:
    outcome: AuthOutcome
    reason: str


AuthorizationResult = Union[AuthenticatedSubject, AuthorizationFailure]


def _unauthorized(reason: str) -> AuthorizationFailure:
    return AuthorizationFailure(AuthOutcome.UNAUTHORIZED, reason)


def _forbidden(reason: str) -> AuthorizationFailure:
    return AuthorizationFailure(AuthOutcome.FORBIDDEN, reason)


class AuthorizationGate:
    """
    Decide si un header Authorization autoriza a una cuenta.

    Orden de chequeos: header → token válido → propósito login → sujeto →
    cuenta existente → (opcional) email verificado. Solo lee; nunca modifica
    estado.
    """

    def __init__(self, tokens: TokenIssuer, store: AccountStore, *, require_verified: bool = True):
        self.tokens = tokens
        self.store = store
        self.require_verified = require_verified

    def authorize(self, authorization: Optional[str]) -> AuthorizationResult:
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            return _unauthorized("No autorizado")

        token = authorization[len(BEARER_PREFIX):].strip()
        if not token or " " in token:
            return _unauthorized("No autorizado")

        verification = self.tokens.verify(token)
        if not verification.is_valid:
            return _unauthorized("Token inválido o expirado")

        claims = verification.claims
        if claims.purpose != TokenPurpose.LOGIN.value:
            return _unauthorized("Token inválido o expirado")
        if not claims.subject:
            return _unauthorized("Payload de token inválido")

        account = self.store.find_by_id(claims.subject)
        if account is None:
            return _forbidden("Prohibido: usuario no encontrado")
        if self.require_verified and not account.verified:
            return _forbidden("Prohibido: email no verificado")

        return AuthenticatedSubject(account_id=account.id, account=account)
