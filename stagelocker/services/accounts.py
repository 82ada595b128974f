"""
Acceso a cuentas de usuario
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from stagelocker.models.account import Account

# Campos que update_fields puede modificar
MUTABLE_FIELDS = frozenset({"password_hash", "verified", "verification_token", "password_reset_token"})


class DuplicateAccountError(Exception):
    """Ya existe una cuenta con ese email"""


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountStore(Protocol):
    def find_by_email(self, email: str) -> Optional[Account]: ...

    def find_by_id(self, account_id: str) -> Optional[Account]: ...

    def find_by_verification_token(self, token: str) -> Optional[Account]: ...

    def find_by_password_reset_token(self, token: str) -> Optional[Account]: ...

    def insert(self, *, email: str, password_hash: str) -> Account: ...

    def update_fields(
        self,
        account_id: str,
        fields: Dict[str, Any],
        *,
        expected: Optional[Dict[str, Any]] = None,
    ) -> Optional[Account]: ...


class SqlAccountStore:
    """AccountStore sobre una sesión SQLModel"""

    def __init__(self, session: Session):
        self.session = session

    def find_by_email(self, email: str) -> Optional[Account]:
        """Obtener cuenta por email (case-insensitive)"""
        statement = select(Account).where(Account.email == normalize_email(email))
        return self.session.exec(statement).first()

    def find_by_id(self, account_id: str) -> Optional[Account]:
        return self.session.get(Account, account_id)

    def find_by_verification_token(self, token: str) -> Optional[Account]:
        if not token:
            return None
        statement = select(Account).where(Account.verification_token == token)
        return self.session.exec(statement).first()

    def find_by_password_reset_token(self, token: str) -> Optional[Account]:
        if not token:
            return None
        statement = select(Account).where(Account.password_reset_token == token)
        return self.session.exec(statement).first()

    def insert(self, *, email: str, password_hash: str) -> Account:
        """
        Crear una cuenta nueva sin verificar.

        Raises:
            DuplicateAccountError: si el email ya está registrado (incluye
            la carrera entre dos registros simultáneos)
        """
        email = normalize_email(email)
        account = Account(email=email, password_hash=password_hash, verified=False)
        self.session.add(account)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateAccountError(email) from exc
        self.session.refresh(account)
        return account

    def update_fields(
        self,
        account_id: str,
        fields: Dict[str, Any],
        *,
        expected: Optional[Dict[str, Any]] = None,
    ) -> Optional[Account]:
        """
        Actualizar campos en un único UPDATE atómico.

        ``expected`` agrega condiciones al WHERE (p. ej. que el token guardado
        siga siendo el que se leyó). Devuelve None si no existe la cuenta o si
        alguna condición ya no se cumple.
        """
        unknown = set(fields) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Campos no modificables: {sorted(unknown)}")

        statement = update(Account).where(Account.id == account_id)
        for name, value in (expected or {}).items():
            column = getattr(Account, name)
            statement = statement.where(column.is_(None) if value is None else column == value)
        statement = statement.values(**fields, updated_at=datetime.now(timezone.utc))

        updated = self.session.exec(statement).rowcount
        self.session.commit()
        if updated == 0:
            return None
        return self.session.get(Account, account_id, populate_existing=True)
