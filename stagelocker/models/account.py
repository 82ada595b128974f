from datetime import datetime, timezone
from typing import Optional
import uuid

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Account(SQLModel, table=True):
    """Cuenta de usuario"""
    __tablename__ = "accounts"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, max_length=36)
    email: str = Field(unique=True, index=True, max_length=255)
    password_hash: str = Field(max_length=255)
    verified: bool = Field(default=False)
    # Tokens de un solo uso; se limpian al usarse, al reemitirse o si falla el envío
    verification_token: Optional[str] = Field(default=None, index=True)
    password_reset_token: Optional[str] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime(timezone=True))
