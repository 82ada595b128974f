"""
Esquemas Pydantic para autenticación
"""
import re

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

PASSWORD_SPECIAL_CHARS = "@$!%*?&#"


def validate_password_policy(value: str) -> str:
    if len(value) < 8:
        raise ValueError("La contraseña debe tener al menos 8 caracteres")
    if len(value) > 128:
        raise ValueError("La contraseña debe tener como máximo 128 caracteres")
    if not re.search(r"[A-Z]", value):
        raise ValueError("La contraseña debe contener al menos una mayúscula")
    if not re.search(r"[a-z]", value):
        raise ValueError("La contraseña debe contener al menos una minúscula")
    if not re.search(r"\d", value):
        raise ValueError("La contraseña debe contener al menos un número")
    if not any(ch in PASSWORD_SPECIAL_CHARS for ch in value):
        raise ValueError(f"La contraseña debe contener al menos un carácter especial ({PASSWORD_SPECIAL_CHARS})")
    if " " in value:
        raise ValueError("La contraseña no puede contener espacios")
    if "password" in value:
        raise ValueError("La contraseña no puede contener la palabra 'password'")
    return value


class SignupRequest(BaseModel):
    """Esquema para registro"""
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def _password_policy(cls, value: str) -> str:
        return validate_password_policy(value)


class LoginRequest(BaseModel):
    """Esquema para login con JSON"""
    email: EmailStr
    password: str = Field(min_length=1)


class EmailRequest(BaseModel):
    """Reenvío de verificación / solicitud de reseteo"""
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(min_length=1)
    new_password: str = Field(alias="newPassword")

    @field_validator("new_password")
    @classmethod
    def _password_policy(cls, value: str) -> str:
        return validate_password_policy(value)


class AccountRead(BaseModel):
    """Cuenta sanitizada: nunca incluye hash ni tokens guardados"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str


class LoginResponse(AccountRead):
    token: str


class MessageResponse(BaseModel):
    message: str
