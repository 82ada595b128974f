# Schemas
from .auth import (
    SignupRequest,
    LoginRequest,
    EmailRequest,
    ResetPasswordRequest,
    AccountRead,
    LoginResponse,
    MessageResponse,
)

__all__ = [
    "SignupRequest",
    "LoginRequest",
    "EmailRequest",
    "ResetPasswordRequest",
    "AccountRead",
    "LoginResponse",
    "MessageResponse",
]
