from functools import lru_cache
from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuración de la aplicación"""

    # Configuración de la aplicación
    app_name: str = "Stage Locker API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # Configuración de la base de datos
    database_url: str = "sqlite:///./stagelocker.db"
    sql_echo: bool = False
    auto_create_db: bool = True

    # Configuración JWT
    secret_key: str = "your-secret-key-change-this-in-production-make-it-very-long-and-random"
    token_issuer: str = "Stage Locker API"
    token_audience: str = "Stage Locker Client"
    login_token_expire_days: int = 180
    short_lived_token_expire_minutes: int = 15

    # Contraseñas
    bcrypt_rounds: int = 12

    # Política del gate de autorización: exigir email verificado
    auth_require_verified: bool = True

    # Rate limiting
    auth_rate_limit: str = "10/minute"
    resend_verification_rate_limit: int = 3
    resend_verification_rate_window_seconds: int = 5 * 60
    password_reset_rate_limit: int = 3
    password_reset_rate_window_seconds: int = 5 * 60
    rate_limit_sweep_interval_seconds: int = 60

    # Email
    email_backend: Literal["smtp", "console", "disabled"] = "console"
    frontend_url: str = "http://localhost:3000"
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_use_ssl: bool = False
    smtp_from: str = ""
    smtp_from_email: str = ""
    smtp_from_name: str = "Stage Locker"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Cargar la configuración una sola vez por proceso"""
    return Settings()
