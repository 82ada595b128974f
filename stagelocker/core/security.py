import logging

import bcrypt

logger = logging.getLogger(__name__)

# bcrypt ignora todo lo que exceda 72 bytes
BCRYPT_MAX_BYTES = 72


def _truncate_password_safely(password: str) -> bytes:
    """
    Truncar contraseña de forma segura a 72 bytes para bcrypt.
    Retorna bytes directamente para evitar problemas de codificación.
    """
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class PasswordCodec:
    """Hash de contraseñas con bcrypt (salt aleatorio por llamada, costo configurable)"""

    def __init__(self, rounds: int = 12):
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds debe estar entre 4 y 31")
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Generar hash de contraseña; el salt queda embebido en la salida"""
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_truncate_password_safely(password), salt).decode("utf-8")

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verificar contraseña plana contra hash.

        bcrypt.checkpw compara en tiempo constante. Un hash malformado
        devuelve False en lugar de propagar el error.
        """
        if not hashed_password:
            return False
        try:
            return bcrypt.checkpw(
                _truncate_password_safely(plain_password),
                hashed_password.encode("utf-8"),
            )
        except (ValueError, TypeError):
            logger.warning("Hash de contraseña malformado; verificación rechazada")
            return False
