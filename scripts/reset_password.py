#!/usr/bin/env python3
import argparse
import sys
from pathlib import Path

project_root = Path(__file__).resolve().parents[1]
sys.path.append(str(project_root))

from sqlmodel import Session

from stagelocker.core.config import get_settings
from stagelocker.core.database import engine
from stagelocker.core.security import PasswordCodec
from stagelocker.schemas.auth import validate_password_policy
from stagelocker.services.accounts import SqlAccountStore, normalize_email


def main() -> int:
    parser = argparse.ArgumentParser(description="Resetear password de una cuenta por email")
    parser.add_argument("--email", required=True, help="Email de la cuenta")
    parser.add_argument("--password", required=True, help="Nueva contraseña")
    args = parser.parse_args()

    email = normalize_email(args.email)
    try:
        validate_password_policy(args.password)
    except ValueError as exc:
        print(f"❌ {exc}")
        return 1

    codec = PasswordCodec(rounds=get_settings().bcrypt_rounds)
    with Session(engine) as session:
        store = SqlAccountStore(session)
        account = store.find_by_email(email)
        if not account:
            print(f"❌ Cuenta no encontrada: {email}")
            return 1

        # Un reseteo manual invalida cualquier link de reseteo pendiente
        store.update_fields(
            account.id,
            {"password_hash": codec.hash(args.password), "password_reset_token": None},
        )

    print(f"✅ Password actualizado para {email}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
