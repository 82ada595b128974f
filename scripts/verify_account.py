#!/usr/bin/env python3
"""
Marcar cuentas como verificadas sin pasar por el email
"""
import argparse
import sys
from pathlib import Path

project_root = Path(__file__).resolve().parents[1]
sys.path.append(str(project_root))

from sqlmodel import Session

from stagelocker.core.database import engine
from stagelocker.services.accounts import SqlAccountStore, normalize_email


def verify_accounts(emails) -> int:
    missing = 0
    with Session(engine) as session:
        store = SqlAccountStore(session)
        for raw_email in emails:
            email = normalize_email(raw_email)
            account = store.find_by_email(email)
            if not account:
                print(f"❌ Cuenta no encontrada: {email}")
                missing += 1
                continue
            store.update_fields(account.id, {"verified": True, "verification_token": None})
            print(f"✅ Cuenta verificada: {email}")
    return 1 if missing else 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Verificar cuentas por email")
    parser.add_argument("emails", nargs="+", help="Emails de las cuentas")
    args = parser.parse_args()
    return verify_accounts(args.emails)


if __name__ == "__main__":
    raise SystemExit(main())
