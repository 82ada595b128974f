from stagelocker.core.auth import AuthenticatedSubject, AuthorizationFailure, AuthorizationGate
from stagelocker.core.tokens import TokenIssuer, TokenPurpose
from stagelocker.services.accounts import SqlAccountStore
from stagelocker.services.auth_flow import AuthOutcome


def _account(store: SqlAccountStore, *, verified: bool):
    account = store.insert(email="gate@example.com", password_hash="x")
    if verified:
        account = store.update_fields(account.id, {"verified": True})
    return account


def _failure(result) -> AuthOutcome:
    assert isinstance(result, AuthorizationFailure)
    return result.outcome


def test_missing_or_malformed_header_is_unauthorized(token_issuer: TokenIssuer, store: SqlAccountStore):
    gate = AuthorizationGate(token_issuer, store)

    assert _failure(gate.authorize(None)) is AuthOutcome.UNAUTHORIZED
    assert _failure(gate.authorize("")) is AuthOutcome.UNAUTHORIZED
    assert _failure(gate.authorize("Token abc")) is AuthOutcome.UNAUTHORIZED
    assert _failure(gate.authorize("Bearer ")) is AuthOutcome.UNAUTHORIZED


def test_invalid_token_is_unauthorized(token_issuer: TokenIssuer, store: SqlAccountStore):
    gate = AuthorizationGate(token_issuer, store)

    assert _failure(gate.authorize("Bearer not-a-token")) is AuthOutcome.UNAUTHORIZED


def test_non_login_purpose_is_unauthorized(token_issuer: TokenIssuer, store: SqlAccountStore):
    account = _account(store, verified=True)
    gate = AuthorizationGate(token_issuer, store)
    token = token_issuer.issue_short_lived(account.id, TokenPurpose.EMAIL_VERIFICATION)

    assert _failure(gate.authorize(f"Bearer {token}")) is AuthOutcome.UNAUTHORIZED


def test_missing_subject_is_unauthorized(token_issuer: TokenIssuer, store: SqlAccountStore):
    gate = AuthorizationGate(token_issuer, store)
    token = token_issuer.issue("", TokenPurpose.LOGIN, token_issuer.login_lifetime)

    assert _failure(gate.authorize(f"Bearer {token}")) is AuthOutcome.UNAUTHORIZED


def test_unknown_account_is_forbidden(token_issuer: TokenIssuer, store: SqlAccountStore):
    gate = AuthorizationGate(token_issuer, store)
    token = token_issuer.issue_login("ghost-account")

    assert _failure(gate.authorize(f"Bearer {token}")) is AuthOutcome.FORBIDDEN


def test_verified_policy_flag(token_issuer: TokenIssuer, store: SqlAccountStore):
    account = _account(store, verified=False)
    header = f"Bearer {token_issuer.issue_login(account.id)}"

    strict = AuthorizationGate(token_issuer, store, require_verified=True)
    relaxed = AuthorizationGate(token_issuer, store, require_verified=False)

    assert _failure(strict.authorize(header)) is AuthOutcome.FORBIDDEN
    result = relaxed.authorize(header)
    assert isinstance(result, AuthenticatedSubject)
    assert result.account_id == account.id


def test_valid_token_authenticates_without_mutating_account(token_issuer: TokenIssuer, store: SqlAccountStore):
    account = _account(store, verified=True)
    before = account.updated_at
    gate = AuthorizationGate(token_issuer, store)

    result = gate.authorize(f"Bearer {token_issuer.issue_login(account.id)}")

    assert isinstance(result, AuthenticatedSubject)
    assert result.account.email == "gate@example.com"
    assert store.find_by_id(account.id).updated_at == before
