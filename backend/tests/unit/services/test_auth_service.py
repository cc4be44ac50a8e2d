# tests/unit/services/test_auth_service.py
from __future__ import annotations

import itertools
import threading
from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest
from authcore.infra.jwt.token_codec import validate_access_token
from authcore.services._shared.errors import (
    AuthorizationHeaderError,
    ConflictError,
    InvalidCredentialsError,
    PasswordHashError,
    TokenExpiredError,
    TokenGenerationError,
    TokenInvalidError,
    TokenRevokedError,
    TokenSaveError,
    UserInactiveError,
    UserNotFoundError,
)
from authcore.services._shared.ports.identity_store import STATUS_INACTIVE
from authcore.services.auth.dto import (
    AuthResultOut,
    AuthTokenConfig,
    LoginIn,
    LogoutIn,
    RefreshIn,
    RegisterIn,
)
from freezegun import freeze_time

from tests.factories import DEFAULT_PASSWORD
from tests.helpers.auth import SECRET, bearer, issue_token, make_service, register_alice


# ------------------------------ Fixtures ---------------------------------- #
@pytest.fixture()
def service():
    """AuthService wired to in-memory doubles."""
    return make_service()


@pytest.fixture()
def alice(service) -> AuthResultOut:
    return register_alice(service)


def _deactivate(service, identity_id: str) -> None:
    record = service.identities.find_by_id(identity_id)
    service.identities.update(replace(record, status=STATUS_INACTIVE))


# ------------------------------- Register --------------------------------- #
def test_register_then_login_scenario(service):
    """Register alice, log in with the same password, and inspect the result."""
    registered = register_alice(service)
    assert registered.user.email == "alice@example.com"
    assert registered.user.role == "user"
    assert registered.user.status == "active"

    result = service.login(LoginIn(identifier="alice@example.com", password="CorrectPass1!"))
    assert result.token_type == "Bearer"
    assert result.expires_in == 3600
    assert len(result.refresh_token) == 36
    assert result.user.id == registered.user.id

    claims = validate_access_token(result.access_token, SECRET)
    assert claims.user_id == registered.user.id
    assert claims.email == "alice@example.com"
    assert claims.role == "user"


def test_register_never_stores_plaintext(service, alice):
    stored = service.identities.find_by_id(alice.user.id)
    assert stored.password_hash != DEFAULT_PASSWORD
    assert service.verifier.verify(DEFAULT_PASSWORD, stored.password_hash)
    assert not hasattr(alice.user, "password_hash")


def test_register_sets_audit_creator_to_new_identity(service, alice):
    stored = service.identities.find_by_id(alice.user.id)
    assert stored.audit.created_by == alice.user.id
    assert stored.audit.version == 1

    session = service.tokens.find_by_refresh_token(alice.refresh_token)
    assert session.audit.created_by == alice.user.id


def test_register_records_explicit_actor(service):
    bob = register_alice(service, email="bob@example.com", username="bob")
    carol = service.register(
        RegisterIn(email="carol@example.com", username="carol", password=DEFAULT_PASSWORD),
        actor_id=bob.user.id,
    )
    stored = service.identities.find_by_id(carol.user.id)
    assert stored.audit.created_by == bob.user.id


def test_register_normalizes_email(service):
    result = register_alice(service, email="  Alice@Example.COM ")
    assert result.user.email == "alice@example.com"


@pytest.mark.parametrize(
    "overrides",
    [{"username": "someone-else"}, {"email": "other@example.com"}],
)
def test_register_duplicate_conflicts(service, alice, overrides):
    with pytest.raises(ConflictError):
        register_alice(service, **overrides)


def test_register_duplicate_email_is_case_insensitive(service, alice):
    with pytest.raises(ConflictError):
        register_alice(service, email="ALICE@example.com", username="alice2")


def test_register_hash_failure_writes_nothing(service):
    with pytest.raises(PasswordHashError):
        register_alice(service, password="")
    assert service.identities.find_by_email("alice@example.com") is None


# --------------------------------- Login ---------------------------------- #
def test_login_by_username(service, alice):
    result = service.login(LoginIn(identifier="alice", password=DEFAULT_PASSWORD))
    assert result.user.id == alice.user.id


def test_login_records_session_metadata_and_last_login(service, alice):
    result = service.login(
        LoginIn(
            identifier="alice",
            password=DEFAULT_PASSWORD,
            origin_address="198.51.100.4",
            client_agent="curl/8.0",
        )
    )
    session = service.tokens.find_by_refresh_token(result.refresh_token)
    assert session.origin_address == "198.51.100.4"
    assert session.client_agent == "curl/8.0"
    assert session.access_token == result.access_token
    assert session.revoked is False

    stored = service.identities.find_by_id(alice.user.id)
    assert stored.last_login_ip == "198.51.100.4"
    assert stored.last_login_at is not None


def test_login_sets_expiries_from_config(service, alice):
    before = datetime.now(UTC)
    result = service.login(LoginIn(identifier="alice", password=DEFAULT_PASSWORD))
    after = datetime.now(UTC)
    session = service.tokens.find_by_refresh_token(result.refresh_token)
    assert before + timedelta(hours=1) <= session.access_expires_at <= after + timedelta(hours=1)
    assert before + timedelta(days=7) <= session.refresh_expires_at <= after + timedelta(days=7)


def test_each_login_opens_a_distinct_session(service, alice):
    first = service.login(LoginIn(identifier="alice", password=DEFAULT_PASSWORD))
    second = service.login(LoginIn(identifier="alice", password=DEFAULT_PASSWORD))
    assert first.refresh_token != second.refresh_token
    # registration opened one session too
    assert len(service.tokens.list_active_by_identity(alice.user.id)) == 3


def test_unknown_identifier_and_wrong_password_are_indistinguishable(service, alice):
    with pytest.raises(InvalidCredentialsError) as unknown:
        service.login(LoginIn(identifier="nobody@example.com", password=DEFAULT_PASSWORD))
    with pytest.raises(InvalidCredentialsError) as wrong:
        service.login(LoginIn(identifier="alice@example.com", password="WrongPass1!"))

    assert type(unknown.value) is type(wrong.value)
    assert unknown.value.code == wrong.value.code == "invalid_credentials"
    assert unknown.value.message == wrong.value.message


def test_unknown_identifier_still_runs_a_hash_check(service, monkeypatch):
    calls = []
    real_verify = type(service.verifier).verify

    def spy(self, plaintext, hashed):
        calls.append(hashed)
        return real_verify(self, plaintext, hashed)

    monkeypatch.setattr(type(service.verifier), "verify", spy)
    with pytest.raises(InvalidCredentialsError):
        service.login(LoginIn(identifier="ghost", password="whatever"))
    assert len(calls) == 1
    assert calls[0]


def test_failed_login_leaves_stores_untouched(service, alice):
    before = service.tokens.list_active_by_identity(alice.user.id)
    with pytest.raises(InvalidCredentialsError):
        service.login(LoginIn(identifier="alice", password="WrongPass1!"))
    assert service.tokens.list_active_by_identity(alice.user.id) == before
    assert service.identities.find_by_id(alice.user.id).last_login_at is None


def test_inactive_user_cannot_login(service, alice):
    _deactivate(service, alice.user.id)
    with pytest.raises(UserInactiveError):
        service.login(LoginIn(identifier="alice", password=DEFAULT_PASSWORD))


def test_inactive_user_with_wrong_password_gets_invalid_credentials(service, alice):
    _deactivate(service, alice.user.id)
    with pytest.raises(InvalidCredentialsError):
        service.login(LoginIn(identifier="alice", password="WrongPass1!"))


def test_last_login_failure_does_not_fail_login(service, alice, caplog):
    service.identities.fail_last_login = True
    result = service.login(LoginIn(identifier="alice", password=DEFAULT_PASSWORD))
    assert result.access_token
    assert "auth.login.last_login_update_failed" in caplog.text


def test_token_store_failure_maps_to_save_error(service, alice):
    service.tokens.fail_writes = True
    with pytest.raises(TokenSaveError):
        service.login(LoginIn(identifier="alice", password=DEFAULT_PASSWORD))


def test_signing_failure_maps_to_generation_error(service, alice, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("hsm offline")

    monkeypatch.setattr("authcore.services.auth.service.generate_access_token", boom)
    with pytest.raises(TokenGenerationError):
        service.login(LoginIn(identifier="alice", password=DEFAULT_PASSWORD))


def test_login_returns_the_new_last_login(service, alice):
    t0 = datetime.now(UTC).replace(microsecond=0)
    with freeze_time(t0):
        result = service.login(
            LoginIn(identifier="alice", password=DEFAULT_PASSWORD, origin_address="198.51.100.4")
        )
    assert result.user.last_login_at == t0
    assert service.identities.find_by_id(alice.user.id).last_login_at == t0


def test_login_keeps_previous_last_login_when_update_fails(service, alice):
    service.identities.fail_last_login = True
    result = service.login(LoginIn(identifier="alice", password=DEFAULT_PASSWORD))
    assert result.user.last_login_at is None


def _stepping_clock(service, monkeypatch) -> None:
    """Make every ``now_utc()`` call return a second earlier than the last."""
    start = datetime.now(UTC).replace(microsecond=0)
    steps = itertools.count()
    monkeypatch.setattr(
        type(service), "now_utc", staticmethod(lambda: start - timedelta(seconds=next(steps)))
    )


def test_login_access_expiry_matches_token_exp(service, alice, monkeypatch):
    _stepping_clock(service, monkeypatch)
    result = service.login(LoginIn(identifier="alice", password=DEFAULT_PASSWORD))

    session = service.tokens.find_by_refresh_token(result.refresh_token)
    claims = validate_access_token(result.access_token, SECRET)
    assert claims.expires_at == session.access_expires_at
    assert claims.issued_at == session.audit.created_at


# -------------------------------- Refresh --------------------------------- #
def test_refresh_replaces_access_token_and_keeps_refresh(service, alice):
    t0 = datetime.now(UTC)
    with freeze_time(t0 + timedelta(minutes=10)):
        result = service.refresh_token(RefreshIn(refresh_token=alice.refresh_token))

    assert result.refresh_token == alice.refresh_token
    assert result.access_token != alice.access_token
    assert result.expires_in == 3600

    session = service.tokens.find_by_refresh_token(alice.refresh_token)
    assert session.access_token == result.access_token
    assert session.access_expires_at > t0 + timedelta(hours=1)
    assert session.audit.version == 2


def test_refresh_access_expiry_matches_token_exp(service, alice, monkeypatch):
    _stepping_clock(service, monkeypatch)
    result = service.refresh_token(RefreshIn(refresh_token=alice.refresh_token))

    session = service.tokens.find_by_refresh_token(alice.refresh_token)
    claims = validate_access_token(result.access_token, SECRET)
    assert claims.expires_at == session.access_expires_at
    assert claims.issued_at == session.audit.updated_at


def test_refresh_unknown_token_is_invalid(service):
    with pytest.raises(TokenInvalidError):
        service.refresh_token(RefreshIn(refresh_token="does-not-exist"))


def test_refresh_empty_token_is_invalid(service):
    with pytest.raises(TokenInvalidError):
        service.refresh_token(RefreshIn(refresh_token=""))


def test_refresh_after_logout_is_revoked(service, alice):
    service.logout(LogoutIn(refresh_token=alice.refresh_token))
    with pytest.raises(TokenRevokedError):
        service.refresh_token(RefreshIn(refresh_token=alice.refresh_token))


def test_refresh_past_expiry_is_expired(service, alice):
    with freeze_time(datetime.now(UTC) + timedelta(days=8)), pytest.raises(TokenExpiredError):
        service.refresh_token(RefreshIn(refresh_token=alice.refresh_token))


def test_revocation_is_reported_before_expiry(service, alice):
    service.logout(LogoutIn(refresh_token=alice.refresh_token))
    with freeze_time(datetime.now(UTC) + timedelta(days=8)), pytest.raises(TokenRevokedError):
        service.refresh_token(RefreshIn(refresh_token=alice.refresh_token))


def test_refresh_for_deleted_owner(service, alice):
    service.identities._by_id.pop(alice.user.id)
    with pytest.raises(UserNotFoundError):
        service.refresh_token(RefreshIn(refresh_token=alice.refresh_token))


def test_refresh_for_inactive_owner(service, alice):
    _deactivate(service, alice.user.id)
    with pytest.raises(UserInactiveError):
        service.refresh_token(RefreshIn(refresh_token=alice.refresh_token))


def test_refresh_loses_to_concurrent_revocation(service, alice, monkeypatch):
    """A revoke landing between the read and the write of a refresh wins."""
    store = service.tokens
    original_find = store.find_by_refresh_token

    def find_then_revoke(value):
        record = original_find(value)
        store.revoke_by_refresh_token(value, at=datetime.now(UTC))
        return record

    monkeypatch.setattr(store, "find_by_refresh_token", find_then_revoke)
    with pytest.raises(TokenRevokedError):
        service.refresh_token(RefreshIn(refresh_token=alice.refresh_token))

    monkeypatch.undo()
    assert store.find_by_refresh_token(alice.refresh_token).revoked is True


def test_racing_refresh_and_revoke_never_resurrects(service, alice):
    errors: list[Exception] = []

    def refresh_loop():
        for _ in range(20):
            try:
                service.refresh_token(RefreshIn(refresh_token=alice.refresh_token))
            except TokenRevokedError:
                return
            except Exception as exc:  # pragma: no cover - surfaced by the assert
                errors.append(exc)
                return

    worker = threading.Thread(target=refresh_loop)
    worker.start()
    service.logout(LogoutIn(refresh_token=alice.refresh_token))
    worker.join()

    assert errors == []
    assert service.tokens.find_by_refresh_token(alice.refresh_token).revoked is True
    with pytest.raises(TokenRevokedError):
        service.refresh_token(RefreshIn(refresh_token=alice.refresh_token))


# ---------------------------- Logout / revoke ----------------------------- #
def test_logout_is_idempotent(service, alice):
    service.logout(LogoutIn(refresh_token=alice.refresh_token))
    first = service.tokens.find_by_refresh_token(alice.refresh_token)

    service.logout(LogoutIn(refresh_token=alice.refresh_token))
    second = service.tokens.find_by_refresh_token(alice.refresh_token)

    assert first.revoked and second.revoked
    assert first.revoked_at == second.revoked_at
    assert first.audit.version == second.audit.version


def test_logout_unknown_token_is_a_noop(service):
    assert service.logout(LogoutIn(refresh_token="unknown")) is None


def test_logout_only_touches_one_session(service, alice):
    other = service.login(LoginIn(identifier="alice", password=DEFAULT_PASSWORD))
    service.logout(LogoutIn(refresh_token=alice.refresh_token))
    assert service.tokens.find_by_refresh_token(other.refresh_token).revoked is False


def test_revoke_all_counts_and_revokes(service, alice):
    service.login(LoginIn(identifier="alice", password=DEFAULT_PASSWORD))
    service.login(LoginIn(identifier="alice", password=DEFAULT_PASSWORD))

    assert service.revoke_all_tokens(alice.user.id) == 3
    assert service.tokens.list_active_by_identity(alice.user.id) == []
    assert service.revoke_all_tokens(alice.user.id) == 0


def test_revoke_all_leaves_other_identities_alone(service, alice):
    bob = register_alice(service, email="bob@example.com", username="bob")
    service.revoke_all_tokens(alice.user.id, actor_id=bob.user.id)
    assert service.tokens.find_by_refresh_token(bob.refresh_token).revoked is False
    revoked = service.tokens.find_by_refresh_token(alice.refresh_token)
    assert revoked.audit.updated_by == bob.user.id


def test_revoked_session_never_comes_back_active(service, alice):
    service.revoke_all_tokens(alice.user.id)
    record = service.tokens.find_by_refresh_token(alice.refresh_token)
    saved = service.tokens.save_or_update(replace(record, revoked=False, revoked_at=None))
    assert saved.revoked is True
    assert saved.revoked_at == record.revoked_at


# ---------------------------- Introspection ------------------------------- #
def test_get_identity_from_token(service, alice):
    identity = service.get_identity_from_token(alice.access_token)
    assert identity.id == alice.user.id
    assert identity.username == "alice"


def test_get_current_user_from_header(service, alice):
    header = bearer(alice.access_token)["Authorization"]
    assert service.get_current_user(header).id == alice.user.id


@pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer"])
def test_get_current_user_rejects_bad_headers(service, header):
    with pytest.raises(AuthorizationHeaderError):
        service.get_current_user(header)


def test_expired_access_token(service, alice):
    with freeze_time(datetime.now(UTC) + timedelta(hours=2)), pytest.raises(TokenExpiredError):
        service.get_identity_from_token(alice.access_token)


def test_token_for_missing_identity(service):
    with pytest.raises(UserNotFoundError):
        service.get_identity_from_token(issue_token("0190a2b4-0000-7000-8000-00000000dead"))


def test_token_for_deactivated_identity(service, alice):
    _deactivate(service, alice.user.id)
    with pytest.raises(UserInactiveError):
        service.get_identity_from_token(alice.access_token)


def test_token_signed_with_other_key(service, alice):
    forged = issue_token(alice.user.id, secret="attacker-secret-key-with-at-least-32-bytes")
    with pytest.raises(TokenInvalidError):
        service.get_identity_from_token(forged)


def test_list_active_sessions_newest_first(service, alice):
    t0 = datetime.now(UTC)
    with freeze_time(t0 + timedelta(minutes=1)):
        second = service.login(LoginIn(identifier="alice", password=DEFAULT_PASSWORD))
    with freeze_time(t0 + timedelta(minutes=2)):
        third = service.login(LoginIn(identifier="alice", password=DEFAULT_PASSWORD))
    service.logout(LogoutIn(refresh_token=second.refresh_token))

    sessions = service.list_active_sessions(alice.user.id)
    expected = [
        service.tokens.find_by_refresh_token(third.refresh_token).id,
        service.tokens.find_by_refresh_token(alice.refresh_token).id,
    ]
    assert [s.id for s in sessions] == expected
    assert not any(hasattr(s, "refresh_token") for s in sessions)


def test_list_active_sessions_hides_expired(service, alice):
    with freeze_time(datetime.now(UTC) + timedelta(days=8)):
        assert service.list_active_sessions(alice.user.id) == []


# ------------------------------- Config ----------------------------------- #
@pytest.mark.parametrize(
    "kwargs",
    [
        {"secret_key": ""},
        {"secret_key": SECRET, "access_expires": timedelta(0)},
        {"secret_key": SECRET, "access_expires": timedelta(hours=2),
         "refresh_expires": timedelta(hours=1)},
        {"secret_key": SECRET, "access_expires": timedelta(hours=1),
         "refresh_expires": timedelta(hours=1)},
    ],
)
def test_token_config_rejects_unsafe_values(kwargs):
    with pytest.raises(ValueError):
        AuthTokenConfig(**kwargs)


def test_token_config_from_flask_mapping():
    cfg = AuthTokenConfig.from_mapping(
        {
            "JWT_SECRET_KEY": SECRET,
            "ACCESS_TOKEN_EXPIRES_SECONDS": "900",
            "REFRESH_TOKEN_EXPIRES_SECONDS": 86400,
            "JWT_ISSUER": "accounts",
        }
    )
    assert cfg.access_expires == timedelta(minutes=15)
    assert cfg.refresh_expires == timedelta(days=1)
    assert cfg.issuer == "accounts"


def test_service_is_built_from_its_collaborators_only():
    with pytest.raises(TypeError):
        make_service(ctx=object())
