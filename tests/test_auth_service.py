import pytest

from newshub.core.exceptions import (
    Conflict,
    InvalidCredentials,
    SessionExpired,
    SessionInactive,
    SessionNotFound,
)
from newshub.db.session import SessionLocal
from newshub.models.session import AdminSession
from newshub.services import auth as auth_service


def _login(db, username="admin", password="adminpass", **kwargs):
    return auth_service.login(db, username, password, **kwargs)


def test_login_creates_session(db, admin_user, clock):
    result = _login(db, user_agent="pytest", ip_address="10.0.0.1")

    assert result["token"] != result["refresh_token"]
    assert result["user"].id == admin_user.id
    ses = db.query(AdminSession).filter(AdminSession.access_token == result["token"]).one()
    assert ses.refresh_token == result["refresh_token"]
    assert ses.is_active is True
    assert ses.refresh_expires_at > ses.expires_at
    assert ses.expires_at == result["expires_at"]
    assert ses.user_agent == "pytest"
    assert ses.ip_address == "10.0.0.1"


def test_login_username_is_case_insensitive(db, admin_user, clock):
    result = _login(db, username="  ADMIN ")
    assert result["user"].username == "admin"


def test_each_login_issues_distinct_tokens(db, admin_user, clock):
    first = _login(db)
    second = _login(db)
    assert first["token"] != second["token"]
    assert first["refresh_token"] != second["refresh_token"]
    assert db.query(AdminSession).count() == 2


def test_unknown_user_and_wrong_password_fail_the_same_way(db, admin_user, clock):
    with pytest.raises(InvalidCredentials) as unknown:
        _login(db, username="nobody")
    with pytest.raises(InvalidCredentials) as wrong:
        _login(db, password="nope")
    assert unknown.value.message == wrong.value.message
    assert db.query(AdminSession).count() == 0


def test_inactive_user_cannot_login(db, admin_user, clock):
    admin_user.is_active = False
    db.commit()
    with pytest.raises(InvalidCredentials):
        _login(db)


def test_account_locks_after_repeated_failures(db, admin_user, clock):
    for _ in range(5):
        with pytest.raises(InvalidCredentials):
            _login(db, password="wrong")

    db.refresh(admin_user)
    assert admin_user.lock_until is not None
    # correct password is still rejected while locked
    with pytest.raises(InvalidCredentials):
        _login(db)

    clock.advance(minutes=121)
    result = _login(db)
    assert result["user"].login_attempts == 0
    assert result["user"].lock_until is None


def test_validate_returns_user(db, admin_user, clock):
    result = _login(db)
    user = auth_service.validate(db, result["token"])
    assert user.id == admin_user.id


def test_validate_rejects_unknown_and_garbage_tokens(db, admin_user, clock):
    result = _login(db)
    with pytest.raises(SessionNotFound):
        auth_service.validate(db, "not-a-token")
    with pytest.raises(SessionNotFound):
        auth_service.validate(db, "")
    # a refresh token is not an access token
    with pytest.raises(SessionNotFound):
        auth_service.validate(db, result["refresh_token"])


def test_validate_rejects_expired_access_token(db, admin_user, clock):
    result = _login(db)
    clock.advance(hours=24)
    with pytest.raises(SessionExpired):
        auth_service.validate(db, result["token"])


def test_validate_is_valid_just_before_expiry(db, admin_user, clock):
    result = _login(db)
    clock.advance(hours=23, minutes=59)
    assert auth_service.validate(db, result["token"]).id == admin_user.id


def test_refresh_rotates_both_tokens(db, admin_user, clock):
    first = _login(db)
    clock.advance(hours=25)

    second = auth_service.refresh(db, first["refresh_token"])

    assert second["token"] != first["token"]
    assert second["refresh_token"] != first["refresh_token"]
    assert auth_service.validate(db, second["token"]).id == admin_user.id
    with pytest.raises(SessionNotFound):
        auth_service.validate(db, first["token"])
    # still a single session row, rewritten in place
    assert db.query(AdminSession).count() == 1


def test_refresh_token_is_single_use(db, admin_user, clock):
    first = _login(db)
    auth_service.refresh(db, first["refresh_token"])
    with pytest.raises(SessionNotFound):
        auth_service.refresh(db, first["refresh_token"])


def test_refresh_rejects_expired_refresh_token(db, admin_user, clock):
    first = _login(db)
    clock.advance(days=30)
    with pytest.raises(SessionExpired):
        auth_service.refresh(db, first["refresh_token"])


def test_refresh_colliding_token_pair_is_stale(db, admin_user, clock, monkeypatch):
    first = _login(db)
    second = _login(db)
    monkeypatch.setattr(
        auth_service, "_issue_token_pair",
        lambda user, expires_at, refresh_expires_at: (first["token"], first["refresh_token"]),
    )

    with pytest.raises(SessionNotFound):
        auth_service.refresh(db, second["refresh_token"])

    # both sessions are left untouched
    assert auth_service.validate(db, first["token"]).id == admin_user.id
    assert auth_service.validate(db, second["token"]).id == admin_user.id


def test_concurrent_refresh_has_a_single_winner(db, admin_user, clock, monkeypatch):
    first = _login(db)
    real_update = auth_service.update
    winner = {}

    def racing_update(*args, **kwargs):
        # another request redeems the same refresh token first
        if not winner:
            winner["pending"] = True
            other = SessionLocal()
            try:
                winner["result"] = auth_service.refresh(other, first["refresh_token"])
            finally:
                other.close()
        return real_update(*args, **kwargs)

    monkeypatch.setattr(auth_service, "update", racing_update)

    with pytest.raises(SessionNotFound):
        auth_service.refresh(db, first["refresh_token"])

    assert auth_service.validate(db, winner["result"]["token"]).id == admin_user.id
    assert db.query(AdminSession).count() == 1


def test_refresh_rejects_access_token(db, admin_user, clock):
    first = _login(db)
    with pytest.raises(SessionNotFound):
        auth_service.refresh(db, first["token"])


def test_logout_deactivates_and_is_idempotent(db, admin_user, clock):
    result = _login(db)

    assert auth_service.logout(db, result["token"]) is True
    assert auth_service.logout(db, result["token"]) is False
    assert auth_service.logout(db, "unknown") is False
    assert auth_service.logout(db, None) is False

    with pytest.raises(SessionInactive):
        auth_service.validate(db, result["token"])
    with pytest.raises(SessionInactive):
        auth_service.refresh(db, result["refresh_token"])


def test_validate_reports_expiry_for_logged_out_session(db, admin_user, clock):
    result = _login(db)
    auth_service.logout(db, result["token"])
    clock.advance(hours=25)
    with pytest.raises(SessionExpired):
        auth_service.validate(db, result["token"])


def test_deactivate_all_sessions(db, admin_user, clock):
    sessions = [_login(db) for _ in range(3)]
    other = auth_service.create_admin_user(db, "editor", "editor@newshub.com", "editorpass")
    kept = _login(db, username="editor", password="editorpass")

    assert auth_service.deactivate_all_sessions(db, admin_user.id) == 3
    for s in sessions:
        with pytest.raises(SessionInactive):
            auth_service.validate(db, s["token"])
    assert auth_service.validate(db, kept["token"]).id == other.id
    assert auth_service.deactivate_all_sessions(db, admin_user.id) == 0


def test_cleanup_removes_rows_past_either_expiry(db, admin_user, clock):
    old = _login(db)
    clock.advance(hours=25)
    fresh = _login(db)

    assert auth_service.cleanup_expired(db) == 1
    assert auth_service.cleanup_expired(db) == 0
    db.expire_all()
    remaining = db.query(AdminSession).all()
    assert [s.access_token for s in remaining] == [fresh["token"]]
    with pytest.raises(SessionNotFound):
        auth_service.validate(db, old["token"])


def test_cleanup_removes_inactive_rows_only_once_expired(db, admin_user, clock):
    result = _login(db)
    auth_service.logout(db, result["token"])
    assert auth_service.cleanup_expired(db) == 0
    clock.advance(days=31)
    assert auth_service.cleanup_expired(db) == 1


def test_list_sessions_only_returns_live_ones(db, admin_user, clock):
    a = _login(db)
    b = _login(db)
    auth_service.logout(db, a["token"])
    rows = auth_service.list_sessions(db, admin_user.id)
    assert [r.access_token for r in rows] == [b["token"]]


def test_create_admin_user_rejects_duplicates(db, admin_user):
    with pytest.raises(Conflict):
        auth_service.create_admin_user(db, "Admin", "other@newshub.com", "password")
    with pytest.raises(Conflict):
        auth_service.create_admin_user(db, "someone", "ADMIN@newshub.com", "password")


def test_password_hashing():
    hashed = auth_service.get_password_hash("s3cret")
    assert hashed != "s3cret"
    assert auth_service.verify_password("s3cret", hashed)
    assert not auth_service.verify_password("other", hashed)
    assert not auth_service.verify_password("s3cret", None)
    assert not auth_service.verify_password("s3cret", "not-a-hash")
