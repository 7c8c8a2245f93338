# tests/test_auth.py
from yapluca.identity import ProviderError
from yapluca.storage import SESSION_KEY


def register_alice(auth_service):
    return auth_service.register("alice@example.com", "secret123", {"name": "Alice", "phone": "+33600000000"})


def test_register_creates_profile_with_default_stats(auth_service, documents):
    result = register_alice(auth_service)

    assert result.success
    assert result.user.display_name == "Alice"
    doc = documents.get("users", result.user.uid)
    assert doc["name"] == "Alice"
    assert doc["phone"] == "+33600000000"
    assert doc["accepted_terms"] is True
    assert doc["profile"] == {"rating": 5.0, "total_rentals": 0, "favorite_stations": []}


def test_register_surfaces_provider_message(auth_service):
    register_alice(auth_service)
    result = register_alice(auth_service)

    assert not result.success
    assert result.error == "The email address is already in use by another account."


def test_register_reports_profile_write_failure_without_rollback(auth_service, documents, provider, monkeypatch):
    def fail(*args):
        raise ProviderError("documents/unavailable", "document store offline")
    monkeypatch.setattr(documents, "set", fail)

    result = register_alice(auth_service)

    assert not result.success
    assert result.error == "document store offline"
    provider.sign_out()
    # the identity stays behind and can still sign in
    assert provider.sign_in("alice@example.com", "secret123").uid == result.user.uid


def test_register_then_login_yields_matching_session(auth_service):
    registered = register_alice(auth_service)
    auth_service.logout()

    result = auth_service.login("alice@example.com", "secret123")

    assert result.success
    assert result.user_data.name == "Alice"
    session = auth_service.check_session()
    assert session.user_id == registered.user.uid
    assert session.email == "alice@example.com"
    assert session.display_name == "Alice"


def test_login_failure_returns_error_and_no_session(auth_service):
    register_alice(auth_service)
    auth_service.logout()

    result = auth_service.login("alice@example.com", "nope-nope")

    assert not result.success
    assert result.error
    assert auth_service.check_session() is None


def test_logout_clears_session_and_is_idempotent(auth_service):
    register_alice(auth_service)
    auth_service.login("alice@example.com", "secret123")

    assert auth_service.logout().success
    assert auth_service.check_session() is None
    assert auth_service.get_current_user() is None
    assert auth_service.logout().success


def test_get_user_data_swallows_failures(auth_service, documents, monkeypatch):
    uid = register_alice(auth_service).user.uid
    assert auth_service.get_user_data(uid).email == "alice@example.com"
    assert auth_service.get_user_data("") is None
    assert auth_service.get_user_data("unknown") is None

    def fail(*args):
        raise ProviderError("documents/unavailable", "offline")
    monkeypatch.setattr(documents, "get", fail)
    assert auth_service.get_user_data(uid) is None


def test_check_session_ignores_corrupt_record(auth_service, storage):
    storage.set_item(SESSION_KEY, {"email": "missing-user-id@example.com"})
    assert auth_service.check_session() is None


def test_refresh_session_reissues_token(auth_service, provider):
    registered = register_alice(auth_service)
    seen = []
    provider.on_auth_state_changed(seen.append)

    result = auth_service.refresh_session()

    assert result.success
    assert result.user.uid == registered.user.uid
    assert [u.uid for u in seen] == [registered.user.uid, registered.user.uid]


def test_refresh_with_unverifiable_token_ends_session(auth_service, provider):
    register_alice(auth_service)
    auth_service.login("alice@example.com", "secret123")
    provider.current_user.id_token = "not-a-jwt"

    result = auth_service.refresh_session()

    assert not result.success
    assert auth_service.get_current_user() is None
    assert auth_service.check_session() is None


def test_refresh_without_user_fails(auth_service):
    assert not auth_service.refresh_session().success
