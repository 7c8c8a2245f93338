# tests/test_consent.py
from unittest.mock import Mock
import pytest
from yapluca.consent import ConsentManager, MAX_ACCESS_LOGS, USER_DATA_KEYS
from yapluca.storage import CONSENTS_KEY, PREFERENCES_KEY, SESSION_KEY


def test_fresh_install_returns_default_denied_record(consents):
    assert consents.get_consents().model_dump() == {
        "essential": True,
        "geolocation": False,
        "analytics": False,
        "marketing": False,
        "timestamp": None,
    }


def test_save_stamps_timestamp(consents, clock):
    assert consents.save_consents({"geolocation": True, "analytics": False, "marketing": True})

    record = consents.get_consents()
    assert record.geolocation is True
    assert record.marketing is True
    assert record.timestamp == clock.now.isoformat()


def test_essential_cannot_be_revoked(consents, storage):
    consents.save_consents({"essential": False, "geolocation": True})
    assert storage.get_item(CONSENTS_KEY)["essential"] is True

    storage.set_item(CONSENTS_KEY, {"essential": False, "geolocation": False, "analytics": False,
                                    "marketing": False, "timestamp": None})
    assert consents.get_consents().essential is True


def test_save_overwrites_whole_record(consents):
    consents.save_consents({"geolocation": True, "analytics": True})
    consents.save_consents({"marketing": True})

    record = consents.get_consents()
    assert (record.geolocation, record.analytics, record.marketing) == (False, False, True)


def test_banner_lifecycle(consents, clock):
    assert consents.should_show_consent_banner()
    assert not consents.check_consent_expiry()

    consents.save_consents({"geolocation": True})
    assert not consents.should_show_consent_banner()

    clock.advance(days=13 * 30)
    assert not consents.should_show_consent_banner()

    clock.advance(days=1)
    assert consents.check_consent_expiry()
    assert consents.should_show_consent_banner()


def test_consent_expires_after_fourteen_months(consents, clock):
    consents.save_consents({"analytics": True})
    clock.advance(days=14 * 30)

    assert consents.check_consent_expiry()
    assert consents.should_show_consent_banner()


def test_unreadable_timestamp_counts_as_expired(consents, storage):
    storage.set_item(CONSENTS_KEY, {"geolocation": True, "timestamp": "last tuesday"})
    assert consents.check_consent_expiry()
    assert consents.should_show_consent_banner()


@pytest.mark.parametrize("os_status", ["granted", "denied", "undetermined"])
def test_location_requires_consent_before_os_prompt(consents, os_status):
    requester = Mock(return_value=os_status)

    result = consents.request_location_permission(requester)

    assert result.granted is False
    assert result.reason == "consent_required"
    requester.assert_not_called()


@pytest.mark.parametrize("os_status,granted,reason", [
    ("granted", True, None),
    ("denied", False, "permission_denied"),
])
def test_location_maps_os_answer_once_consented(consents, os_status, granted, reason):
    consents.save_consents({"geolocation": True})
    requester = Mock(return_value=os_status)

    result = consents.request_location_permission(requester)

    assert (result.granted, result.reason) == (granted, reason)
    requester.assert_called_once_with()


def test_location_request_error_is_a_result(storage, clock):
    requester = Mock(side_effect=RuntimeError("location services off"))
    manager = ConsentManager(storage, clock=clock, permission_requester=requester)
    manager.save_consents({"geolocation": True})

    result = manager.request_location_permission()

    assert result.granted is False
    assert result.reason == "error"
    assert "location services off" in result.error


def test_access_log_keeps_last_hundred(consents):
    for i in range(MAX_ACCESS_LOGS + 1):
        assert consents.log_data_access("geolocation", f"lookup-{i}", "u1")

    logs = consents.get_access_logs()
    assert len(logs) == MAX_ACCESS_LOGS
    assert logs[0].purpose == "lookup-1"
    assert logs[-1].purpose == f"lookup-{MAX_ACCESS_LOGS}"
    assert logs[-1].user_agent == "YapluCa Mobile App"


def test_export_bundles_consents_logs_and_preferences(consents, storage, clock):
    consents.save_consents({"analytics": True})
    consents.log_data_access("profile", "display")
    storage.set_item(PREFERENCES_KEY, {"language": "fr"})

    export = consents.get_user_data_export("u1")

    assert export["user_id"] == "u1"
    assert export["export_date"] == clock.now.isoformat()
    assert export["consents"]["analytics"] is True
    assert export["access_logs"][0]["data_type"] == "profile"
    assert export["user_preferences"] == {"language": "fr"}


def test_delete_user_data_removes_keys_and_logs_itself(consents, storage):
    consents.save_consents({"geolocation": True})
    storage.set_item(SESSION_KEY, {"user_id": "u1", "email": "u1@example.com"})
    storage.set_item(PREFERENCES_KEY, {"language": "fr"})
    consents.log_data_access("geolocation", "lookup", "u1")

    assert consents.delete_user_data("u1")

    for key in USER_DATA_KEYS:
        if key != "data_access_logs":
            assert storage.get_item(key) is None
    logs = consents.get_access_logs()
    assert [(e.data_type, e.purpose, e.user_id) for e in logs] == [("user_data", "deletion", "u1")]
    assert consents.get_consents().timestamp is None


def test_storage_failures_degrade_to_none_or_false(broken_storage, clock):
    manager = ConsentManager(broken_storage, clock=clock)

    assert manager.get_consents() is None
    assert manager.save_consents({"geolocation": True}) is False
    assert manager.has_geolocation_consent() is False
    assert manager.log_data_access("x", "y") is False
    assert manager.get_user_data_export("u1") is None
    assert manager.delete_user_data("u1") is False
    assert manager.check_consent_expiry() is False
    assert manager.should_show_consent_banner() is True


def test_static_gdpr_tables():
    assert set(ConsentManager.get_data_processing_purposes()) == set(ConsentManager.CONSENT_KEYS.values())
    assert ConsentManager.get_data_retention_periods()["rental_history"].startswith("5 years")


def test_save_rejects_non_boolean_choice(consents, storage):
    assert consents.save_consents({"geolocation": None}) is False
    assert storage.get_item(CONSENTS_KEY) is None
    assert consents.should_show_consent_banner()


def test_access_log_recovers_from_corrupt_value(consents, storage):
    storage.set_item("data_access_logs", {"not": "a list"})

    assert consents.log_data_access("geolocation", "lookup", "u1")

    logs = consents.get_access_logs()
    assert [(e.data_type, e.purpose) for e in logs] == [("geolocation", "lookup")]
