# yapluca/consent.py
"""
GDPR consent management: consent record, location permission gate, data
access audit log, subject-access export and right to erasure.

Storage failures never propagate from here; they are logged and the caller
gets None or False.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional
from pydantic import ValidationError
from yapluca import policy
from yapluca.schemas import AccessLogEntry, ConsentRecord, PermissionResult
from yapluca.storage import (
    LocalStorage, StorageError, ACCESS_LOGS_KEY, CONSENTS_KEY, FAVORITES_KEY,
    PREFERENCES_KEY, RENTAL_HISTORY_KEY, SESSION_KEY,
)

logger = logging.getLogger(__name__)

MAX_ACCESS_LOGS = 100
USER_AGENT = "YapluCa Mobile App"

USER_DATA_KEYS = [
    CONSENTS_KEY,
    ACCESS_LOGS_KEY,
    PREFERENCES_KEY,
    SESSION_KEY,
    FAVORITES_KEY,
    RENTAL_HISTORY_KEY,
]

PermissionRequester = Callable[[], str]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConsentManager:
    CONSENT_KEYS = {
        "ESSENTIAL": "essential",
        "GEOLOCATION": "geolocation",
        "ANALYTICS": "analytics",
        "MARKETING": "marketing",
    }

    def __init__(self, storage: LocalStorage, clock: Callable[[], datetime] = utcnow,
                 permission_requester: Optional[PermissionRequester] = None):
        self.storage = storage
        self.clock = clock
        self.permission_requester = permission_requester

    def get_consents(self) -> Optional[ConsentRecord]:
        try:
            data = self.storage.get_item(CONSENTS_KEY)
            return ConsentRecord(**data) if data else ConsentRecord()
        except (StorageError, TypeError, ValidationError) as e:
            logger.error("Error getting consents: %s", e)
            return None

    def save_consents(self, consents: dict) -> bool:
        try:
            record = ConsentRecord(**{
                **ConsentRecord().model_dump(),
                **consents,
                "essential": True,
                "timestamp": self.clock().isoformat(),
            })
            self.storage.set_item(CONSENTS_KEY, record.model_dump())
        except (StorageError, TypeError, ValidationError) as e:
            logger.error("Error saving consents: %s", e)
            return False
        logger.info("consents saved: geolocation=%s analytics=%s marketing=%s",
                    record.geolocation, record.analytics, record.marketing)
        return True

    def has_geolocation_consent(self) -> bool:
        consents = self.get_consents()
        return consents is not None and consents.geolocation is True

    def request_location_permission(self, requester: Optional[PermissionRequester] = None) -> PermissionResult:
        if not self.has_geolocation_consent():
            return PermissionResult(granted=False, reason="consent_required")

        requester = requester or self.permission_requester
        if requester is None:
            return PermissionResult(granted=False, reason="permission_denied")
        try:
            status = requester()
        except Exception as e:
            logger.warning("location permission request failed: %s", e)
            return PermissionResult(granted=False, reason="error", error=str(e))
        granted, reason = policy.evaluate_location_access(True, status)
        return PermissionResult(granted=granted, reason=reason)

    def log_data_access(self, data_type: str, purpose: str, user_id: Optional[str] = None) -> bool:
        entry = AccessLogEntry(
            timestamp=self.clock().isoformat(),
            data_type=data_type,
            purpose=purpose,
            user_id=user_id,
            user_agent=USER_AGENT,
        )
        try:
            logs = self.storage.get_item(ACCESS_LOGS_KEY) or []
            if not isinstance(logs, list):
                logger.warning("discarding unreadable access log of type %s", type(logs).__name__)
                logs = []
            logs.append(entry.model_dump())
            if len(logs) > MAX_ACCESS_LOGS:
                del logs[:len(logs) - MAX_ACCESS_LOGS]
            self.storage.set_item(ACCESS_LOGS_KEY, logs)
        except StorageError as e:
            logger.error("Error logging data access: %s", e)
            return False
        return True

    def get_access_logs(self):
        try:
            return [AccessLogEntry(**e) for e in self.storage.get_item(ACCESS_LOGS_KEY) or []]
        except (StorageError, TypeError, ValidationError) as e:
            logger.error("Error reading access logs: %s", e)
            return []

    def get_user_data_export(self, user_id: str) -> Optional[dict]:
        try:
            consents = self.get_consents()
            return {
                "export_date": self.clock().isoformat(),
                "user_id": user_id,
                "consents": consents.model_dump() if consents else None,
                "access_logs": self.storage.get_item(ACCESS_LOGS_KEY),
                "user_preferences": self.storage.get_item(PREFERENCES_KEY),
            }
        except StorageError as e:
            logger.error("Error exporting user data: %s", e)
            return None

    def delete_user_data(self, user_id: str) -> bool:
        try:
            self.storage.multi_remove(USER_DATA_KEYS)
        except StorageError as e:
            logger.error("Error deleting user data: %s", e)
            return False
        # appended after the bulk removal so the erasure itself stays auditable
        self.log_data_access("user_data", "deletion", user_id)
        logger.info("local data erased for %s", user_id)
        return True

    def check_consent_expiry(self) -> bool:
        consents = self.get_consents()
        if consents is None:
            return False
        try:
            return policy.consent_expired(consents.timestamp, self.clock())
        except ValueError:
            logger.warning("unreadable consent timestamp %r", consents.timestamp)
            return True

    def should_show_consent_banner(self) -> bool:
        consents = self.get_consents()
        if consents is None:
            return True
        try:
            return policy.banner_required(consents.timestamp, self.clock())
        except ValueError:
            logger.warning("unreadable consent timestamp %r", consents.timestamp)
            return True

    @staticmethod
    def get_data_retention_periods() -> dict:
        return {
            "account_data": "3 years after last login",
            "geolocation_data": "12 months maximum",
            "rental_history": "5 years (legal obligation)",
            "connection_logs": "12 months maximum",
            "marketing_data": "Until consent withdrawal",
            "analytics_data": "25 months maximum",
        }

    @staticmethod
    def get_data_processing_purposes() -> dict:
        return {
            "essential": {
                "purpose": "Account management and service provision",
                "legal_basis": "Contract execution",
                "data_types": ["email", "name", "password_hash"],
            },
            "geolocation": {
                "purpose": "Find nearby charging stations",
                "legal_basis": "Consent",
                "data_types": ["gps_coordinates", "location_history"],
            },
            "analytics": {
                "purpose": "Service improvement and usage analysis",
                "legal_basis": "Legitimate interest",
                "data_types": ["usage_statistics", "performance_metrics"],
            },
            "marketing": {
                "purpose": "Commercial communications",
                "legal_basis": "Consent",
                "data_types": ["email", "preferences", "interaction_history"],
            },
        }
