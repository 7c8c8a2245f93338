# yapluca/policy.py
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

# 13 months of 30 days (CNIL recommendation for cookie/consent lifetime)
CONSENT_MAX_AGE = timedelta(days=13 * 30)

def parse_timestamp(value: str) -> datetime:
    ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts

def consent_expired(timestamp: Optional[str], now: datetime) -> bool:
    """A consent without a timestamp is not expired here; callers decide what absence means."""
    if not timestamp:
        return False
    return now - parse_timestamp(timestamp) > CONSENT_MAX_AGE

def banner_required(timestamp: Optional[str], now: datetime) -> bool:
    return not timestamp or consent_expired(timestamp, now)

def evaluate_location_access(has_consent: bool, os_status: Optional[str] = None) -> Tuple[bool, Optional[str]]:
    """
    Two-stage gate: user consent first, then the OS permission answer.
    os_status is only meaningful once consent is present.
    """
    if not has_consent:
        return False, "consent_required"
    if os_status != "granted":
        return False, "permission_denied"
    return True, None
