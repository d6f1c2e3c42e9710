"""
SLA Value Objects
==================

Immutable value objects for the SLA domain.

SLAThresholds holds every named SLA parameter. Time windows and the
severity policy limits live side by side so both can be overridden the
same way from the configuration store.
"""

import math
from dataclasses import dataclass, asdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Mapping, Optional

from caseflow.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

SECONDS_PER_HOUR = 3600


@dataclass(frozen=True)
class SLAThresholds:
    """
    Resolved SLA parameters for one tick.

    Hours and days are whole numbers. Every field always has a value:
    the built-in default unless a valid override was found.
    """

    # Time windows
    first_response_hours: int = 2
    reengagement_days: int = 1
    signature_reminder_days: int = 2
    payment_reminder_days: int = 1
    requirement_response_hours: int = 48
    document_review_hours: int = 24

    # Severity policy
    lead_critical_after_hours: int = 4
    contract_critical_after_days: int = 3
    payment_critical_after_days: int = 7
    requirement_lookahead_hours: int = 24

    @classmethod
    def defaults(cls) -> "SLAThresholds":
        return cls()

    @classmethod
    def from_overrides(cls, values: Mapping[str, Optional[str]]) -> "SLAThresholds":
        """
        Build thresholds from raw configuration values.

        Keys not listed in THRESHOLD_KEYS are ignored. A value replaces the
        default only if it parses as a positive integer.
        """
        resolved = {}
        for config_key, field_name in THRESHOLD_KEYS.items():
            if config_key not in values:
                continue
            parsed = parse_positive_int(values[config_key])
            if parsed is None:
                logger.debug(
                    "Ignoring invalid SLA override",
                    extra={"key": config_key, "value": values[config_key]}
                )
                continue
            resolved[field_name] = parsed
        return cls(**resolved)

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


THRESHOLD_KEYS: Dict[str, str] = {
    "sla_first_response_hours": "first_response_hours",
    "sla_incomplete_data_reengagement_days": "reengagement_days",
    "sla_contract_signature_reminder_1_days": "signature_reminder_days",
    "sla_payment_reminder_1_days": "payment_reminder_days",
    "sla_authority_requirement_response_hours": "requirement_response_hours",
    "sla_document_review_hours": "document_review_hours",
    "sla_lead_critical_after_hours": "lead_critical_after_hours",
    "sla_contract_critical_after_days": "contract_critical_after_days",
    "sla_payment_critical_after_days": "payment_critical_after_days",
    "sla_requirement_lookahead_hours": "requirement_lookahead_hours",
}

THRESHOLD_KEY_PREFIX = "sla_"


def parse_positive_int(value: Optional[str]) -> Optional[int]:
    """Parse a stored override; None unless it is a positive integer."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = int(text)
    except ValueError:
        return None
    return parsed if parsed > 0 else None


class SLACalculator:
    """
    Pure time arithmetic shared by the scanners.

    All elapsed-time figures are floored to whole units.
    """

    @staticmethod
    def hours_ago(now: datetime, hours: int) -> datetime:
        return now - timedelta(hours=hours)

    @staticmethod
    def days_ago(now: datetime, days: int) -> datetime:
        return now - timedelta(days=days)

    @staticmethod
    def whole_hours_between(start: datetime, end: datetime) -> int:
        """Floor of the hours from start to end (negative if end is earlier)."""
        return math.floor((end - start).total_seconds() / SECONDS_PER_HOUR)

    @staticmethod
    def hours_until(deadline: datetime, now: datetime) -> float:
        """Fractional hours until the deadline (negative once it has passed)."""
        return (deadline - now).total_seconds() / SECONDS_PER_HOUR

    @staticmethod
    def start_of_day(day: date) -> datetime:
        """Midnight UTC at the start of a calendar date."""
        return datetime.combine(day, time.min, tzinfo=timezone.utc)
