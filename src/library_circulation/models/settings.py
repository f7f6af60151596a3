"""
Circulation policy values.

Policy is stored as key/value rows in ``library_settings`` and handed to the
engine as an immutable ``CirculationPolicy`` snapshot, so tests can pass
fixed values instead of touching the table.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SettingKey(str, Enum):
    FINE_PER_DAY = "FINE_PER_DAY"
    LOAN_PERIOD_DAYS = "LOAN_PERIOD_DAYS"
    MAX_LOANS_PER_MEMBER = "MAX_LOANS_PER_MEMBER"
    MAX_RESERVATIONS_PER_MEMBER = "MAX_RESERVATIONS_PER_MEMBER"
    RESERVATION_EXPIRY_DAYS = "RESERVATION_EXPIRY_DAYS"
    MAX_RENEWAL_COUNT = "MAX_RENEWAL_COUNT"
    RENEWAL_GRACE_DAYS = "RENEWAL_GRACE_DAYS"


class CirculationPolicy(BaseModel):
    """Typed snapshot of every policy value the engine reads."""

    fine_per_day: float = Field(default=1.00, ge=0)
    loan_period_days: int = Field(default=14, ge=1, le=365)
    max_loans_per_member: int = Field(default=3, ge=0)
    max_reservations_per_member: int = Field(default=3, ge=0)
    reservation_expiry_days: int = Field(default=7, ge=1, le=365)
    max_renewal_count: int = Field(default=3, ge=0)
    renewal_grace_days: int = Field(
        default=0, ge=0, description="How many days overdue a loan may be and still renew"
    )

    model_config = ConfigDict(frozen=True)


# Field on CirculationPolicy backing each stored key.
POLICY_FIELDS: dict[SettingKey, str] = {
    SettingKey.FINE_PER_DAY: "fine_per_day",
    SettingKey.LOAN_PERIOD_DAYS: "loan_period_days",
    SettingKey.MAX_LOANS_PER_MEMBER: "max_loans_per_member",
    SettingKey.MAX_RESERVATIONS_PER_MEMBER: "max_reservations_per_member",
    SettingKey.RESERVATION_EXPIRY_DAYS: "reservation_expiry_days",
    SettingKey.MAX_RENEWAL_COUNT: "max_renewal_count",
    SettingKey.RENEWAL_GRACE_DAYS: "renewal_grace_days",
}

SETTING_DESCRIPTIONS: dict[SettingKey, str] = {
    SettingKey.FINE_PER_DAY: "Fine charged per day overdue",
    SettingKey.LOAN_PERIOD_DAYS: "Default loan period in days",
    SettingKey.MAX_LOANS_PER_MEMBER: "Maximum open loans per member",
    SettingKey.MAX_RESERVATIONS_PER_MEMBER: "Maximum open reservations per member",
    SettingKey.RESERVATION_EXPIRY_DAYS: "Days before an unfulfilled reservation expires",
    SettingKey.MAX_RENEWAL_COUNT: "Maximum renewals per loan",
    SettingKey.RENEWAL_GRACE_DAYS: "Days overdue a loan may be and still be renewed",
}
