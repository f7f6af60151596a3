"""
Settings Provider.

Policy values are stored as strings keyed by ``SettingKey``. A missing or
unparsable value falls back to the ``CirculationPolicy`` default and logs a
warning, so a bad admin edit never takes circulation down.
"""

import logging

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.settings import (
    POLICY_FIELDS,
    SETTING_DESCRIPTIONS,
    CirculationPolicy,
    SettingKey,
)
from .schema import LibrarySetting
from .session import safe_flush, safe_query

logger = logging.getLogger(__name__)

_DEFAULTS = CirculationPolicy()


class SettingsRepository:
    """Reads and writes the ``library_settings`` table."""

    def __init__(self, session: Session):
        self.session = session

    def _raw_values(self) -> dict[SettingKey, str]:
        rows = safe_query(
            self.session,
            lambda s: s.execute(select(LibrarySetting)).scalars().all(),
            "Failed to read library settings",
        )
        return {SettingKey(row.key): row.value for row in rows}

    def get_policy(self) -> CirculationPolicy:
        """Build a policy snapshot, one key at a time so a bad value only resets itself."""
        values = {}
        for key, raw in self._raw_values().items():
            field = POLICY_FIELDS[key]
            try:
                CirculationPolicy.model_validate({field: raw})
            except ValidationError:
                logger.warning(
                    "Ignoring invalid value %r for setting %s; using default %r",
                    raw,
                    key.value,
                    getattr(_DEFAULTS, field),
                )
                continue
            values[field] = raw
        return CirculationPolicy.model_validate(values)

    def get(self, key: SettingKey) -> float | int:
        """Typed value of one setting."""
        return getattr(self.get_policy(), POLICY_FIELDS[SettingKey(key)])

    def set(self, key: SettingKey, value: float | int | str) -> CirculationPolicy:
        """
        Store a new value for ``key`` after validating it.

        Raises:
            ValueError: the value is not valid for this key
        """
        key = SettingKey(key)
        field = POLICY_FIELDS[key]
        try:
            validated = CirculationPolicy.model_validate({field: value})
        except ValidationError as e:
            raise ValueError(f"Invalid value {value!r} for {key.value}: {e}") from e

        row = self.session.get(LibrarySetting, key)
        stored = str(getattr(validated, field))
        if row is None:
            self.session.add(
                LibrarySetting(key=key, value=stored, description=SETTING_DESCRIPTIONS[key])
            )
        else:
            row.value = stored
        safe_flush(self.session, f"set {key.value}")
        return self.get_policy()

    def seed_defaults(self) -> int:
        """Insert any missing keys with their default values; returns how many were added."""
        existing = self._raw_values()
        added = 0
        for key, field in POLICY_FIELDS.items():
            if key in existing:
                continue
            self.session.add(
                LibrarySetting(
                    key=key,
                    value=str(getattr(_DEFAULTS, field)),
                    description=SETTING_DESCRIPTIONS[key],
                )
            )
            added += 1
        if added:
            safe_flush(self.session, "seed settings")
        return added
