from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from carecall.models import PatientProfile
from carecall.schemas.profile import (
    DEMOGRAPHIC_FIELDS,
    MENTAL_HEALTH_FIELDS,
    ADDITIONAL_FIELDS,
    PROFILE_FIELDS,
    PatientProfileUpsert,
)


logger = logging.getLogger(__name__)

MIN_PHONE_NUMBER_LENGTH = 10


class ProfileValidationError(ValueError):
    """Raised when a profile payload cannot be stored."""


class PatientProfileService:
    """Load and upsert the structured profile owned by each patient."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_profile(self, user_id: str) -> PatientProfile | None:
        stmt = select(PatientProfile).where(PatientProfile.user_id == user_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_first_profile(self) -> PatientProfile | None:
        """Return the earliest created profile, if any exists."""
        stmt = (
            select(PatientProfile)
            .order_by(PatientProfile.created_at.asc(), PatientProfile.id.asc())
            .limit(1)
        )
        async with self._session.begin_nested():
            result = await self._session.execute(stmt)
            return result.scalars().first()

    async def find_by_subject(self, user_id: str) -> PatientProfile | None:
        async with self._session.begin_nested():
            return await self.get_profile(user_id)

    async def save_profile(self, user_id: str, payload: PatientProfileUpsert) -> PatientProfile:
        """Create or replace the caller's profile."""
        values = {name: self._strip_or_none(getattr(payload, name)) for name, _ in PROFILE_FIELDS}
        information = self._strip_or_none(payload.information)
        phone_number = self._strip_or_none(payload.phone_number)

        if not information and not any(values.values()):
            raise ProfileValidationError("Either information field or structured data is required")
        if phone_number and len(phone_number) < MIN_PHONE_NUMBER_LENGTH:
            raise ProfileValidationError("Phone number must be at least 10 characters long")

        if not information:
            information = self._summarize(values, phone_number)

        profile = await self.get_profile(user_id)
        if profile is None:
            profile = PatientProfile(user_id=user_id)
            self._session.add(profile)

        profile.information = information
        profile.phone_number = phone_number
        for name, value in values.items():
            setattr(profile, name, value)
        profile.updated_at = datetime.now(timezone.utc)

        await self._session.flush()
        await self._session.refresh(profile)
        logger.info("Saved profile for user %s", user_id)
        return profile

    def _summarize(self, values: dict[str, str | None], phone_number: str | None) -> str:
        parts: list[str] = []
        for name, label in DEMOGRAPHIC_FIELDS:
            if values.get(name):
                parts.append(f"{label}: {values[name]}")
        if phone_number:
            parts.append(f"Phone: {phone_number}")
        for name, label in MENTAL_HEALTH_FIELDS + ADDITIONAL_FIELDS:
            if values.get(name):
                parts.append(f"{label}: {values[name]}")
        return "\n".join(parts)

    def _strip_or_none(self, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None
