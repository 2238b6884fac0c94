from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from carecall.models import PatientProfile
from carecall.services.identity import ANONYMOUS_USER_ID, IdentityResolver
from carecall.services.profiles import PatientProfileService


class FailingProfileService:
    def __init__(self) -> None:
        self.calls = 0

    async def find_first_profile(self):
        self.calls += 1
        raise OperationalError("SELECT 1", {}, Exception("connection reset"))

    async def find_by_subject(self, user_id: str):
        self.calls += 1
        raise OperationalError("SELECT 1", {}, Exception("connection reset"))


async def _add_profile(session: AsyncSession, user_id: str, created_at: datetime) -> PatientProfile:
    profile = PatientProfile(
        user_id=user_id,
        information=f"Profile for {user_id}",
        phone_number="+15550001111",
        created_at=created_at,
    )
    session.add(profile)
    await session.flush()
    return profile


@pytest.mark.asyncio
async def test_single_tenant_uses_first_stored_profile(session: AsyncSession) -> None:
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    await _add_profile(session, "late-user", base + timedelta(days=1))
    await _add_profile(session, "early-user", base)
    resolver = IdentityResolver(PatientProfileService(session))

    identity = await resolver.resolve("platform-subject")

    assert identity.user_id == "early-user"
    assert identity.profile is not None
    assert identity.profile.user_id == "early-user"
    assert identity.source == "profile"


@pytest.mark.asyncio
async def test_single_tenant_without_profiles_uses_subject_id(session: AsyncSession) -> None:
    resolver = IdentityResolver(PatientProfileService(session))

    identity = await resolver.resolve("platform-subject")

    assert identity.user_id == "platform-subject"
    assert identity.profile is None
    assert identity.source == "subject"


@pytest.mark.asyncio
async def test_missing_subject_and_profile_resolves_anonymous(session: AsyncSession) -> None:
    resolver = IdentityResolver(PatientProfileService(session))

    identity = await resolver.resolve(None)

    assert identity.user_id == ANONYMOUS_USER_ID
    assert identity.profile is None
    assert identity.source == "anonymous"


@pytest.mark.asyncio
async def test_subject_strategy_matches_only_the_event_subject(session: AsyncSession) -> None:
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    await _add_profile(session, "first-user", base)
    await _add_profile(session, "caller", base + timedelta(hours=1))
    resolver = IdentityResolver(PatientProfileService(session), strategy="subject")

    matched = await resolver.resolve("caller")
    unmatched = await resolver.resolve("stranger")
    anonymous = await resolver.resolve(None)

    assert matched.user_id == "caller"
    assert matched.profile is not None
    assert unmatched.user_id == "stranger"
    assert unmatched.profile is None
    assert anonymous.user_id == ANONYMOUS_USER_ID


@pytest.mark.asyncio
@pytest.mark.parametrize("strategy", ["single_tenant", "subject"])
async def test_lookup_failure_falls_back_without_raising(strategy: str) -> None:
    profiles = FailingProfileService()
    resolver = IdentityResolver(profiles, strategy=strategy)  # type: ignore[arg-type]

    identity = await resolver.resolve("platform-subject")

    assert identity.user_id == "platform-subject"
    assert identity.profile is None
    assert profiles.calls == 1


@pytest.mark.asyncio
async def test_lookup_failure_without_subject_is_anonymous() -> None:
    resolver = IdentityResolver(FailingProfileService())  # type: ignore[arg-type]

    identity = await resolver.resolve(None)

    assert identity.user_id == ANONYMOUS_USER_ID
    assert identity.source == "anonymous"


def test_unknown_strategy_is_rejected() -> None:
    with pytest.raises(ValueError):
        IdentityResolver(FailingProfileService(), strategy="round_robin")  # type: ignore[arg-type]
