from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from carecall.models import PatientProfile
from carecall.services.profiles import PatientProfileService


logger = logging.getLogger(__name__)

ANONYMOUS_USER_ID = "anonymous-user"

SINGLE_TENANT = "single_tenant"
SUBJECT = "subject"


@dataclass(slots=True)
class ResolvedIdentity:
    """Identity a call report is attributed to, with the matching profile if found."""

    user_id: str
    profile: PatientProfile | None
    source: str


class IdentityResolver:
    """Attribute an inbound call to a patient.

    ``single_tenant`` assumes one active patient per deployment: the first
    stored profile wins over whatever subject id the call platform sent.
    ``subject`` only matches a profile keyed by the event's own subject id.
    """

    def __init__(self, profiles: PatientProfileService, *, strategy: str = SINGLE_TENANT):
        if strategy not in {SINGLE_TENANT, SUBJECT}:
            raise ValueError(f"Unknown identity resolution strategy '{strategy}'.")
        self._profiles = profiles
        self._strategy = strategy

    async def resolve(self, subject_id: str | None) -> ResolvedIdentity:
        provisional = subject_id or ANONYMOUS_USER_ID
        fallback_source = "subject" if subject_id else "anonymous"

        try:
            if self._strategy == SINGLE_TENANT:
                profile = await self._profiles.find_first_profile()
            elif subject_id:
                profile = await self._profiles.find_by_subject(subject_id)
            else:
                profile = None
        except SQLAlchemyError as exc:
            logger.warning(
                "Profile lookup failed; attributing call to %s", provisional, exc_info=exc
            )
            return ResolvedIdentity(user_id=provisional, profile=None, source=fallback_source)

        if profile is not None:
            logger.info("Using stored profile for user %s", profile.user_id)
            return ResolvedIdentity(user_id=profile.user_id, profile=profile, source="profile")

        logger.info("No patient profile found; using fallback user_id %s", provisional)
        return ResolvedIdentity(user_id=provisional, profile=None, source=fallback_source)
