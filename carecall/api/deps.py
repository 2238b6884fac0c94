from collections.abc import AsyncGenerator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from carecall.core.config import get_settings
from carecall.core.database import get_session_factory
from carecall.integrations.llm import MoodClassificationClient
from carecall.services.auth import AuthenticatedUser, AuthenticationError, SessionTokenVerifier
from carecall.services.call_reports import (
    CallIngestionService,
    CallReportQueryService,
    CallReportWriter,
)
from carecall.services.identity import IdentityResolver
from carecall.services.mood_assessment import MoodAssessmentService, MoodClassifier
from carecall.services.profiles import PatientProfileService

_mood_classifier: MoodClassificationClient | None = None
_token_verifier: SessionTokenVerifier | None = None


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an AsyncSession."""
    session = get_session_factory()()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def get_mood_classifier() -> MoodClassifier | None:
    """Provide the shared mood classification client, or ``None`` when unconfigured."""
    global _mood_classifier
    if _mood_classifier is None:
        _mood_classifier = MoodClassificationClient(get_settings())
    return _mood_classifier if _mood_classifier.is_configured else None


async def get_token_verifier() -> SessionTokenVerifier:
    global _token_verifier
    if _token_verifier is None:
        _token_verifier = SessionTokenVerifier(get_settings())
    return _token_verifier


async def get_current_user(
    authorization: str | None = Header(default=None),
    verifier: SessionTokenVerifier = Depends(get_token_verifier),
) -> AuthenticatedUser:
    """Resolve the caller from the forwarded session bearer token."""
    try:
        return verifier.verify_authorization_header(authorization)
    except AuthenticationError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


async def get_profile_service(
    session: AsyncSession = Depends(get_db_session),
) -> PatientProfileService:
    return PatientProfileService(session)


async def get_call_ingestion_service(
    session: AsyncSession = Depends(get_db_session),
    classifier: MoodClassifier | None = Depends(get_mood_classifier),
) -> CallIngestionService:
    """Provide the webhook pipeline wired to a single request session."""
    settings = get_settings()
    resolver = IdentityResolver(
        PatientProfileService(session),
        strategy=settings.call_identity_strategy,
    )
    return CallIngestionService(
        resolver,
        MoodAssessmentService(classifier),
        CallReportWriter(session),
    )


async def get_report_query_service(
    session: AsyncSession = Depends(get_db_session),
) -> CallReportQueryService:
    return CallReportQueryService(session)
