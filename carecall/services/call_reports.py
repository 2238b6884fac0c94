from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carecall.models import CallReport, PatientProfile
from carecall.schemas.call_events import CallEvent
from carecall.services.identity import IdentityResolver, ResolvedIdentity
from carecall.services.mood_assessment import MoodAssessmentService, MoodJudgment
from carecall.services.transcripts import normalize_transcript


logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
SORT_DIRECTIONS = ("asc", "desc")


class ReportQueryError(ValueError):
    """Raised for pagination arguments outside the accepted range."""


@dataclass(slots=True)
class ReportQuery:
    phone_number: str
    page: int = 1
    limit: int = 10
    sort: str = "desc"

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ReportQueryError("Page must be greater than 0")
        if self.limit < 1 or self.limit > MAX_PAGE_SIZE:
            raise ReportQueryError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
        if self.sort not in SORT_DIRECTIONS:
            raise ReportQueryError('Sort must be either "asc" or "desc"')

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(slots=True)
class ReportPage:
    """One window of reports plus the totals needed to derive paging metadata."""

    reports: list[CallReport]
    page: int
    limit: int
    total_count: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit)

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1

    def pagination(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total_count": self.total_count,
            "total_pages": self.total_pages,
            "has_next_page": self.has_next_page,
            "has_prev_page": self.has_prev_page,
        }


class CallReportWriter:
    """Persist mood judgments as immutable phone call reports."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create_report(
        self,
        user_id: str,
        judgment: MoodJudgment,
        *,
        conversation_id: str | None = None,
    ) -> CallReport:
        report = CallReport(
            user_id=user_id,
            conversation_id=conversation_id,
            mood=judgment.mood,
            mood_description=judgment.mood_description,
            emotions=list(judgment.emotions),
        )
        self._session.add(report)
        try:
            await self._session.flush()
            await self._session.refresh(report)
        except SQLAlchemyError:
            await self._session.rollback()
            raise
        return report

    async def find_by_conversation(self, conversation_id: str) -> CallReport | None:
        stmt = select(CallReport).where(CallReport.conversation_id == conversation_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()


class CallReportQueryService:
    """Serve stable, paginated slices of reports for a contact number."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_reports(self, query: ReportQuery) -> ReportPage:
        condition = PatientProfile.phone_number == query.phone_number

        count_stmt = (
            select(func.count(CallReport.id))
            .select_from(CallReport)
            .join(PatientProfile, PatientProfile.user_id == CallReport.user_id)
            .where(condition)
        )
        total_result = await self._session.execute(count_stmt)
        total_count = int(total_result.scalar_one() or 0)

        if query.offset >= total_count:
            return ReportPage(reports=[], page=query.page, limit=query.limit, total_count=total_count)

        if query.sort == "asc":
            ordering = (CallReport.created_at.asc(), CallReport.id.asc())
        else:
            ordering = (CallReport.created_at.desc(), CallReport.id.desc())

        stmt = (
            select(CallReport)
            .join(PatientProfile, PatientProfile.user_id == CallReport.user_id)
            .where(condition)
            .order_by(*ordering)
            .offset(query.offset)
            .limit(query.limit)
        )
        result = await self._session.execute(stmt)
        return ReportPage(
            reports=list(result.scalars().all()),
            page=query.page,
            limit=query.limit,
            total_count=total_count,
        )


@dataclass(slots=True)
class IngestionResult:
    report: CallReport
    judgment: MoodJudgment
    identity: ResolvedIdentity | None
    created: bool = True


class CallIngestionService:
    """Turn one call event into exactly one stored report.

    Steps run strictly in order: replay check, identity resolution,
    transcript normalization, mood assessment, write.
    """

    def __init__(
        self,
        resolver: IdentityResolver,
        assessor: MoodAssessmentService,
        writer: CallReportWriter,
    ):
        self._resolver = resolver
        self._assessor = assessor
        self._writer = writer

    async def ingest(self, event: CallEvent) -> IngestionResult:
        conversation_id = event.conversation_id
        if conversation_id:
            existing = await self._writer.find_by_conversation(conversation_id)
            if existing is not None:
                logger.info("Conversation %s already has report %s", conversation_id, existing.id)
                return self._replayed(existing)

        identity = await self._resolver.resolve(event.subject_id)
        transcript = normalize_transcript(event.data.transcript)
        if not transcript:
            logger.info("Call event %s carries no transcript text", conversation_id or event.type)

        judgment = await self._assessor.assess(identity.profile, transcript)

        try:
            report = await self._writer.create_report(
                identity.user_id,
                judgment,
                conversation_id=conversation_id,
            )
        except IntegrityError:
            # A concurrent delivery of the same conversation won the insert.
            if not conversation_id:
                raise
            existing = await self._writer.find_by_conversation(conversation_id)
            if existing is None:
                raise
            return self._replayed(existing)

        logger.info(
            "Stored call report %s for user %s (mood=%d, identity=%s)",
            report.id,
            report.user_id,
            report.mood,
            identity.source,
        )
        return IngestionResult(report=report, judgment=judgment, identity=identity)

    def _replayed(self, report: CallReport) -> IngestionResult:
        judgment = MoodJudgment(
            mood=report.mood,
            mood_description=report.mood_description,
            emotions=tuple(report.emotions or ()),
        )
        return IngestionResult(report=report, judgment=judgment, identity=None, created=False)
