from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError

from carecall.api.deps import (
    get_call_ingestion_service,
    get_current_user,
    get_report_query_service,
)
from carecall.core.config import get_settings
from carecall.schemas.call_events import CallEventValidationError, parse_call_event
from carecall.schemas.call_reports import (
    CallReportIngestResponse,
    CallReportItem,
    CallReportListResponse,
    MoodAnalysisItem,
    PaginationMeta,
)
from carecall.services.auth import AuthenticatedUser
from carecall.services.call_reports import (
    CallIngestionService,
    CallReportQueryService,
    ReportQuery,
    ReportQueryError,
)


logger = logging.getLogger(__name__)

router = APIRouter()

WEBHOOK_PATH = "/phone-call-reports/webhook"
REPORTS_PATH = "/phone-call-reports"


@router.options(WEBHOOK_PATH, include_in_schema=False)
@router.options(REPORTS_PATH, include_in_schema=False)
async def phone_call_reports_preflight() -> PlainTextResponse:
    return PlainTextResponse("ok")


@router.post(
    WEBHOOK_PATH,
    response_model=CallReportIngestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ingest a completed call transcript and store its mood report.",
)
async def ingest_phone_call_report(
    request: Request,
    service: CallIngestionService = Depends(get_call_ingestion_service),
) -> CallReportIngestResponse:
    try:
        body = await request.json()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body") from exc

    try:
        event = parse_call_event(body)
    except CallEventValidationError as exc:
        logger.info("Rejected call event: %s", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    logger.info(
        "Received call event type=%s conversation=%s turns=%d",
        event.type,
        event.conversation_id,
        len(event.data.transcript or []),
    )

    try:
        result = await service.ingest(event)
    except SQLAlchemyError as exc:
        logger.exception("Failed to persist phone call report")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save phone call report",
        ) from exc

    if result.created:
        message = "Phone call report saved successfully with AI mood analysis"
    else:
        message = "Phone call report already recorded for this conversation"

    return CallReportIngestResponse(
        message=message,
        data=CallReportItem.model_validate(result.report),
        mood_analysis=MoodAnalysisItem(**result.judgment.as_dict()),
    )


@router.api_route(
    WEBHOOK_PATH,
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def webhook_method_not_allowed() -> None:
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed. Only POST requests are supported.",
    )


@router.get(
    REPORTS_PATH,
    response_model=CallReportListResponse,
    summary="List phone call reports for a contact number, newest first by default.",
)
async def list_phone_call_reports(
    phone_number: str | None = Query(
        default=None, description="Contact number whose reports should be returned."
    ),
    page: int = Query(default=1, description="1-based page number."),
    limit: int | None = Query(default=None, description="Page size between 1 and 100."),
    sort: str = Query(default="desc", description="Creation time order: asc or desc."),
    _user: AuthenticatedUser = Depends(get_current_user),
    service: CallReportQueryService = Depends(get_report_query_service),
) -> CallReportListResponse:
    settings = get_settings()
    try:
        query = ReportQuery(
            phone_number=(phone_number or "").strip() or settings.reports_default_phone_number,
            page=page,
            limit=settings.reports_default_limit if limit is None else limit,
            sort=sort,
        )
    except ReportQueryError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        result = await service.list_reports(query)
    except SQLAlchemyError as exc:
        logger.exception("Failed to load phone call reports")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve phone call reports",
        ) from exc

    return CallReportListResponse(
        message="Phone call reports retrieved successfully",
        data=[CallReportItem.model_validate(report) for report in result.reports],
        pagination=PaginationMeta(**result.pagination()),
    )


@router.api_route(
    REPORTS_PATH,
    methods=["POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def reports_method_not_allowed() -> None:
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed. Only GET requests are supported.",
    )
