"""Content report routes: filing for everyone, review for admins."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..constants import ReportStatus
from ..database import get_session
from ..models import User
from ..schemas import ReportCreate, ReportResponse, ReportReview
from ..services import create_report, get_current_user, list_reports, require_admin, review_report

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("/", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def create_report_endpoint(
    payload: ReportCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ReportResponse:
    report = create_report(
        db,
        reporter=current_user,
        content_id=payload.content_id,
        content_type=payload.content_type,
        reason=payload.reason,
    )
    return ReportResponse.model_validate(report)


@router.get("/", response_model=list[ReportResponse])
async def list_reports_endpoint(
    status_filter: ReportStatus | None = Query(ReportStatus.PENDING, alias="status"),
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_session),
) -> list[ReportResponse]:
    return [ReportResponse.model_validate(report) for report in list_reports(db, status_filter=status_filter)]


@router.post("/{report_id}/review", response_model=ReportResponse)
async def review_report_endpoint(
    report_id: UUID,
    payload: ReportReview,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_session),
) -> ReportResponse:
    report = review_report(db, report_id=report_id, reviewer=admin, outcome=payload.outcome)
    return ReportResponse.model_validate(report)


__all__ = ["router"]
