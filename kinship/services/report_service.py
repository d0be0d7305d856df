"""Services for creating and reviewing user reports."""
from __future__ import annotations

import logging
from typing import Sequence, cast
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import ReportContentType, ReportStatus
from ..models import Comment, Message, Notification, Post, Report, User, Video
from ..models.base import utcnow
from .auth_service import list_admin_ids
from .composite import CompositeWrite, CompositeWriteError
from . import notification_service
from .notification_service import NotificationType

logger = logging.getLogger(__name__)

_TARGET_MODELS = {
    ReportContentType.POST: Post,
    ReportContentType.COMMENT: Comment,
    ReportContentType.VIDEO: Video,
    ReportContentType.ACCOUNT: User,
    ReportContentType.MESSAGE: Message,
}


def create_report(
    db: Session,
    *,
    reporter: User,
    content_id: UUID,
    content_type: ReportContentType | str,
    reason: str,
    retry_delays: Sequence[float] | None = None,
) -> Report:
    """Store a report and notify every admin account about it.

    The report row and each admin notification are separate steps of one
    composite write: if a notification cannot be stored after retries, the
    notifications created so far and the report itself are removed.
    """

    safe_reason = (reason or "").strip()
    if len(safe_reason) < 2:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Reason is required")

    try:
        kind = ReportContentType(content_type)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid report target") from exc

    if db.get(_TARGET_MODELS[kind], content_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Reported {kind.value} not found")

    reporter_id = cast(UUID, reporter.id)
    admin_ids = list_admin_ids(db)

    def _insert_report() -> Report:
        report = Report(
            reporter_id=reporter_id,
            reported_content_id=content_id,
            content_type=kind.value,
            reason=safe_reason,
        )
        db.add(report)
        db.flush()
        return report

    def _delete_row(row: Report | Notification) -> None:
        db.delete(row)

    write = CompositeWrite(db, "Report submission", retry_delays=retry_delays)
    try:
        report = write.step("insert_report", _insert_report, compensate=_delete_row)
        for admin_id in admin_ids:
            write.step(
                f"notify:{admin_id}",
                lambda admin_id=admin_id: notification_service.add_notification(
                    db,
                    recipient_id=admin_id,
                    sender_id=reporter_id,
                    type_=NotificationType.REPORT,
                    title="New content report",
                    message=f"A {kind.value} was reported: {safe_reason}",
                    related_id=content_id,
                ),
                compensate=_delete_row,
            )
    except CompositeWriteError as exc:
        raise exc.as_http_exception() from exc
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to submit report") from exc

    logger.info("Report %s stored and sent to %d admin(s)", report.id, len(admin_ids))
    db.refresh(report)
    return report


def list_reports(db: Session, *, status_filter: ReportStatus | str | None = ReportStatus.PENDING) -> list[Report]:
    stmt = select(Report).order_by(Report.created_at.desc())
    if status_filter:
        stmt = stmt.where(Report.status == str(status_filter))
    return list(db.scalars(stmt))


def review_report(db: Session, *, report_id: UUID, reviewer: User, outcome: ReportStatus | str) -> Report:
    try:
        resolved = ReportStatus(outcome)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid report status") from exc
    if resolved is ReportStatus.PENDING:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Reports can only be reviewed or dismissed")

    report = db.get(Report, report_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")

    report.status = resolved.value
    report.reviewed_at = utcnow()
    report.reviewed_by = reviewer.id
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to update report") from exc
    db.refresh(report)
    return report


__all__ = ["create_report", "list_reports", "review_report"]
