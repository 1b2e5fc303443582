"""Citizen report intake and the Pending -> Verified / Rejected moderation lifecycle."""
from __future__ import annotations

from datetime import date, datetime
from typing import Dict, Optional

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from models import CitizenReport, CrimeCategory, CrimeRecord, Location, ReportStatusHistory, User
from utils.audit import log_action
from utils.security import clean_text

ACTION_TARGETS = {"VERIFY": "Verified", "REJECT": "Rejected"}
STATUS_ACTIONS = {"verified": "VERIFY", "discarded": "REJECT", "rejected": "REJECT"}
DEFAULT_REJECTION_REASON = "Discarded by admin"


class ModerationError(Exception):
    """Raised when a report cannot be submitted or moderated."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


def action_for_status(status: Optional[str]) -> str:
    action = STATUS_ACTIONS.get(str(status or "").strip().lower())
    if not action:
        raise ModerationError("Invalid status value", 400)
    return action


def _record_status(report: CitizenReport, new_status: str, actor: Optional[User], remarks: str | None = None) -> None:
    history = ReportStatusHistory(
        report=report,
        previous_status=report.status,
        new_status=new_status,
        remarks=remarks,
        changed_by=actor.id if actor else None,
    )
    report.status = new_status
    db.session.add(history)


def submit_report(
    *,
    crime_type: str,
    severity: str,
    description: str,
    incident_date: date,
    user_id: str,
    location_id: int,
    category_id: Optional[int] = None,
    incident_time: Optional[str] = None,
) -> CitizenReport:
    submitter = db.session.get(User, str(user_id))
    if not submitter or not submitter.is_active:
        raise ModerationError("Unknown or inactive user", 400)
    if not db.session.get(Location, location_id):
        raise ModerationError("Unknown location", 400)
    if category_id is not None and not db.session.get(CrimeCategory, category_id):
        raise ModerationError("Unknown crime category", 400)

    report = CitizenReport(
        crime_type=clean_text(crime_type, 100),
        category_id=category_id,
        severity=severity,
        description=clean_text(description, 5000),
        incident_date=incident_date,
        incident_time=incident_time,
        user_id=submitter.id,
        location_id=location_id,
        status=None,
    )
    db.session.add(report)
    _record_status(report, "Pending", submitter, remarks="Submitted")
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    current_app.logger.info(
        "citizen_report_submitted",
        extra={"report_id": report.id, "user_id": submitter.id, "location_id": location_id},
    )
    return report


def _locked_report(report_id) -> Optional[CitizenReport]:
    try:
        rid = int(report_id)
    except (TypeError, ValueError):
        return None
    # Row lock keeps two concurrent reviews from both leaving Pending.
    stmt = select(CitizenReport).where(CitizenReport.id == rid).with_for_update()
    return db.session.execute(stmt).scalar_one_or_none()


def review_report(report_id, admin: Optional[User], action: str, reason: Optional[str] = None) -> Dict:
    """Verify or reject a pending report in a single transaction.

    Verification also publishes the report as a CrimeRecord.
    """
    if action not in ACTION_TARGETS:
        raise ModerationError("Invalid moderation action", 400)
    if not admin or not admin.is_active or not admin.is_admin:
        raise ModerationError("Only admins can verify/reject reports", 403)

    report = _locked_report(report_id)
    if not report:
        raise ModerationError("Report not found", 404)
    if not report.is_pending:
        db.session.rollback()
        raise ModerationError(f"Report has already been {report.api_status}", 409)

    crime = None
    remarks = clean_text(reason, 500) or None
    try:
        report.reviewed_by = admin.id
        report.reviewed_on = datetime.utcnow()
        if action == "VERIFY":
            _record_status(report, "Verified", admin, remarks=remarks)
            crime = CrimeRecord(
                crime_type=report.crime_type,
                category_id=report.category_id,
                severity=report.severity,
                description=report.description,
                occurred_on=report.incident_date,
                occurred_time=report.incident_time,
                location_id=report.location_id,
                status="Active",
                reported_by=report.user_id,
                verified_by=admin.id,
                source_report_id=report.id,
            )
            db.session.add(crime)
            log_action("REPORT_VERIFIED", admin, context=f"citizen_report:{report.id}")
        else:
            report.rejection_reason = remarks or DEFAULT_REJECTION_REASON
            _record_status(report, "Rejected", admin, remarks=report.rejection_reason)
            log_action("REPORT_REJECTED", admin, context=f"citizen_report:{report.id}")
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ModerationError("Report was reviewed concurrently", 409) from exc
    except SQLAlchemyError:
        db.session.rollback()
        raise

    current_app.logger.info(
        "citizen_report_reviewed",
        extra={
            "report_id": report.id,
            "action": action,
            "admin_id": admin.id,
            "crime_id": crime.id if crime else None,
        },
    )
    payload = {"success": True, "reportId": report.id, "newStatus": report.api_status}
    if crime is not None:
        payload["crimeId"] = crime.id
    return payload
