"""Crime record queries, admin edits, and dashboard counts."""
from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

from flask import current_app
from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import CRIME_STATUSES, SEVERITY_LEVELS, CrimeCategory, CrimeRecord, Location, User
from utils.audit import log_action
from utils.security import clean_text

STATUS_FILTERS = {
    "active": "Active",
    "resolved": "Resolved",
    "under investigation": "Under Investigation",
    "investigating": "Under Investigation",
}


class CrimeRecordError(Exception):
    """Raised when a crime record query or edit is refused."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


def canonical_severity(value: Optional[str]) -> Optional[str]:
    wanted = (value or "").strip().capitalize()
    return wanted if wanted in SEVERITY_LEVELS else None


def canonical_status(value: Optional[str]) -> Optional[str]:
    wanted = (value or "").strip().lower().replace("_", " ").replace("-", " ")
    return STATUS_FILTERS.get(wanted)


def _is_unfiltered(value: Optional[str]) -> bool:
    return not value or value.strip().lower() == "all"


def filter_crimes(
    *,
    crime_type: Optional[str] = None,
    severity: Optional[str] = None,
    status: Optional[str] = None,
    area: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[CrimeRecord]:
    """Newest-first crime records matching every supplied filter."""
    query = CrimeRecord.query
    if not _is_unfiltered(crime_type):
        query = query.filter(func.lower(CrimeRecord.crime_type) == crime_type.strip().lower())
    if not _is_unfiltered(severity):
        wanted = canonical_severity(severity)
        if not wanted:
            raise CrimeRecordError("Invalid severity filter", 400)
        query = query.filter(CrimeRecord.severity == wanted)
    if not _is_unfiltered(status):
        wanted = canonical_status(status)
        if not wanted:
            raise CrimeRecordError("Invalid status filter", 400)
        query = query.filter(CrimeRecord.status == wanted)
    if area:
        query = query.join(Location, CrimeRecord.location_id == Location.id).filter(Location.area_name == area)
    if start_date:
        query = query.filter(CrimeRecord.occurred_on >= start_date)
    if end_date:
        query = query.filter(CrimeRecord.occurred_on <= end_date)
    if start_date and end_date and end_date < start_date:
        raise CrimeRecordError("endDate must not be before startDate", 400)

    config = current_app.config
    page_limit = int(limit if limit is not None else config.get("CRIMES_PAGE_LIMIT", 100))
    page_limit = max(1, min(page_limit, int(config.get("CRIMES_MAX_PAGE_LIMIT", 500))))
    if offset < 0:
        raise CrimeRecordError("offset must not be negative", 400)

    return (
        query.order_by(CrimeRecord.occurred_on.desc(), CrimeRecord.id.desc())
        .offset(offset)
        .limit(page_limit)
        .all()
    )


def crime_types(category_id: Optional[int] = None) -> List[str]:
    query = db.session.query(CrimeRecord.crime_type).distinct()
    if category_id is not None:
        query = query.filter(CrimeRecord.category_id == category_id)
    return [row[0] for row in query.order_by(CrimeRecord.crime_type).all()]


def _check_references(location_id: Optional[int], category_id: Optional[int]) -> None:
    if location_id is not None and not db.session.get(Location, location_id):
        raise CrimeRecordError("Unknown location", 400)
    if category_id is not None and not db.session.get(CrimeCategory, category_id):
        raise CrimeRecordError("Unknown crime category", 400)


def _commit() -> None:
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise


def create_crime(
    actor: User,
    *,
    crime_type: str,
    category_id: int,
    severity: str,
    description: str,
    occurred_on: date,
    location_id: int,
    occurred_time: Optional[str] = None,
    witnesses: Optional[int] = None,
) -> CrimeRecord:
    _check_references(location_id, category_id)
    wanted = canonical_severity(severity)
    if not wanted:
        raise CrimeRecordError("Invalid severity", 400)

    crime = CrimeRecord(
        crime_type=clean_text(crime_type, 100),
        category_id=category_id,
        severity=wanted,
        description=clean_text(description, 5000),
        occurred_on=occurred_on,
        occurred_time=occurred_time or "00:00",
        location_id=location_id,
        status="Active",
        reported_by=actor.id,
        verified_by=actor.id,
        witnesses=witnesses or 0,
    )
    db.session.add(crime)
    db.session.flush()
    log_action("CRIME_CREATED", actor, context=f"crime_record:{crime.id}")
    _commit()
    current_app.logger.info("crime_record_created", extra={"crime_id": crime.id, "actor_id": actor.id})
    return crime


def update_crime(
    crime_id: int,
    actor: User,
    *,
    severity: Optional[str] = None,
    status: Optional[str] = None,
    description: Optional[str] = None,
) -> CrimeRecord:
    crime = db.session.get(CrimeRecord, crime_id)
    if not crime:
        raise CrimeRecordError("Crime not found", 404)

    changed = []
    if severity is not None:
        wanted = canonical_severity(severity)
        if not wanted:
            raise CrimeRecordError("Invalid severity", 400)
        crime.severity = wanted
        changed.append("severity")
    if status is not None:
        wanted = canonical_status(status)
        if not wanted or wanted not in CRIME_STATUSES:
            raise CrimeRecordError("Invalid status", 400)
        crime.status = wanted
        changed.append("status")
    if description is not None:
        crime.description = clean_text(description, 5000)
        changed.append("description")
    if not changed:
        raise CrimeRecordError("No fields to update", 400)

    log_action("CRIME_UPDATED", actor, context=f"crime_record:{crime.id}")
    _commit()
    current_app.logger.info(
        "crime_record_updated",
        extra={"crime_id": crime.id, "fields": changed, "actor_id": actor.id},
    )
    return crime


def dashboard_summary() -> Dict[str, int]:
    def _count_where(condition):
        return func.sum(case((condition, 1), else_=0))

    row = db.session.query(
        func.count(CrimeRecord.id),
        _count_where(CrimeRecord.status == "Active"),
        _count_where(CrimeRecord.status == "Resolved"),
        _count_where(CrimeRecord.status == "Under Investigation"),
        _count_where(CrimeRecord.severity == "High"),
    ).one()
    total, active, resolved, investigating, high = (int(value or 0) for value in row)
    return {
        "total": total,
        "active": active,
        "resolved": resolved,
        "investigating": investigating,
        "highSeverity": high,
    }
