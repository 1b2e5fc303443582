"""Stored crime reports summarising a date window, optionally narrowed by area and severity."""
from __future__ import annotations

from collections import Counter
from datetime import date, datetime, time
from typing import Dict, Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import CrimeRecord, Location, Report, SafetyScore, User
from utils.safety_score import AnalyticsError
from utils.security import clean_text


def _crime_query(start_date: date, end_date: date, area: Optional[str], severity: Optional[str]):
    query = CrimeRecord.query.filter(CrimeRecord.occurred_on >= start_date, CrimeRecord.occurred_on <= end_date)
    if area:
        query = query.join(Location, CrimeRecord.location_id == Location.id).filter(Location.area_name == area)
    if severity:
        query = query.filter(CrimeRecord.severity == severity)
    return query


def _average_score(start_date: date, end_date: date, area: Optional[str]) -> Optional[float]:
    query = db.session.query(func.avg(SafetyScore.score_value)).filter(
        SafetyScore.computed_on >= datetime.combine(start_date, time.min),
        SafetyScore.computed_on <= datetime.combine(end_date, time.max),
    )
    if area:
        query = query.filter(SafetyScore.area_name == area)
    value = query.scalar()
    return round(float(value), 2) if value is not None else None


def build_summary(crimes) -> Dict[str, Dict[str, int]]:
    by_type = Counter(c.crime_type for c in crimes)
    by_severity = Counter(c.severity for c in crimes)
    by_status = Counter(c.status for c in crimes)
    by_area = Counter(c.location.area_name for c in crimes if c.location)
    return {
        "byType": dict(by_type.most_common()),
        "bySeverity": dict(by_severity),
        "byStatus": dict(by_status),
        "byArea": dict(by_area.most_common()),
    }


def generate_crime_report(
    actor: User,
    *,
    title: str,
    report_type: str,
    start_date: date,
    end_date: date,
    filter_area: Optional[str] = None,
    filter_severity: Optional[str] = None,
) -> Report:
    if end_date < start_date:
        raise AnalyticsError("endDate must not be before startDate", 400)

    crimes = _crime_query(start_date, end_date, filter_area, filter_severity).all()
    report = Report(
        title=clean_text(title, 255),
        report_type=clean_text(report_type, 50),
        start_date=start_date,
        end_date=end_date,
        filter_area=filter_area,
        filter_severity=filter_severity,
        total_crimes=len(crimes),
        avg_safety_score=_average_score(start_date, end_date, filter_area),
        summary=build_summary(crimes),
        generated_by=actor.id if actor else None,
    )
    db.session.add(report)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    current_app.logger.info(
        "crime_report_generated",
        extra={"report_id": report.id, "total_crimes": report.total_crimes, "area": filter_area},
    )
    return report
