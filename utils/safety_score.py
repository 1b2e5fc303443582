"""Deterministic area safety scoring over recent verified crime records."""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Dict, Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import CrimeRecord, Location, SafetyScore, User

SEVERITY_WEIGHTS = {"High": 3, "Medium": 2, "Low": 1}
MAX_DAYS_BACK = 3650


class AnalyticsError(Exception):
    """Raised when an analytics request cannot be served."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


def risk_level(score: float) -> str:
    if score >= 70:
        return "Low"
    if score >= 40:
        return "Medium"
    return "High"


def score_from_counts(high: int, medium: int, low: int, ceiling: int = 10) -> float:
    weight = high * SEVERITY_WEIGHTS["High"] + medium * SEVERITY_WEIGHTS["Medium"] + low * SEVERITY_WEIGHTS["Low"]
    ceiling = max(1, ceiling)
    return round(max(0.0, 100 - (weight / ceiling) * 100), 2)


def severity_counts(area_name: str, since: date) -> Dict[str, int]:
    rows = (
        db.session.query(CrimeRecord.severity, func.count(CrimeRecord.id))
        .join(Location, CrimeRecord.location_id == Location.id)
        .filter(Location.area_name == area_name, CrimeRecord.occurred_on >= since)
        .group_by(CrimeRecord.severity)
        .all()
    )
    counts = {"High": 0, "Medium": 0, "Low": 0}
    for severity, count in rows:
        if severity in counts:
            counts[severity] = int(count)
    return counts


def calculate_safety_score(area_name: str, actor: User, days_back: Optional[int] = None) -> SafetyScore:
    """Compute and persist a new score row for the area."""
    if days_back is None:
        days_back = int(current_app.config.get("SAFETY_SCORE_DEFAULT_DAYS", 30))
    if days_back < 1 or days_back > MAX_DAYS_BACK:
        raise AnalyticsError(f"daysBack must be between 1 and {MAX_DAYS_BACK}", 400)

    area_exists = db.session.query(Location.id).filter(Location.area_name == area_name).first()
    if not area_exists:
        raise AnalyticsError("Area not found or no data available", 404)

    since = date.today() - timedelta(days=days_back)
    counts = severity_counts(area_name, since)
    ceiling = int(current_app.config.get("SAFETY_SCORE_CRIME_CEILING", 10))
    score = SafetyScore(
        area_name=area_name,
        score_value=score_from_counts(counts["High"], counts["Medium"], counts["Low"], ceiling),
        crime_count=sum(counts.values()),
        high_severity_count=counts["High"],
        medium_severity_count=counts["Medium"],
        low_severity_count=counts["Low"],
        days_back=days_back,
        computed_by=actor.id if actor else None,
        computed_on=datetime.utcnow(),
    )
    db.session.add(score)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    current_app.logger.info(
        "safety_score_computed",
        extra={"area": area_name, "score": score.score_value, "crimes": score.crime_count, "days_back": days_back},
    )
    return score


def latest_score(area_name: str) -> Optional[SafetyScore]:
    return (
        SafetyScore.query.filter_by(area_name=area_name)
        .order_by(SafetyScore.computed_on.desc(), SafetyScore.id.desc())
        .first()
    )


def score_payload(score: SafetyScore) -> Dict:
    return {
        "areaName": score.area_name,
        "safetyScore": score.score_value,
        "crimeCount": score.crime_count,
        "highSeverity": score.high_severity_count,
        "mediumSeverity": score.medium_severity_count,
        "lowSeverity": score.low_severity_count,
        "riskLevel": risk_level(score.score_value),
        "daysBack": score.days_back,
        "computedOn": score.computed_on.isoformat() if score.computed_on else None,
    }
