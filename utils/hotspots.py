"""Hotspot detection: locations whose neighbourhood crosses a crime-density threshold."""
from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Dict, List, Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import CrimeRecord, Hotspot, Location, User
from utils.safety_score import AnalyticsError

EARTH_RADIUS_METERS = 6_371_000


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(a))


def hotspot_risk(crime_count: int, high_threshold: int = 10, medium_threshold: int = 5) -> str:
    if crime_count >= high_threshold:
        return "High"
    if crime_count >= medium_threshold:
        return "Medium"
    return "Low"


def _crime_counts_by_location(since: date) -> Dict[int, int]:
    rows = (
        db.session.query(CrimeRecord.location_id, func.count(CrimeRecord.id))
        .filter(CrimeRecord.occurred_on >= since)
        .group_by(CrimeRecord.location_id)
        .all()
    )
    return {location_id: int(count) for location_id, count in rows}


def neighbourhood_counts(locations: List[Location], counts: Dict[int, int], radius_meters: float) -> Dict[int, int]:
    """Crimes within ``radius_meters`` of each location, its own included."""
    totals: Dict[int, int] = {}
    for centre in locations:
        total = counts.get(centre.id, 0)
        if centre.has_coordinates:
            for other in locations:
                if other.id == centre.id or not other.has_coordinates:
                    continue
                distance = haversine_meters(centre.latitude, centre.longitude, other.latitude, other.longitude)
                if distance <= radius_meters:
                    total += counts.get(other.id, 0)
        totals[centre.id] = total
    return totals


def identify_hotspots(actor: User, days_back: Optional[int] = None, radius_meters: Optional[int] = None) -> List[Hotspot]:
    """Recompute today's hotspots, replacing any rows computed earlier today."""
    config = current_app.config
    days_back = int(days_back if days_back is not None else config.get("HOTSPOT_DEFAULT_DAYS", 30))
    radius_meters = int(radius_meters if radius_meters is not None else config.get("HOTSPOT_DEFAULT_RADIUS_METERS", 500))
    if days_back < 1 or radius_meters < 1:
        raise AnalyticsError("daysBack and radiusMeters must be positive", 400)

    today = date.today()
    counts = _crime_counts_by_location(today - timedelta(days=days_back))
    locations = Location.query.filter(Location.id.in_(list(counts))).all() if counts else []
    totals = neighbourhood_counts(locations, counts, radius_meters)

    min_crimes = int(config.get("HOTSPOT_MIN_CRIMES", 3))
    high = int(config.get("HOTSPOT_HIGH_RISK_CRIMES", 10))
    medium = int(config.get("HOTSPOT_MEDIUM_RISK_CRIMES", 5))

    hotspots: List[Hotspot] = []
    try:
        Hotspot.query.filter(Hotspot.computed_on == today).delete(synchronize_session=False)
        for location in locations:
            total = totals.get(location.id, 0)
            if total < min_crimes:
                continue
            hotspot = Hotspot(
                location_id=location.id,
                area_name=location.area_name,
                crime_count=total,
                radius_meters=radius_meters,
                days_back=days_back,
                risk_level=hotspot_risk(total, high, medium),
                computed_by=actor.id if actor else None,
                computed_on=today,
            )
            db.session.add(hotspot)
            hotspots.append(hotspot)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    current_app.logger.info(
        "hotspots_identified",
        extra={"count": len(hotspots), "days_back": days_back, "radius_meters": radius_meters},
    )
    return sorted(hotspots, key=lambda h: (-h.crime_count, h.area_name))
