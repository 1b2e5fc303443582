"""Baseline crime categories and reporting areas for a fresh database."""
from typing import Dict

from extensions import db
from models import CrimeCategory, Location

DEFAULT_CATEGORIES = [
    ("Property Crime", "Theft, burglary, shoplifting, vehicle theft, vandalism and arson"),
    ("Violent Crime", "Assault and robbery involving force or threat against a person"),
    ("Public Order", "Disturbances and other offences against public peace"),
    ("Other", "Incidents that fit no other category"),
]

DEFAULT_AREAS = [
    "Downtown Plaza",
    "Central Park",
    "Riverside District",
    "Shopping District",
    "Business District",
    "Residential Area",
]


def seed_reference_data() -> Dict[str, int]:
    """Insert missing default categories and areas; existing rows are left alone."""
    created = {"categories": 0, "locations": 0}

    existing_categories = {name for (name,) in db.session.query(CrimeCategory.category_name).all()}
    for name, description in DEFAULT_CATEGORIES:
        if name not in existing_categories:
            db.session.add(CrimeCategory(category_name=name, description=description))
            created["categories"] += 1

    existing_areas = {name for (name,) in db.session.query(Location.area_name).distinct().all()}
    for area in DEFAULT_AREAS:
        if area not in existing_areas:
            db.session.add(Location(area_name=area))
            created["locations"] += 1

    db.session.commit()
    return created
