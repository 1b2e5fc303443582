from datetime import date, datetime, timedelta

import pytest

from app import create_app
from extensions import db
from models import CitizenReport, CrimeCategory, CrimeRecord, Location, User
from utils.security import hash_password

PASSWORD = "correct-horse-9"

ADMIN_ID = "ADM1001"
ANALYST_ID = "ANL2002"
CITIZEN_ID = "PUB3003"
NEIGHBOUR_ID = "PUB3004"
SUSPENDED_ID = "PUB3999"


def _user(user_id, name, email, role, is_active=True):
    return User(
        id=user_id,
        name=name,
        email=email,
        password_hash=hash_password(PASSWORD, 4),
        role=role,
        phone_number="555-0100",
        is_active=is_active,
    )


def seed_data():
    today = date.today()
    db.session.add_all(
        [
            _user(ADMIN_ID, "Ada Admin", "admin@example.com", "Admin"),
            _user(ANALYST_ID, "Andy Analyst", "analyst@example.com", "Analyst"),
            _user(CITIZEN_ID, "Casey Citizen", "citizen@example.com", "Public"),
            _user(NEIGHBOUR_ID, "Nico Neighbour", "neighbour@example.com", "Public"),
            _user(SUSPENDED_ID, "Sam Suspended", "suspended@example.com", "Public", is_active=False),
        ]
    )

    property_crime = CrimeCategory(category_name="Property Crime", description="Theft and damage")
    violent_crime = CrimeCategory(category_name="Violent Crime", description="Force against people")
    downtown = Location(area_name="Downtown Plaza", address="1 Main St", landmark="Clock tower", latitude=40.7128, longitude=-74.0060)
    park = Location(area_name="Central Park", address="5 Park Ave", latitude=40.7130, longitude=-74.0062)
    riverside = Location(area_name="Riverside District", address="9 River Rd", latitude=40.8000, longitude=-73.9500)
    db.session.add_all([property_crime, violent_crime, downtown, park, riverside])
    db.session.flush()

    rows = [
        ("Theft", property_crime, "Low", "Active", downtown, 1),
        ("Assault", violent_crime, "High", "Active", downtown, 2),
        ("Robbery", violent_crime, "High", "Resolved", park, 3),
        ("Burglary", property_crime, "Medium", "Under Investigation", riverside, 5),
        ("Vandalism", property_crime, "Low", "Active", riverside, 60),
        ("Assault", violent_crime, "High", "Active", park, 7),
    ]
    for crime_type, category, severity, status, location, days_ago in rows:
        db.session.add(
            CrimeRecord(
                crime_type=crime_type,
                category_id=category.id,
                severity=severity,
                description=f"{crime_type} near {location.area_name}",
                occurred_on=today - timedelta(days=days_ago),
                occurred_time="21:15",
                location_id=location.id,
                status=status,
                reported_by=CITIZEN_ID,
            )
        )
        # Keep insertion order equal to id order.
        db.session.flush()

    db.session.add_all(
        [
            CitizenReport(
                crime_type="Theft",
                category_id=property_crime.id,
                severity="Medium",
                description="Phone snatched at the bus stop",
                incident_date=today - timedelta(days=1),
                incident_time="18:30",
                submitted_on=datetime.utcnow() - timedelta(hours=2),
                status="Pending",
                user_id=CITIZEN_ID,
                location_id=downtown.id,
            ),
            CitizenReport(
                crime_type="Vandalism",
                category_id=property_crime.id,
                severity="Low",
                description="Graffiti on the fountain",
                incident_date=today - timedelta(days=4),
                submitted_on=datetime.utcnow() - timedelta(days=3),
                status="Rejected",
                reviewed_by=ADMIN_ID,
                rejection_reason="Duplicate",
                user_id=CITIZEN_ID,
                location_id=park.id,
            ),
        ]
    )
    db.session.commit()


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        seed_data()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def _login(email, password=PASSWORD, role=None):
        body = {"email": email, "password": password}
        if role:
            body["role"] = role
        return client.post("/api/auth/login", json=body)

    return _login
