import hashlib
from datetime import date, timedelta

from models import Hotspot, Report, SafetyScore
from tests.conftest import ADMIN_ID, ANALYST_ID, CITIZEN_ID


def test_dashboard_summary(client):
    summary = client.get("/api/analytics/dashboard-summary").get_json()

    assert summary == {"total": 6, "active": 4, "resolved": 1, "investigating": 1, "highSeverity": 3}


def test_safety_score_for_area(client, app):
    response = client.get(f"/api/analytics/safety-score/Downtown Plaza?analystId={ANALYST_ID}")

    assert response.status_code == 200
    data = response.get_json()
    assert data["areaName"] == "Downtown Plaza"
    assert data["crimeCount"] == 2
    assert data["highSeverity"] == 1
    assert data["lowSeverity"] == 1
    assert data["safetyScore"] == 60.0
    assert data["riskLevel"] == "Medium"
    assert data["daysBack"] == 30
    with app.app_context():
        assert SafetyScore.query.filter_by(area_name="Downtown Plaza").count() == 1


def test_safety_score_respects_window(client):
    recent = client.get(f"/api/analytics/safety-score/Riverside District?analystId={ANALYST_ID}").get_json()
    assert recent["crimeCount"] == 1
    assert recent["riskLevel"] == "Low"

    wide = client.get(f"/api/analytics/safety-score/Riverside District?analystId={ANALYST_ID}&daysBack=90").get_json()
    assert wide["crimeCount"] == 2
    assert wide["safetyScore"] == 70.0


def test_safety_score_returns_newest_stored_row(client, app):
    client.get(f"/api/analytics/safety-score/Riverside District?analystId={ANALYST_ID}")
    latest = client.get(f"/api/analytics/safety-score/Riverside District?analystId={ANALYST_ID}&daysBack=90").get_json()

    with app.app_context():
        rows = SafetyScore.query.filter_by(area_name="Riverside District").order_by(SafetyScore.id).all()
        assert len(rows) == 2
        assert latest["daysBack"] == rows[-1].days_back == 90
        assert latest["safetyScore"] == rows[-1].score_value


def test_safety_score_errors(client):
    assert client.get(f"/api/analytics/safety-score/Atlantis?analystId={ANALYST_ID}").status_code == 404
    assert client.get(f"/api/analytics/safety-score/Central Park?analystId={CITIZEN_ID}").status_code == 403
    assert client.get("/api/analytics/safety-score/Central Park").status_code == 400
    assert client.get(f"/api/analytics/safety-score/Central Park?analystId={ADMIN_ID}&daysBack=0").status_code == 400
    assert client.get(f"/api/analytics/safety-score/Central Park?analystId={ADMIN_ID}&daysBack=ten").status_code == 400
    too_far = client.get(f"/api/analytics/safety-score/Central Park?analystId={ADMIN_ID}&daysBack=10000000")
    assert too_far.status_code == 400
    assert too_far.get_json()["error"] == "daysBack must be between 1 and 3650"


def _report_request(**overrides):
    body = {
        "analystId": ANALYST_ID,
        "title": "Monthly overview",
        "type": "Monthly",
        "startDate": (date.today() - timedelta(days=30)).isoformat(),
        "endDate": date.today().isoformat(),
    }
    body.update(overrides)
    return body


def test_generate_report(client, app):
    response = client.post("/api/analytics/generate-report", json=_report_request())

    assert response.status_code == 201
    data = response.get_json()
    assert data["totalCrimes"] == 5
    assert data["summary"]["bySeverity"] == {"Low": 1, "High": 3, "Medium": 1}
    assert data["summary"]["byArea"]["Central Park"] == 2
    assert data["averageSafetyScore"] is None
    with app.app_context():
        assert Report.query.count() == 1


def test_generate_report_with_filters(client):
    client.get(f"/api/analytics/safety-score/Downtown Plaza?analystId={ANALYST_ID}")

    data = client.post(
        "/api/analytics/generate-report",
        json=_report_request(
            filterArea="Downtown Plaza",
            filterSeverity="HIGH",
            endDate=(date.today() + timedelta(days=1)).isoformat(),
        ),
    ).get_json()

    assert data["totalCrimes"] == 1
    assert data["filterSeverity"] == "high"
    assert data["averageSafetyScore"] == 60.0


def test_generate_report_validation(client):
    missing = _report_request()
    del missing["title"]
    assert client.post("/api/analytics/generate-report", json=missing).status_code == 400

    backwards = _report_request(startDate=date.today().isoformat(), endDate=(date.today() - timedelta(days=1)).isoformat())
    assert client.post("/api/analytics/generate-report", json=backwards).status_code == 400

    assert client.post("/api/analytics/generate-report", json=_report_request(analystId=CITIZEN_ID)).status_code == 403


def test_generate_map_identifies_hotspots(client, app):
    response = client.post("/api/analytics/generate-map", json={"analystId": ANALYST_ID})

    assert response.status_code == 200
    hotspots = response.get_json()["hotspots"]
    assert [h["area"] for h in hotspots] == ["Central Park", "Downtown Plaza"]
    assert all(h["crimeCount"] == 4 for h in hotspots)
    assert all(h["riskLevel"] == "Low" for h in hotspots)

    # Recomputing today replaces the earlier rows.
    client.post("/api/analytics/generate-map", json={"analystId": ANALYST_ID})
    with app.app_context():
        assert Hotspot.query.count() == 2


def test_generate_map_small_radius(client):
    hotspots = client.post(
        "/api/analytics/generate-map",
        json={"analystId": ANALYST_ID, "radiusMeters": 1},
    ).get_json()["hotspots"]

    assert hotspots == []


def test_reports_listing_and_pdf_export(client):
    created = client.post("/api/analytics/generate-report", json=_report_request()).get_json()

    listed = client.get("/api/reports").get_json()
    assert [r["reportId"] for r in listed] == [created["reportId"]]

    pdf = client.get(f"/api/reports/{created['reportId']}/pdf?analystId={ANALYST_ID}")
    assert pdf.status_code == 200
    assert pdf.mimetype == "application/pdf"
    assert pdf.data.startswith(b"%PDF")
    assert pdf.headers["X-Report-Checksum"] == hashlib.sha256(pdf.data).hexdigest()

    assert client.get(f"/api/reports/999/pdf?analystId={ANALYST_ID}").status_code == 404


def test_ping_and_request_id(client):
    response = client.get("/api/ping", headers={"X-Request-ID": "trace-123", "Origin": "http://localhost:3000"})

    assert response.get_json()["status"] == "ok"
    assert response.headers["X-Request-ID"] == "trace-123"
    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_unknown_route_is_json(client):
    response = client.get("/api/nowhere")

    assert response.status_code == 404
    assert response.get_json() == {"error": "Not found"}
