from datetime import date

from extensions import db
from models import AuditLog, CitizenReport, CrimeRecord
from tests.conftest import ADMIN_ID, ANALYST_ID, CITIZEN_ID, SUSPENDED_ID


def _report_body(**overrides):
    body = {
        "crimeType": "Burglary",
        "categoryId": 1,
        "severity": "HIGH",
        "description": "Back door forced <b>open</b>",
        "incidentDate": date.today().isoformat(),
        "incidentTime": "02:45",
        "userId": CITIZEN_ID,
        "locationId": 2,
    }
    body.update(overrides)
    return body


def test_submit_report_starts_pending(client, app):
    response = client.post("/api/citizen-reports", json=_report_body())

    assert response.status_code == 201
    data = response.get_json()
    assert data["success"] is True
    assert isinstance(data["reportId"], int)

    detail = client.get(f"/api/citizen-reports/{data['reportId']}").get_json()
    assert detail["status"] == "pending"
    assert detail["severity"] == "high"
    assert detail["description"] == "Back door forced open"
    assert detail["caseNumber"] == f"RPT-{data['reportId']:05d}"
    assert detail["location"] == "Central Park"
    assert [h["to"] for h in detail["history"]] == ["pending"]


def test_submit_report_ignores_client_status(client, app):
    response = client.post("/api/citizen-reports", json=_report_body(status="Verified"))

    with app.app_context():
        report = db.session.get(CitizenReport, response.get_json()["reportId"])
        assert report.status == "Pending"


def test_submit_report_validation(client):
    missing = _report_body()
    del missing["description"]
    assert client.post("/api/citizen-reports", json=missing).status_code == 400

    assert client.post("/api/citizen-reports", json=_report_body(severity="extreme")).status_code == 400
    assert client.post("/api/citizen-reports", json=_report_body(incidentDate="yesterday")).status_code == 400
    assert client.post("/api/citizen-reports", json=_report_body(incidentTime="99:99")).status_code == 400
    assert client.post("/api/citizen-reports", json=_report_body(incidentTime="24:00")).status_code == 400
    assert client.post("/api/citizen-reports", json=_report_body(locationId=None)).status_code == 400


def test_submit_report_unknown_references(client):
    unknown_location = client.post("/api/citizen-reports", json=_report_body(locationId=99))
    assert unknown_location.status_code == 400
    assert unknown_location.get_json()["error"] == "Unknown location"

    assert client.post("/api/citizen-reports", json=_report_body(categoryId=99)).status_code == 400
    assert client.post("/api/citizen-reports", json=_report_body(userId=SUSPENDED_ID)).status_code == 400


def test_list_reports_newest_first_and_filtered(client):
    reports = client.get("/api/citizen-reports").get_json()
    assert [r["id"] for r in reports] == [1, 2]
    assert reports[0]["reportedBy"] == "Casey Citizen"

    discarded = client.get("/api/citizen-reports?status=discarded").get_json()
    assert [r["id"] for r in discarded] == [2]
    assert discarded[0]["status"] == "discarded"

    assert client.get("/api/citizen-reports?status=bogus").status_code == 400


def test_report_detail_missing(client):
    response = client.get("/api/citizen-reports/404")

    assert response.status_code == 404
    assert response.get_json()["error"] == "Report not found"


def test_verify_creates_single_crime_record(client, app):
    first = client.put("/api/citizen-reports/1/status", json={"status": "verified", "adminId": ADMIN_ID})

    assert first.status_code == 200
    data = first.get_json()
    assert data["newStatus"] == "verified"
    assert data["reportId"] == 1

    again = client.put("/api/citizen-reports/1/status", json={"status": "verified", "adminId": ADMIN_ID})
    assert again.status_code == 409

    with app.app_context():
        crimes = CrimeRecord.query.filter_by(source_report_id=1).all()
        assert len(crimes) == 1
        assert crimes[0].id == data["crimeId"]
        assert crimes[0].status == "Active"
        assert crimes[0].verified_by == ADMIN_ID
        assert crimes[0].reported_by == CITIZEN_ID
        report = db.session.get(CitizenReport, 1)
        assert report.reviewed_by == ADMIN_ID
        assert report.reviewed_on is not None
        assert AuditLog.query.filter_by(action_type="REPORT_VERIFIED").count() == 1


def test_discard_via_legacy_path_sets_default_reason(client, app):
    response = client.post("/api/crimes/1/discard", json={"adminId": ADMIN_ID})

    assert response.status_code == 200
    assert response.get_json()["newStatus"] == "discarded"
    assert "crimeId" not in response.get_json()

    detail = client.get("/api/citizen-reports/1").get_json()
    assert detail["rejectionReason"] == "Discarded by admin"
    assert [h["to"] for h in detail["history"]] == ["discarded"]

    # Terminal: a later verify is refused and publishes nothing.
    assert client.post("/api/crimes/1/verify", json={"adminId": ADMIN_ID}).status_code == 409
    with app.app_context():
        assert CrimeRecord.query.filter_by(source_report_id=1).count() == 0


def test_reject_with_reason(client):
    response = client.put(
        "/api/citizen-reports/1/status",
        json={"status": "discarded", "adminId": ADMIN_ID, "rejectionReason": "Not enough detail"},
    )

    assert response.status_code == 200
    assert client.get("/api/citizen-reports/1").get_json()["rejectionReason"] == "Not enough detail"


def test_moderation_requires_admin(client, app):
    missing = client.put("/api/citizen-reports/1/status", json={"status": "verified"})
    assert missing.status_code == 400

    analyst = client.post("/api/crimes/1/verify", json={"adminId": ANALYST_ID})
    assert analyst.status_code == 403

    unknown = client.post("/api/crimes/1/verify", json={"adminId": "ADM0000"})
    assert unknown.status_code == 403

    with app.app_context():
        assert AuditLog.query.filter_by(action_type="UNAUTHORIZED_ACCESS").count() == 2
        assert db.session.get(CitizenReport, 1).status == "Pending"


def test_moderation_accepts_admin_session(client, login):
    login("admin@example.com")

    response = client.post("/api/crimes/1/verify")

    assert response.status_code == 200
    assert response.get_json()["newStatus"] == "verified"


def test_moderation_unknown_report_and_bad_status(client):
    assert client.post("/api/crimes/999/verify", json={"adminId": ADMIN_ID}).status_code == 404

    bad = client.put("/api/citizen-reports/1/status", json={"status": "maybe", "adminId": ADMIN_ID})
    assert bad.status_code == 400


def test_user_reports_listing(client):
    reports = client.get(f"/api/users/{CITIZEN_ID}/reports").get_json()

    assert [r["caseNumber"] for r in reports] == ["RPT-00001", "RPT-00002"]


def test_ampersands_survive_submit_verify_and_filter(client):
    submitted = client.post(
        "/api/citizen-reports",
        json=_report_body(crimeType="Theft & Burglary", description="Price < 5 & <i>more</i>"),
    )
    report_id = submitted.get_json()["reportId"]

    detail = client.get(f"/api/citizen-reports/{report_id}").get_json()
    assert detail["type"] == "Theft & Burglary"
    assert detail["description"] == "Price < 5 & more"

    verified = client.post(f"/api/crimes/{report_id}/verify", json={"adminId": ADMIN_ID})
    assert verified.status_code == 200

    matches = client.get("/api/crimes", query_string={"type": "theft & burglary"}).get_json()
    assert [crime["id"] for crime in matches] == [verified.get_json()["crimeId"]]
    assert matches[0]["description"] == "Price < 5 & more"
