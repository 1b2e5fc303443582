"""Core data models for users, reference data, crime records, moderation, and analytics."""
from datetime import datetime

from flask_login import UserMixin

from extensions import db


USER_ROLES: tuple[str, ...] = (
	"Admin",
	"Analyst",
	"Public",
)

SEVERITY_LEVELS: tuple[str, ...] = (
	"Low",
	"Medium",
	"High",
)

REPORT_STATUSES: tuple[str, ...] = (
	"Pending",
	"Verified",
	"Rejected",
)

CRIME_STATUSES: tuple[str, ...] = (
	"Active",
	"Under Investigation",
	"Resolved",
)


API_REPORT_STATUS = {
	"Pending": "pending",
	"Verified": "verified",
	"Rejected": "discarded",
}


def _iso(value) -> str | None:
	return value.isoformat() if value is not None else None


def _lower(value: str | None, default: str | None = None) -> str | None:
	return value.lower() if value else default


def case_number(prefix: str, record_id: int | None) -> str:
	return f"{prefix}-{int(record_id or 0):05d}"


class User(UserMixin, db.Model):
	__tablename__ = "users"

	id = db.Column(db.String(16), primary_key=True)
	name = db.Column(db.String(150), nullable=False)
	email = db.Column(db.String(255), unique=True, nullable=False, index=True)
	password_hash = db.Column(db.String(255), nullable=False)
	role = db.Column(db.String(20), nullable=False, default="Public", index=True)
	phone_number = db.Column(db.String(30), nullable=True)
	is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
	updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
	last_login = db.Column(db.DateTime, nullable=True)

	__table_args__ = (
		db.CheckConstraint("role IN ('Admin','Analyst','Public')", name="ck_user_role_valid"),
	)

	citizen_reports = db.relationship(
		"CitizenReport",
		back_populates="submitter",
		foreign_keys="CitizenReport.user_id",
		lazy="dynamic",
	)
	audit_logs = db.relationship("AuditLog", back_populates="user", lazy="dynamic")

	@property
	def is_admin(self) -> bool:
		return self.role == "Admin"

	@property
	def active(self) -> bool:  # Flask-Login compatibility alias
		return self.is_active

	def list_payload(self, reports_count: int = 0) -> dict:
		return {
			"id": self.id,
			"name": self.name,
			"email": self.email,
			"role": _lower(self.role, "public"),
			"status": "active" if self.is_active else "suspended",
			"reportsCount": int(reports_count or 0),
			"createdAt": _iso(self.created_at),
			"lastActive": _iso(self.last_login),
		}


class AuditLog(db.Model):
	__tablename__ = "audit_logs"

	id = db.Column(db.Integer, primary_key=True)
	user_id = db.Column(db.String(16), db.ForeignKey("users.id"), nullable=True, index=True)
	action_type = db.Column(db.String(50), nullable=False, index=True)
	ip_address = db.Column(db.String(64), nullable=True)
	user_agent = db.Column(db.String(255), nullable=True)
	context_entity = db.Column(db.String(120), nullable=True)
	timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

	user = db.relationship("User", back_populates="audit_logs")


class Location(db.Model):
	__tablename__ = "locations"

	id = db.Column(db.Integer, primary_key=True)
	area_name = db.Column(db.String(120), nullable=False, index=True)
	address = db.Column(db.String(255), nullable=True)
	landmark = db.Column(db.String(255), nullable=True)
	latitude = db.Column(db.Float, nullable=True)
	longitude = db.Column(db.Float, nullable=True)

	crimes = db.relationship("CrimeRecord", back_populates="location", lazy="dynamic")

	@property
	def has_coordinates(self) -> bool:
		return self.latitude is not None and self.longitude is not None

	def api_payload(self) -> dict:
		return {
			"id": self.id,
			"areaName": self.area_name,
			"address": self.address,
			"landmark": self.landmark,
			"latitude": self.latitude,
			"longitude": self.longitude,
		}


class CrimeCategory(db.Model):
	__tablename__ = "crime_categories"

	id = db.Column(db.Integer, primary_key=True)
	category_name = db.Column(db.String(100), unique=True, nullable=False)
	description = db.Column(db.String(500), nullable=True)

	def api_payload(self) -> dict:
		return {"id": self.id, "name": self.category_name, "description": self.description}


class CrimeRecord(db.Model):
	__tablename__ = "crime_records"

	id = db.Column(db.Integer, primary_key=True)
	crime_type = db.Column(db.String(100), nullable=False, index=True)
	category_id = db.Column(db.Integer, db.ForeignKey("crime_categories.id"), nullable=True, index=True)
	severity = db.Column(db.String(10), nullable=False, default="Low", index=True)
	description = db.Column(db.Text, nullable=True)
	occurred_on = db.Column(db.Date, nullable=False, index=True)
	occurred_time = db.Column(db.String(8), nullable=True)
	location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
	status = db.Column(db.String(30), nullable=False, default="Active", index=True)
	reported_by = db.Column(db.String(16), db.ForeignKey("users.id"), nullable=True)
	verified_by = db.Column(db.String(16), db.ForeignKey("users.id"), nullable=True)
	source_report_id = db.Column(db.Integer, db.ForeignKey("citizen_reports.id"), nullable=True, unique=True)
	witnesses = db.Column(db.Integer, nullable=False, default=0)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

	__table_args__ = (
		db.CheckConstraint("severity IN ('Low','Medium','High')", name="ck_crime_severity_valid"),
		db.CheckConstraint(
			"status IN ('Active','Under Investigation','Resolved')",
			name="ck_crime_status_valid",
		),
		db.Index("ix_crime_location_date", "location_id", "occurred_on"),
	)

	category = db.relationship("CrimeCategory")
	location = db.relationship("Location", back_populates="crimes")
	reporter = db.relationship("User", foreign_keys=[reported_by])
	verifier = db.relationship("User", foreign_keys=[verified_by])
	source_report = db.relationship("CitizenReport", back_populates="crime_record")

	def api_payload(self, detail: bool = False) -> dict:
		location = self.location
		payload = {
			"id": self.id,
			"type": self.crime_type,
			"severity": _lower(self.severity),
			"description": self.description,
			"date": _iso(self.occurred_on),
			"time": self.occurred_time,
			"location": location.area_name if location else None,
			"address": location.address if location else None,
			"latitude": location.latitude if location else None,
			"longitude": location.longitude if location else None,
			"category": self.category.category_name if self.category else None,
			"status": _lower(self.status),
			"reportedBy": self.reporter.name if self.reporter else None,
			"caseNumber": case_number("CR", self.id),
		}
		if detail:
			payload.update(
				{
					"verifiedBy": self.verifier.name if self.verifier else None,
					"witnesses": self.witnesses,
					"sourceReportId": self.source_report_id,
				}
			)
		return payload


class CitizenReport(db.Model):
	__tablename__ = "citizen_reports"

	id = db.Column(db.Integer, primary_key=True)
	crime_type = db.Column(db.String(100), nullable=False)
	category_id = db.Column(db.Integer, db.ForeignKey("crime_categories.id"), nullable=True)
	severity = db.Column(db.String(10), nullable=False, default="Low")
	description = db.Column(db.Text, nullable=False)
	incident_date = db.Column(db.Date, nullable=False)
	incident_time = db.Column(db.String(8), nullable=True)
	submitted_on = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
	status = db.Column(db.String(10), nullable=False, default="Pending", index=True)
	reviewed_by = db.Column(db.String(16), db.ForeignKey("users.id"), nullable=True)
	reviewed_on = db.Column(db.DateTime, nullable=True)
	rejection_reason = db.Column(db.String(500), nullable=True)
	user_id = db.Column(db.String(16), db.ForeignKey("users.id"), nullable=False, index=True)
	location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)

	__table_args__ = (
		db.CheckConstraint("severity IN ('Low','Medium','High')", name="ck_report_severity_valid"),
		db.CheckConstraint("status IN ('Pending','Verified','Rejected')", name="ck_report_status_valid"),
		db.Index("ix_report_user_status", "user_id", "status"),
	)

	category = db.relationship("CrimeCategory")
	location = db.relationship("Location")
	submitter = db.relationship("User", back_populates="citizen_reports", foreign_keys=[user_id])
	reviewer = db.relationship("User", foreign_keys=[reviewed_by])
	crime_record = db.relationship("CrimeRecord", back_populates="source_report", uselist=False)
	status_history = db.relationship(
		"ReportStatusHistory",
		back_populates="report",
		order_by="ReportStatusHistory.id",
		cascade="all, delete-orphan",
	)

	@property
	def is_pending(self) -> bool:
		return self.status == "Pending"

	@property
	def api_status(self) -> str:
		return API_REPORT_STATUS.get(self.status, _lower(self.status, "pending"))

	def api_payload(self) -> dict:
		location = self.location
		submitter = self.submitter
		return {
			"id": self.id,
			"type": self.crime_type,
			"severity": _lower(self.severity, "low"),
			"description": self.description,
			"date": _iso(self.incident_date),
			"time": self.incident_time,
			"location": location.area_name if location else "Unknown Location",
			"address": location.address if location else None,
			"latitude": location.latitude if location else None,
			"longitude": location.longitude if location else None,
			"caseNumber": case_number("RPT", self.id),
			"reportedBy": submitter.name if submitter else "Unknown",
			"reportedById": self.user_id,
			"status": self.api_status,
			"submittedOn": _iso(self.submitted_on),
		}

	def detail_payload(self) -> dict:
		payload = self.api_payload()
		submitter = self.submitter
		payload.update(
			{
				"email": submitter.email if submitter else None,
				"phone": submitter.phone_number if submitter else None,
				"landmark": self.location.landmark if self.location else None,
				"category": self.category.category_name if self.category else None,
				"reviewedBy": self.reviewed_by,
				"reviewedOn": _iso(self.reviewed_on),
				"rejectionReason": self.rejection_reason,
				"crimeId": self.crime_record.id if self.crime_record else None,
				"history": [
					{
						"from": API_REPORT_STATUS.get(h.previous_status) if h.previous_status else None,
						"to": API_REPORT_STATUS.get(h.new_status, h.new_status),
						"remarks": h.remarks,
						"changedBy": h.changed_by,
						"changedAt": _iso(h.changed_at),
					}
					for h in self.status_history
				],
			}
		)
		return payload


class ReportStatusHistory(db.Model):
	__tablename__ = "report_status_history"

	id = db.Column(db.Integer, primary_key=True)
	report_id = db.Column(db.Integer, db.ForeignKey("citizen_reports.id"), nullable=False, index=True)
	previous_status = db.Column(db.String(10), nullable=True)
	new_status = db.Column(db.String(10), nullable=False)
	remarks = db.Column(db.String(500), nullable=True)
	changed_by = db.Column(db.String(16), db.ForeignKey("users.id"), nullable=True)
	changed_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

	__table_args__ = (
		db.CheckConstraint(
			"new_status IN ('Pending','Verified','Rejected')",
			name="ck_report_status_history_valid",
		),
	)

	report = db.relationship("CitizenReport", back_populates="status_history")
	actor = db.relationship("User")


class SafetyScore(db.Model):
	__tablename__ = "safety_scores"

	id = db.Column(db.Integer, primary_key=True)
	area_name = db.Column(db.String(120), nullable=False, index=True)
	score_value = db.Column(db.Float, nullable=False)
	crime_count = db.Column(db.Integer, nullable=False, default=0)
	high_severity_count = db.Column(db.Integer, nullable=False, default=0)
	medium_severity_count = db.Column(db.Integer, nullable=False, default=0)
	low_severity_count = db.Column(db.Integer, nullable=False, default=0)
	days_back = db.Column(db.Integer, nullable=False, default=30)
	computed_by = db.Column(db.String(16), db.ForeignKey("users.id"), nullable=True)
	computed_on = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

	__table_args__ = (
		db.Index("ix_safety_area_computed", "area_name", "computed_on"),
	)


class Hotspot(db.Model):
	__tablename__ = "hotspots"

	id = db.Column(db.Integer, primary_key=True)
	location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
	area_name = db.Column(db.String(120), nullable=False)
	crime_count = db.Column(db.Integer, nullable=False)
	radius_meters = db.Column(db.Integer, nullable=False)
	days_back = db.Column(db.Integer, nullable=False)
	risk_level = db.Column(db.String(10), nullable=False)
	computed_by = db.Column(db.String(16), db.ForeignKey("users.id"), nullable=True)
	computed_on = db.Column(db.Date, nullable=False, index=True)

	__table_args__ = (
		db.CheckConstraint("risk_level IN ('Low','Medium','High')", name="ck_hotspot_risk_valid"),
	)

	location = db.relationship("Location")

	def api_payload(self) -> dict:
		location = self.location
		return {
			"area": self.area_name,
			"locationId": self.location_id,
			"crimeCount": self.crime_count,
			"latitude": location.latitude if location else None,
			"longitude": location.longitude if location else None,
			"riskLevel": self.risk_level,
			"radiusMeters": self.radius_meters,
			"computedOn": _iso(self.computed_on),
		}


class Report(db.Model):
	__tablename__ = "reports"

	id = db.Column(db.Integer, primary_key=True)
	title = db.Column(db.String(255), nullable=False)
	report_type = db.Column(db.String(50), nullable=False)
	start_date = db.Column(db.Date, nullable=False)
	end_date = db.Column(db.Date, nullable=False)
	filter_area = db.Column(db.String(120), nullable=True)
	filter_severity = db.Column(db.String(10), nullable=True)
	total_crimes = db.Column(db.Integer, nullable=False, default=0)
	avg_safety_score = db.Column(db.Float, nullable=True)
	summary = db.Column(db.JSON, nullable=True)
	generated_by = db.Column(db.String(16), db.ForeignKey("users.id"), nullable=True, index=True)
	generated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

	author = db.relationship("User")

	def api_payload(self) -> dict:
		return {
			"reportId": self.id,
			"title": self.title,
			"type": self.report_type,
			"startDate": _iso(self.start_date),
			"endDate": _iso(self.end_date),
			"filterArea": self.filter_area,
			"filterSeverity": _lower(self.filter_severity),
			"totalCrimes": self.total_crimes,
			"averageSafetyScore": self.avg_safety_score,
			"summary": self.summary or {},
			"generatedBy": self.generated_by,
			"generatedAt": _iso(self.generated_at),
		}
