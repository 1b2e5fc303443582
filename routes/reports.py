"""Citizen report intake, listing, and admin moderation blueprint."""
from flask import Blueprint, abort, current_app, g, jsonify, request
from flask_wtf import FlaskForm
from wtforms import DateField, IntegerField, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, InputRequired, Length, Optional, Regexp

from extensions import db
from models import API_REPORT_STATUS, CitizenReport
from utils.decorators import roles_required
from utils.moderation import ModerationError, action_for_status, review_report, submit_report
from utils.validation import SEVERITY_CHOICES, TIME_PATTERN, json_body, lowercase, validate_json_form

reports_bp = Blueprint("citizen_reports", __name__, url_prefix="/api")

STATUS_FILTERS = {api: stored for stored, api in API_REPORT_STATUS.items()}


class CitizenReportForm(FlaskForm):
    crime_type = StringField("Crime Type", name="crimeType", validators=[DataRequired(), Length(max=100)])
    category_id = IntegerField("Category", name="categoryId", validators=[Optional()])
    severity = StringField(
        "Severity",
        filters=[lowercase],
        validators=[DataRequired(), AnyOf(SEVERITY_CHOICES, message="Must be low, medium, or high")],
    )
    description = TextAreaField("Description", validators=[DataRequired(), Length(max=5000)])
    incident_date = DateField("Incident Date", name="incidentDate", format="%Y-%m-%d", validators=[InputRequired()])
    incident_time = StringField(
        "Incident Time",
        name="incidentTime",
        validators=[Optional(), Regexp(TIME_PATTERN, message="Use HH:MM")],
    )
    user_id = StringField("User", name="userId", validators=[DataRequired(), Length(max=16)])
    location_id = IntegerField("Location", name="locationId", validators=[InputRequired()])


def _moderation_error(exc: ModerationError):
    current_app.logger.warning(
        "Citizen report request refused",
        extra={"error": str(exc), "status": exc.status_code, "path": request.path},
    )
    return jsonify({"error": str(exc)}), exc.status_code


@reports_bp.route("/citizen-reports", methods=["POST"])
def submit_citizen_report():
    form, error = validate_json_form(CitizenReportForm)
    if error:
        return jsonify({"error": error}), 400

    try:
        report = submit_report(
            crime_type=form.crime_type.data,
            category_id=form.category_id.data,
            severity=form.severity.data.capitalize(),
            description=form.description.data,
            incident_date=form.incident_date.data,
            incident_time=form.incident_time.data or None,
            user_id=form.user_id.data,
            location_id=form.location_id.data,
        )
    except ModerationError as exc:
        return _moderation_error(exc)

    return (
        jsonify({"success": True, "reportId": report.id, "message": "Report submitted successfully"}),
        201,
    )


@reports_bp.route("/citizen-reports", methods=["GET"])
def list_citizen_reports():
    query = CitizenReport.query
    status = (request.args.get("status") or "").strip().lower()
    if status and status != "all":
        stored = STATUS_FILTERS.get(status)
        if not stored:
            return jsonify({"error": "Invalid status filter"}), 400
        query = query.filter(CitizenReport.status == stored)

    reports = query.order_by(CitizenReport.submitted_on.desc(), CitizenReport.id.desc()).all()
    return jsonify([report.api_payload() for report in reports])


@reports_bp.route("/citizen-reports/<int:report_id>", methods=["GET"])
def get_citizen_report(report_id):
    report = db.session.get(CitizenReport, report_id)
    if not report:
        abort(404, description="Report not found")
    return jsonify(report.detail_payload())


@reports_bp.route("/citizen-reports/<int:report_id>/status", methods=["PUT"])
@roles_required("Admin")
def update_citizen_report_status(report_id):
    payload = json_body()
    try:
        action = action_for_status(payload.get("status"))
        result = review_report(report_id, g.actor, action, payload.get("rejectionReason"))
    except ModerationError as exc:
        return _moderation_error(exc)
    return jsonify(result)


@reports_bp.route("/crimes/<int:report_id>/verify", methods=["POST"])
@roles_required("Admin")
def verify_report(report_id):
    payload = json_body()
    try:
        result = review_report(report_id, g.actor, "VERIFY", payload.get("reason"))
    except ModerationError as exc:
        return _moderation_error(exc)
    result["message"] = "Report verified successfully"
    return jsonify(result)


@reports_bp.route("/crimes/<int:report_id>/discard", methods=["POST"])
@roles_required("Admin")
def discard_report(report_id):
    payload = json_body()
    try:
        result = review_report(report_id, g.actor, "REJECT", payload.get("reason"))
    except ModerationError as exc:
        return _moderation_error(exc)
    result["message"] = "Report discarded successfully"
    return jsonify(result)
