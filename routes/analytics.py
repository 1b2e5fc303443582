"""Analyst tooling: safety scores, hotspot maps, stored reports, and PDF export."""
import os

from flask import Blueprint, abort, current_app, g, jsonify, request, send_file
from flask_wtf import FlaskForm
from wtforms import DateField, IntegerField, StringField
from wtforms.validators import AnyOf, DataRequired, InputRequired, Length, NumberRange, Optional

from extensions import db
from models import Report
from utils.crime_records import dashboard_summary
from utils.decorators import roles_required
from utils.hotspots import identify_hotspots
from utils.pdf_generator import generate_report_pdf
from utils.report_generator import generate_crime_report
from utils.safety_score import MAX_DAYS_BACK, AnalyticsError, calculate_safety_score, latest_score, score_payload
from utils.validation import SEVERITY_CHOICES, lowercase, validate_json_form

analytics_bp = Blueprint("analytics", __name__, url_prefix="/api")


class ReportRequestForm(FlaskForm):
    title = StringField("Title", validators=[DataRequired(), Length(max=255)])
    report_type = StringField("Type", name="type", validators=[DataRequired(), Length(max=50)])
    start_date = DateField("Start Date", name="startDate", format="%Y-%m-%d", validators=[InputRequired()])
    end_date = DateField("End Date", name="endDate", format="%Y-%m-%d", validators=[InputRequired()])
    filter_area = StringField("Area", name="filterArea", validators=[Optional(), Length(max=120)])
    filter_severity = StringField(
        "Severity",
        name="filterSeverity",
        filters=[lowercase],
        validators=[Optional(), AnyOf(SEVERITY_CHOICES)],
    )


class HotspotRequestForm(FlaskForm):
    days_back = IntegerField(
        "Days Back", name="daysBack", validators=[Optional(), NumberRange(min=1, max=MAX_DAYS_BACK)]
    )
    radius_meters = IntegerField(
        "Radius", name="radiusMeters", validators=[Optional(), NumberRange(min=1, max=50_000)]
    )


def _analytics_error(exc: AnalyticsError):
    current_app.logger.warning(
        "Analytics request refused",
        extra={"error": str(exc), "status": exc.status_code, "path": request.path},
    )
    return jsonify({"error": str(exc)}), exc.status_code


@analytics_bp.route("/analytics/safety-score/<area_name>", methods=["GET"])
@roles_required("Analyst", "Admin", id_field="analystId")
def safety_score(area_name):
    raw_days = (request.args.get("daysBack") or "").strip()
    try:
        days_back = int(raw_days) if raw_days else None
    except ValueError:
        return jsonify({"error": "daysBack must be an integer"}), 400

    try:
        calculate_safety_score(area_name, g.actor, days_back)
    except AnalyticsError as exc:
        return _analytics_error(exc)

    score = latest_score(area_name)
    if score is None:
        abort(404, description="Area not found or no data available")
    return jsonify(score_payload(score))


@analytics_bp.route("/analytics/dashboard-summary", methods=["GET"])
def dashboard():
    return jsonify(dashboard_summary())


@analytics_bp.route("/analytics/generate-report", methods=["POST"])
@roles_required("Analyst", "Admin", id_field="analystId")
def generate_report():
    form, error = validate_json_form(ReportRequestForm)
    if error:
        return jsonify({"error": error}), 400

    try:
        report = generate_crime_report(
            g.actor,
            title=form.title.data,
            report_type=form.report_type.data,
            start_date=form.start_date.data,
            end_date=form.end_date.data,
            filter_area=(form.filter_area.data or "").strip() or None,
            filter_severity=form.filter_severity.data.capitalize() if form.filter_severity.data else None,
        )
    except AnalyticsError as exc:
        return _analytics_error(exc)

    payload = report.api_payload()
    payload["message"] = "Report generated successfully"
    return jsonify(payload), 201


@analytics_bp.route("/analytics/generate-map", methods=["POST"])
@roles_required("Analyst", "Admin", id_field="analystId")
def generate_map():
    form, error = validate_json_form(HotspotRequestForm)
    if error:
        return jsonify({"error": error}), 400

    try:
        hotspots = identify_hotspots(g.actor, days_back=form.days_back.data, radius_meters=form.radius_meters.data)
    except AnalyticsError as exc:
        return _analytics_error(exc)

    return jsonify(
        {
            "message": "Hotspot map generated successfully",
            "hotspots": [hotspot.api_payload() for hotspot in hotspots],
        }
    )


@analytics_bp.route("/reports", methods=["GET"])
def list_reports():
    reports = Report.query.order_by(Report.generated_at.desc(), Report.id.desc()).all()
    return jsonify([report.api_payload() for report in reports])


@analytics_bp.route("/reports/<int:report_id>/pdf", methods=["GET"])
@roles_required("Analyst", "Admin", id_field="analystId")
def export_report_pdf(report_id):
    report = db.session.get(Report, report_id)
    if not report:
        abort(404, description="Report not found")

    export_dir = current_app.config.get("REPORT_EXPORT_DIR") or os.path.join(current_app.instance_path, "report_exports")
    filename = f"crime-report-{report.id}.pdf"
    output_path = os.path.join(export_dir, filename)
    try:
        checksum = generate_report_pdf(report.api_payload(), output_path)
    except OSError:
        current_app.logger.exception("Report PDF export failed", extra={"report_id": report.id})
        return jsonify({"error": "Unable to export report"}), 500

    current_app.logger.info(
        "report_pdf_exported",
        extra={"report_id": report.id, "checksum": checksum, "actor_id": g.actor.id},
    )
    response = send_file(output_path, mimetype="application/pdf", as_attachment=True, download_name=filename)
    response.headers["X-Report-Checksum"] = checksum
    return response
