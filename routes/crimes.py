"""Verified crime records and reference data blueprint."""
from datetime import date

from flask import Blueprint, abort, current_app, g, jsonify, request
from flask_wtf import FlaskForm
from wtforms import DateField, IntegerField, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, InputRequired, Length, NumberRange, Optional, Regexp

from extensions import db
from models import CrimeCategory, CrimeRecord, Location
from utils.crime_records import CrimeRecordError, create_crime, crime_types, filter_crimes, update_crime
from utils.decorators import roles_required
from utils.validation import SEVERITY_CHOICES, TIME_PATTERN, lowercase, supplied, validate_json_form

crimes_bp = Blueprint("crimes", __name__, url_prefix="/api")


class CrimeRecordForm(FlaskForm):
    crime_type = StringField("Crime Type", name="type", validators=[DataRequired(), Length(max=100)])
    category_id = IntegerField("Category", name="categoryId", validators=[InputRequired()])
    severity = StringField("Severity", filters=[lowercase], validators=[DataRequired(), AnyOf(SEVERITY_CHOICES)])
    description = TextAreaField("Description", validators=[DataRequired(), Length(max=5000)])
    occurred_on = DateField("Occurred On", name="occurredOn", format="%Y-%m-%d", validators=[InputRequired()])
    occurred_time = StringField("Occurred Time", name="occurredTime", validators=[Optional(), Regexp(TIME_PATTERN)])
    location_id = IntegerField("Location", name="locationId", validators=[InputRequired()])
    witnesses = IntegerField("Witnesses", validators=[Optional(), NumberRange(min=0)])


class CrimeUpdateForm(FlaskForm):
    severity = StringField("Severity", filters=[lowercase], validators=[Optional(), AnyOf(SEVERITY_CHOICES)])
    status = StringField("Status", validators=[Optional(), Length(max=30)])
    description = TextAreaField("Description", validators=[Optional(), Length(max=5000)])


def _crime_error(exc: CrimeRecordError):
    current_app.logger.warning(
        "Crime record request refused",
        extra={"error": str(exc), "status": exc.status_code, "path": request.path},
    )
    return jsonify({"error": str(exc)}), exc.status_code


def _date_arg(name: str):
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        abort(400, description=f"{name} must be a YYYY-MM-DD date")


def _int_arg(name: str):
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        abort(400, description=f"{name} must be an integer")


@crimes_bp.route("/crimes", methods=["GET"])
def list_crimes():
    """Newest crimes first, one page at a time.

    Without ``limit`` only the first ``CRIMES_PAGE_LIMIT`` rows come back; page
    through the rest with ``limit`` and ``offset``.
    """
    try:
        crimes = filter_crimes(
            crime_type=request.args.get("type"),
            severity=request.args.get("severity"),
            status=request.args.get("status"),
            area=(request.args.get("area") or "").strip() or None,
            start_date=_date_arg("startDate"),
            end_date=_date_arg("endDate"),
            limit=_int_arg("limit"),
            offset=_int_arg("offset") or 0,
        )
    except CrimeRecordError as exc:
        return _crime_error(exc)
    return jsonify([crime.api_payload() for crime in crimes])


@crimes_bp.route("/crimes/<int:crime_id>", methods=["GET"])
def get_crime(crime_id):
    crime = db.session.get(CrimeRecord, crime_id)
    if not crime:
        abort(404, description="Crime not found")
    return jsonify(crime.api_payload(detail=True))


@crimes_bp.route("/crimes", methods=["POST"])
@roles_required("Admin")
def create_crime_record():
    form, error = validate_json_form(CrimeRecordForm)
    if error:
        return jsonify({"error": error}), 400

    try:
        crime = create_crime(
            g.actor,
            crime_type=form.crime_type.data,
            category_id=form.category_id.data,
            severity=form.severity.data,
            description=form.description.data,
            occurred_on=form.occurred_on.data,
            occurred_time=form.occurred_time.data or None,
            location_id=form.location_id.data,
            witnesses=form.witnesses.data,
        )
    except CrimeRecordError as exc:
        return _crime_error(exc)

    return (
        jsonify(
            {
                "crimeId": crime.id,
                "message": "Crime record created successfully",
                "crime": crime.api_payload(detail=True),
            }
        ),
        201,
    )


@crimes_bp.route("/crimes/<int:crime_id>", methods=["PUT"])
@roles_required("Admin")
def update_crime_record(crime_id):
    form, error = validate_json_form(CrimeUpdateForm)
    if error:
        return jsonify({"error": error}), 400

    try:
        crime = update_crime(
            crime_id,
            g.actor,
            severity=form.severity.data if supplied(form.severity) else None,
            status=form.status.data if supplied(form.status) else None,
            description=form.description.data if supplied(form.description) else None,
        )
    except CrimeRecordError as exc:
        return _crime_error(exc)

    return jsonify({"message": "Crime record updated successfully", "crime": crime.api_payload(detail=True)})


@crimes_bp.route("/crimes-types", methods=["GET"])
def list_crime_types():
    return jsonify(crime_types())


@crimes_bp.route("/crime-types/<int:category_id>", methods=["GET"])
def list_crime_types_for_category(category_id):
    return jsonify(crime_types(category_id))


@crimes_bp.route("/locations", methods=["GET"])
def list_locations():
    locations = Location.query.order_by(Location.area_name, Location.id).all()
    return jsonify([location.api_payload() for location in locations])


@crimes_bp.route("/crime-categories", methods=["GET"])
def list_crime_categories():
    categories = CrimeCategory.query.order_by(CrimeCategory.category_name).all()
    return jsonify([category.api_payload() for category in categories])
