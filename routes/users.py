"""User administration and self-service profile blueprint."""
from flask import Blueprint, current_app, g, jsonify, request
from flask_login import current_user, logout_user
from flask_wtf import FlaskForm
from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length, Optional

from models import CitizenReport
from utils.accounts import (
    AccountError,
    active_user_or_error,
    change_password,
    deactivate_account,
    profile_payload,
    set_active,
    update_profile,
    users_with_report_counts,
)
from utils.decorators import roles_required, self_or_admin_required
from utils.validation import supplied, validate_json_form

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


class ProfileForm(FlaskForm):
    name = StringField("Name", validators=[Optional(), Length(max=150)])
    email = StringField("Email", validators=[Optional(), Email(), Length(max=255)])
    phone_number = StringField("Phone Number", name="phoneNumber", validators=[Optional(), Length(max=30)])


class PasswordChangeForm(FlaskForm):
    current_password = PasswordField("Current Password", name="currentPassword", validators=[DataRequired()])
    new_password = PasswordField(
        "New Password", name="newPassword", validators=[DataRequired(), Length(min=8, max=72)]
    )


def _account_error(exc: AccountError):
    current_app.logger.warning(
        "Account request refused",
        extra={"error": str(exc), "status": exc.status_code, "path": request.path},
    )
    return jsonify({"error": str(exc)}), exc.status_code


@users_bp.route("", methods=["GET"])
@roles_required("Admin")
def list_users():
    return jsonify(users_with_report_counts())


@users_bp.route("/<user_id>", methods=["GET"])
def get_user(user_id):
    try:
        user = active_user_or_error(user_id)
    except AccountError as exc:
        return _account_error(exc)
    return jsonify(profile_payload(user))


@users_bp.route("/<user_id>", methods=["PUT"])
@self_or_admin_required()
def update_user(user_id):
    form, error = validate_json_form(ProfileForm)
    if error:
        return jsonify({"error": error}), 400

    try:
        user = update_profile(
            user_id,
            name=form.name.data if supplied(form.name) else None,
            phone_number=form.phone_number.data if supplied(form.phone_number) else None,
            email=form.email.data if supplied(form.email) else None,
        )
    except AccountError as exc:
        return _account_error(exc)

    return jsonify({"message": "Profile updated successfully", "user": profile_payload(user)})


@users_bp.route("/<user_id>/suspend", methods=["PUT"])
@roles_required("Admin")
def suspend_user(user_id):
    try:
        set_active(user_id, False, g.actor)
    except AccountError as exc:
        return _account_error(exc)
    return jsonify({"success": True, "status": "suspended"})


@users_bp.route("/<user_id>/activate", methods=["PUT"])
@roles_required("Admin")
def activate_user(user_id):
    try:
        set_active(user_id, True, g.actor)
    except AccountError as exc:
        return _account_error(exc)
    return jsonify({"success": True, "status": "active"})


@users_bp.route("/<user_id>", methods=["DELETE"])
@self_or_admin_required()
def delete_user(user_id):
    try:
        deactivate_account(user_id, g.actor)
    except AccountError as exc:
        return _account_error(exc)

    if current_user.is_authenticated and current_user.id == user_id:
        logout_user()
    return jsonify({"success": True, "message": "Account deleted successfully"})


@users_bp.route("/<user_id>/password", methods=["PUT"])
def update_password(user_id):
    form, error = validate_json_form(PasswordChangeForm)
    if error:
        return jsonify({"error": error}), 400

    try:
        change_password(user_id, form.current_password.data, form.new_password.data)
    except AccountError as exc:
        return _account_error(exc)
    return jsonify({"message": "Password updated successfully"})


@users_bp.route("/<user_id>/reports", methods=["GET"])
def user_reports(user_id):
    reports = (
        CitizenReport.query.filter_by(user_id=str(user_id))
        .order_by(CitizenReport.submitted_on.desc(), CitizenReport.id.desc())
        .all()
    )
    return jsonify([report.api_payload() for report in reports])
