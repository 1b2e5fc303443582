"""Registration, login, and session blueprint."""
from flask import Blueprint, current_app, jsonify, session
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf import FlaskForm
from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length, Optional, ValidationError

from extensions import db
from utils.accounts import AccountError, authenticate, normalize_role, profile_payload, register_user
from utils.audit import log_action
from utils.validation import validate_json_form

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


class RegistrationForm(FlaskForm):
    name = StringField("Name", validators=[DataRequired(), Length(max=150)])
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=255)])
    password = PasswordField("Password", validators=[DataRequired(), Length(min=8, max=72)])
    role = StringField("Role", validators=[DataRequired()])
    phone_number = StringField("Phone Number", name="phoneNumber", validators=[Optional(), Length(max=30)])

    def validate_role(self, field):
        if not normalize_role(field.data):
            raise ValidationError("Invalid role. Must be Admin, Analyst, or Public")


class LoginForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=255)])
    password = PasswordField("Password", validators=[DataRequired()])
    role = StringField("Role", validators=[Optional()])


@auth_bp.route("/register", methods=["POST"])
def register():
    form, error = validate_json_form(RegistrationForm)
    if error:
        return jsonify({"error": error}), 400

    try:
        user = register_user(
            name=form.name.data,
            email=form.email.data,
            password=form.password.data,
            role=form.role.data,
            phone_number=form.phone_number.data,
        )
    except AccountError as exc:
        current_app.logger.warning("Registration refused", extra={"error": str(exc)})
        return jsonify({"error": str(exc)}), exc.status_code

    return (
        jsonify(
            {
                "message": "User registered successfully",
                "userId": user.id,
                "name": user.name,
                "email": user.email,
                "role": user.role,
            }
        ),
        201,
    )


@auth_bp.route("/login", methods=["POST"])
def login():
    form, error = validate_json_form(LoginForm)
    if error:
        return jsonify({"error": error}), 400

    try:
        user = authenticate(form.email.data, form.password.data, role=form.role.data or None)
    except AccountError as exc:
        current_app.logger.warning("Login refused", extra={"status": exc.status_code})
        return jsonify({"error": str(exc)}), exc.status_code

    login_user(user)
    session.permanent = True
    payload = profile_payload(user)
    payload["message"] = "Login successful"
    return jsonify(payload)


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    user = current_user._get_current_object()
    logout_user()
    session.clear()
    log_action("LOGOUT", user)
    db.session.commit()
    return jsonify({"message": "Logged out"})


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify(profile_payload(current_user))
