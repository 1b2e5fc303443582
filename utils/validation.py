"""Bind JSON request bodies to FlaskForm classes."""
from typing import Optional, Type

from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict

SEVERITY_CHOICES = ("low", "medium", "high")
TIME_PATTERN = r"^([01]?\d|2[0-3]):[0-5]\d(:[0-5]\d)?$"


def lowercase(value):
    return value.strip().lower() if isinstance(value, str) else value


def _formdata(payload) -> MultiDict:
    formdata = MultiDict()
    if not isinstance(payload, dict):
        return formdata
    for key, value in payload.items():
        # Nested values have no form field to land in.
        if value is None or isinstance(value, (dict, list)):
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        formdata.add(key, str(value))
    return formdata


def bind_json_form(form_cls: Type[FlaskForm], payload=None) -> FlaskForm:
    if payload is None:
        payload = request.get_json(silent=True)
    return form_cls(formdata=_formdata(payload))


def first_form_error(form: FlaskForm) -> Optional[str]:
    for field in form:
        if field.errors:
            return f"{field.name}: {field.errors[0]}"
    return None


def validate_json_form(form_cls: Type[FlaskForm], payload=None) -> tuple[FlaskForm, Optional[str]]:
    """Return the bound form and the first validation error, if any."""
    form = bind_json_form(form_cls, payload)
    if form.validate():
        return form, None
    return form, first_form_error(form) or "Invalid request body"


def supplied(field) -> bool:
    """True when the request body carried a value for ``field``."""
    return bool(field.raw_data)


def json_body() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}
