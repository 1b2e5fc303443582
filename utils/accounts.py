"""Account lifecycle: registration, credential checks, profile edits, and deactivation."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from models import USER_ROLES, CitizenReport, User
from utils.audit import log_action
from utils.security import check_password, clean_text, generate_user_id, hash_password


class AccountError(Exception):
    """Raised when an account operation is refused."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


def normalize_role(role: Optional[str]) -> Optional[str]:
    wanted = (role or "").strip().lower()
    for candidate in USER_ROLES:
        if candidate.lower() == wanted:
            return candidate
    return None


def _commit() -> None:
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise


def _unused_user_id(role: str) -> str:
    attempts = int(current_app.config.get("USER_ID_MAX_ATTEMPTS", 20))
    for _ in range(attempts):
        candidate = generate_user_id(role)
        if db.session.get(User, candidate) is None:
            return candidate
    raise AccountError("Unable to allocate a user id, please retry", 500)


def report_counts(user_id: str) -> tuple[int, int]:
    total = CitizenReport.query.filter_by(user_id=user_id).count()
    verified = CitizenReport.query.filter_by(user_id=user_id, status="Verified").count()
    return total, verified


def profile_payload(user: User) -> Dict:
    total, verified = report_counts(user.id)
    return {
        "userId": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "phoneNumber": user.phone_number or "",
        "crimesReported": total,
        "verifiedReports": verified,
        "joinedDate": user.created_at.strftime("%B %Y") if user.created_at else None,
        "lastLogin": user.last_login.isoformat() if user.last_login else None,
    }


def register_user(name: str, email: str, password: str, role: str, phone_number: Optional[str] = None) -> User:
    canonical_role = normalize_role(role)
    if not canonical_role:
        raise AccountError("Invalid role. Must be Admin, Analyst, or Public", 400)
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        raise AccountError("Email already registered", 409)

    user = User(
        id=_unused_user_id(canonical_role),
        name=clean_text(name, 150),
        email=email,
        password_hash=hash_password(password, int(current_app.config.get("BCRYPT_ROUNDS", 10))),
        role=canonical_role,
        phone_number=clean_text(phone_number, 30) or None,
        is_active=True,
    )
    db.session.add(user)
    log_action("REGISTER", user)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise AccountError("Email already registered", 409) from exc
    current_app.logger.info("user_registered", extra={"user_id": user.id, "role": user.role})
    return user


def authenticate(email: str, password: str, role: Optional[str] = None) -> User:
    user = User.query.filter_by(email=(email or "").strip().lower(), is_active=True).first()
    if not user:
        raise AccountError("Invalid email or password", 401)
    if role and normalize_role(role) != user.role:
        raise AccountError(f"This account is not registered as {role}", 403)
    if not check_password(password, user.password_hash):
        log_action("LOGIN_FAILED", user)
        _commit()
        raise AccountError("Invalid email or password", 401)

    user.last_login = datetime.utcnow()
    log_action("LOGIN", user)
    _commit()
    return user


def active_user_or_error(user_id: str) -> User:
    user = User.query.filter_by(id=str(user_id), is_active=True).first()
    if not user:
        raise AccountError("User not found", 404)
    return user


def update_profile(user_id: str, name: Optional[str] = None, phone_number: Optional[str] = None, email: Optional[str] = None) -> User:
    user = active_user_or_error(user_id)
    changed = False
    if email:
        email = email.strip().lower()
        clash = User.query.filter(User.email == email, User.id != user.id).first()
        if clash:
            raise AccountError("Email already in use", 409)
        user.email = email
        changed = True
    if name:
        user.name = clean_text(name, 150)
        changed = True
    if phone_number is not None:
        user.phone_number = clean_text(phone_number, 30) or None
        changed = True
    if not changed:
        raise AccountError("No fields to update", 400)
    log_action("PROFILE_UPDATED", user)
    _commit()
    return user


def change_password(user_id: str, current_password: str, new_password: str) -> None:
    user = active_user_or_error(user_id)
    if not check_password(current_password, user.password_hash):
        raise AccountError("Current password is incorrect", 401)
    user.password_hash = hash_password(new_password, int(current_app.config.get("BCRYPT_ROUNDS", 10)))
    log_action("PASSWORD_CHANGED", user)
    _commit()


def set_active(user_id: str, active: bool, actor: Optional[User]) -> User:
    user = db.session.get(User, str(user_id))
    if not user:
        raise AccountError("User not found", 404)
    user.is_active = active
    log_action("ACCOUNT_ACTIVATED" if active else "ACCOUNT_SUSPENDED", actor, context=f"user:{user.id}")
    _commit()
    current_app.logger.info(
        "account_status_changed",
        extra={"user_id": user.id, "active": active, "actor_id": actor.id if actor else None},
    )
    return user


def deactivate_account(user_id: str, actor: Optional[User]) -> User:
    """Soft delete: the row and its reports are kept, the login is disabled."""
    user = db.session.get(User, str(user_id))
    if not user:
        raise AccountError("User not found", 404)
    user.is_active = False
    log_action("ACCOUNT_DEACTIVATED", actor or user, context=f"user:{user.id}")
    _commit()
    current_app.logger.info(
        "account_deactivated",
        extra={"user_id": user.id, "actor_id": actor.id if actor else None},
    )
    return user


def users_with_report_counts() -> List[Dict]:
    counts = (
        db.session.query(CitizenReport.user_id, func.count(CitizenReport.id).label("cnt"))
        .group_by(CitizenReport.user_id)
        .subquery()
    )
    rows = (
        db.session.query(User, func.coalesce(counts.c.cnt, 0))
        .outerjoin(counts, User.id == counts.c.user_id)
        .order_by(User.created_at.desc(), User.id)
        .all()
    )
    return [user.list_payload(reports_count) for user, reports_count in rows]
