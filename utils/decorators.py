"""Authorization decorators for role-based access control."""
from functools import wraps
from typing import Optional

from flask import abort, current_app, g, request
from flask_login import current_user

from extensions import db
from models import User
from utils.audit import log_action


def _claimed_id(id_field: str) -> Optional[str]:
    payload = request.get_json(silent=True) or {}
    candidate = payload.get(id_field) if isinstance(payload, dict) else None
    candidate = candidate or request.args.get(id_field)
    return str(candidate).strip() if candidate else None


def resolve_actor(id_field: str) -> tuple[Optional[User], Optional[str]]:
    """Return the acting user and the id that was claimed for it.

    A logged-in session wins; otherwise the id sent under ``id_field`` in the
    JSON body or query string is looked up.
    """
    if current_user.is_authenticated:
        return current_user._get_current_object(), current_user.id
    claimed = _claimed_id(id_field)
    if not claimed:
        return None, None
    return db.session.get(User, claimed), claimed


def _deny(actor: Optional[User], claimed: Optional[str], message: str):
    current_app.logger.warning(
        "Unauthorized role access attempt",
        extra={"claimed_id": claimed, "role": actor.role if actor else None, "path": request.path},
    )
    log_action("UNAUTHORIZED_ACCESS", actor, context=request.path)
    db.session.commit()
    abort(403, description=message)


def roles_required(*roles, id_field: str = "adminId"):
    allowed = {r.lower() for r in roles}
    label = " or ".join(roles)

    def decorator(view_func):
        @wraps(view_func)
        def wrapped(*args, **kwargs):
            actor, claimed = resolve_actor(id_field)
            if not claimed:
                abort(400, description="User ID is required")
            if not actor or not actor.is_active or actor.role.lower() not in allowed:
                _deny(actor, claimed, f"Access denied. Must be {label}")
            g.actor = actor
            return view_func(*args, **kwargs)

        return wrapped

    return decorator


def self_or_admin_required(user_arg: str = "user_id", id_field: str = "adminId"):
    """Allow the account owner (by session) or an active admin."""

    def decorator(view_func):
        @wraps(view_func)
        def wrapped(*args, **kwargs):
            target_id = str(kwargs.get(user_arg))
            actor, claimed = resolve_actor(id_field)
            if not claimed:
                abort(401, description="Authentication required")
            owner = current_user.is_authenticated and actor.id == target_id
            if not owner and not (actor and actor.is_active and actor.is_admin):
                _deny(actor, claimed, "Only the account owner or an admin can do this")
            g.actor = actor
            return view_func(*args, **kwargs)

        return wrapped

    return decorator
