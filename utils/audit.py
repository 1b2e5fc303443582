"""Audit trail helpers shared by blueprints and services."""
from typing import Optional

from flask import has_request_context, request

from extensions import db
from models import AuditLog, User


def log_action(action: str, user: Optional[User], context: Optional[str] = None) -> AuditLog:
    """Stage an audit row; the caller owns the commit."""
    entry = AuditLog(
        user_id=user.id if user else None,
        action_type=action,
        context_entity=context,
    )
    if has_request_context():
        entry.ip_address = request.remote_addr
        entry.user_agent = (request.headers.get("User-Agent") or "unknown")[:255]
    db.session.add(entry)
    return entry
