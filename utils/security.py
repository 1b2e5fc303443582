"""Security helpers for password hashing, identifiers, input cleaning, and response headers."""
import html
import secrets
from typing import Iterable, Optional

import bcrypt
import bleach
from flask import request

ROLE_ID_PREFIXES = {"Admin": "ADM", "Analyst": "ANL", "Public": "PUB"}


def hash_password(password: str, rounds: int = 10) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def check_password(password: str, password_hash: Optional[str]) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


def generate_user_id(role: str) -> str:
    """Role-prefixed identifier such as ``ANL4821``."""
    prefix = ROLE_ID_PREFIXES.get(role, "PUB")
    return f"{prefix}{1000 + secrets.randbelow(9000)}"


def clean_text(value, max_length: Optional[int] = None) -> Optional[str]:
    """Strip markup from free text before it is stored."""
    if value is None:
        return None
    text = html.unescape(bleach.clean(str(value), tags=[], attributes={}, strip=True)).strip()
    if max_length is not None:
        text = text[:max_length]
    return text


def parse_origins(raw: str | Iterable[str] | None) -> set[str]:
    if not raw:
        return set()
    if isinstance(raw, str):
        raw = raw.split(",")
    return {origin.strip().rstrip("/") for origin in raw if origin and origin.strip()}


def apply_cors_headers(response, allowed_origins: set[str]):
    origin = (request.headers.get("Origin") or "").rstrip("/")
    if not origin:
        return response
    if "*" in allowed_origins or origin in allowed_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, X-Request-ID"
        response.headers["Access-Control-Expose-Headers"] = "X-Request-ID, X-Report-Checksum"
        response.headers.add("Vary", "Origin")
    return response


def apply_security_headers(response, force_https: bool = False):
    """Headers for a JSON-only API."""
    response.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    response.headers.setdefault("Cache-Control", "no-store")
    if force_https or request.is_secure:
        response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains")
    return response
