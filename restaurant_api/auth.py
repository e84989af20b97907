import os
from functools import wraps
from pathlib import Path

from dotenv import dotenv_values
from flask import current_app, request

from .http import jerror

ROLES = ("admin", "manager", "staff")


def _get_token(role: str) -> str:
    key = f"{role.upper()}_TOKEN"

    token = current_app.config.get(key) or os.getenv(key)
    if token and token.strip():
        return token.strip()

    root = Path(__file__).resolve().parents[1]
    env_path = root / ".env"
    if env_path.exists():
        token = dotenv_values(str(env_path)).get(key)
        if token and token.strip():
            return token.strip()

    return ""


def current_role() -> str | None:
    """
    Resolves the Authorization bearer token to a staff role, or None.
    """
    auth_header = request.headers.get("Authorization", "").strip()
    if not auth_header.lower().startswith("bearer "):
        return None

    provided_token = auth_header[7:].strip()
    if not provided_token:
        return None
    for role in ROLES:
        if provided_token == _get_token(role):
            return role
    return None


def require_role(*allowed: str):
    allowed = allowed or ROLES

    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            role = current_role()
            if role is None:
                return jerror(401, "UNAUTHORIZED", "Missing or invalid bearer token.")
            if role not in allowed:
                return jerror(403, "FORBIDDEN", "Your role cannot perform this action.")
            return view(*args, **kwargs)
        return wrapped

    return decorator
