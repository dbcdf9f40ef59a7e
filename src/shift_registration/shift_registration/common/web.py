from __future__ import annotations

from datetime import date
from functools import wraps
from typing import Optional

from flask import jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    StateError,
    ValidationError,
)
from .datetime_utils import parse_iso_date

STATUS_BY_ERROR = (
    (ValidationError, 422),
    (NotFoundError, 404),
    (ConflictError, 409),
    (StateError, 409),
    (AuthorizationError, 403),
)


def error_response(exc: DomainError):
    status = next((code for cls, code in STATUS_BY_ERROR if isinstance(exc, cls)), 400)
    body = {"error": exc.kind, "message": str(exc)}
    failures = getattr(exc, "failures", None)
    if failures:
        body["errors"] = [f.to_dict() for f in failures]
        body["error_count"] = len(failures)
        body["success_count"] = 0
    return jsonify(body), status


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"error": "unauthorized", "message": "Please log in to continue"}), 401
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"error": "unauthorized", "message": "Please log in to continue"}), 401
        if session.get("role") != Role.ADMIN.value:
            return jsonify({"error": "forbidden", "message": "Administrator access required"}), 403
        return view(*args, **kwargs)

    return wrapper


def current_role() -> Role:
    return Role(session.get("role"))


def current_user_id() -> int:
    return int(session["user_id"])


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def arg_date(name: str) -> Optional[date]:
    value = request.args.get(name)
    return parse_iso_date(value) if value else None


def arg_int(name: str) -> Optional[int]:
    value = request.args.get(name)
    if not value:
        return None
    if not value.isdigit():
        raise ValidationError(f"{name} must be a number")
    return int(value)
