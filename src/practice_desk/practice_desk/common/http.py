from __future__ import annotations

import logging
from functools import wraps
from typing import Optional

from flask import jsonify, request, session

from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DependencyError,
    NotFoundError,
    ValidationError,
)
from ..identity.model import Principal
from .datetime_utils import parse_optional_date

logger = logging.getLogger(__name__)


def error_response(message: str, status: int, **extra):
    body = {"success": False, "message": message}
    body.update(extra)
    return jsonify(body), status


def current_principal() -> Principal:
    return Principal.from_session(session)


def json_api(view):
    """Map domain errors to JSON responses with the matching status code."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except ValidationError as e:
            return error_response(str(e), 400, fields=e.fields)
        except AuthenticationError as e:
            return error_response(str(e), 401)
        except AuthorizationError as e:
            return error_response(str(e), 403)
        except NotFoundError as e:
            return error_response(str(e), 404)
        except DependencyError as e:
            logger.error("%s %s failed: %s", request.method, request.path, e)
            return error_response("Service temporarily unavailable, please retry", 503, retryable=True)

    return wrapper


def privileged_only(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        principal = current_principal()
        if not principal.is_privileged:
            raise AuthorizationError("Only admins and managers can access this resource")
        return view(*args, **kwargs)

    return wrapper


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def arg_date(name: str):
    return parse_optional_date(request.args.get(name), name)


def arg_flag(name: str) -> Optional[bool]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def arg_int(name: str) -> Optional[int]:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError.for_field(name, f"{name} must be an integer")
