"""Token checks that wrap request handlers, and role helpers."""

from __future__ import annotations

import dataclasses
import functools
from collections.abc import Callable, Mapping
from http import HTTPStatus
from typing import Any

import jwt

from filmlib.httpio import Request, Response, write_json_error

Handler = Callable[[Request], Response]

_BEARER = "Bearer "
_HMAC_ALGORITHMS = ["HS256", "HS384", "HS512"]


def _decode(token: str, secret_key: bytes | str) -> Mapping[str, Any] | None:
    try:
        return jwt.decode(token, secret_key, algorithms=_HMAC_ALGORITHMS)
    except jwt.PyJWTError:
        return None


def _numeric_claim(claims: Mapping[str, Any], name: str) -> int | None:
    value = claims.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        return int(value)
    except (OverflowError, ValueError):
        return None


def require_auth(secret_key: bytes | str) -> Callable[[Handler], Handler]:
    """Let through only requests with a valid HMAC-signed bearer token.

    The token's ``user_id`` and ``role`` claims are put into the request context.
    """

    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        def wrapped(request: Request) -> Response:
            header = request.headers.get("Authorization", "")
            if not header.startswith(_BEARER):
                return write_json_error("Unauthorized", HTTPStatus.UNAUTHORIZED)
            claims = _decode(header[len(_BEARER):], secret_key)
            if claims is None:
                return write_json_error("Invalid token", HTTPStatus.UNAUTHORIZED)
            user_id = _numeric_claim(claims, "user_id")
            role = _numeric_claim(claims, "role")
            if user_id is None or role is None:
                return write_json_error("Invalid claims", HTTPStatus.UNAUTHORIZED)
            authed = dataclasses.replace(
                request, context={**request.context, "user_id": user_id, "role": role}
            )
            return handler(authed)

        return wrapped

    return decorator


def require_role(secret_key: bytes | str, required_role: int) -> Callable[[Handler], Handler]:
    """Let through only requests whose token carries exactly ``required_role``."""

    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        def wrapped(request: Request) -> Response:
            header = request.headers.get("Authorization", "")
            if not header:
                return write_json_error("Missing token", HTTPStatus.UNAUTHORIZED)
            claims = _decode(header.removeprefix(_BEARER), secret_key)
            if claims is None:
                return write_json_error("Invalid token", HTTPStatus.UNAUTHORIZED)
            role = _numeric_claim(claims, "role")
            if role is None:
                return write_json_error("Role not found", HTTPStatus.FORBIDDEN)
            if role != required_role:
                return write_json_error("Forbidden", HTTPStatus.FORBIDDEN)
            return handler(request)

        return wrapped

    return decorator


def is_admin(request: Request) -> bool:
    """True when the authenticated role in the request context is 1."""
    role = request.context.get("role")
    return isinstance(role, int) and not isinstance(role, bool) and role == 1