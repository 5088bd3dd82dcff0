"""HTTP handlers for registration and login."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Protocol

from filmlib.httpio import Request, Response, json_response, text_error, write_json_error
from filmlib.models import (
    AuthResponse,
    SignInRequest,
    SignUpRequest,
    User,
    UserResponse,
)


class _AuthOperations(Protocol):
    def create_user(self, user: User) -> str: ...
    def verify_user(self, username: str, password: str) -> tuple[str, User]: ...


def _payload(request: Request) -> Any:
    payload = request.json()
    return {} if payload is None else payload


class AuthHandler:
    """Endpoints that register users and issue access tokens."""

    def __init__(self, service: _AuthOperations) -> None:
        self.service = service

    def handle_auth_post(self, request: Request) -> Response:
        """Route a request to sign-up or sign-in by its path."""
        if request.path == "/auth/sign_up":
            return self.create_user(request)
        if request.path == "/auth/sign_in":
            return self.verify_user(request)
        return text_error("Not found", HTTPStatus.NOT_FOUND)

    def create_user(self, request: Request) -> Response:
        """Register a user and reply with a token."""
        try:
            sign_up = SignUpRequest.from_dict(_payload(request))
        except ValueError:
            return write_json_error("Invalid request body", HTTPStatus.BAD_REQUEST)
        user = User(username=sign_up.username, password=sign_up.password, role=sign_up.role)
        if not user.username or not user.password or user.role == 0:
            return write_json_error(
                "username, password and role are required", HTTPStatus.BAD_REQUEST
            )
        try:
            token = self.service.create_user(user)
        except Exception as exc:  # any backend failure is reported to the client
            return write_json_error(str(exc), HTTPStatus.INTERNAL_SERVER_ERROR)
        return json_response({"token": token}, HTTPStatus.CREATED)

    def verify_user(self, request: Request) -> Response:
        """Check the credentials and reply with a token and the user's details."""
        try:
            sign_in = SignInRequest.from_dict(_payload(request))
        except ValueError as exc:
            return write_json_error(f"Invalid request body: {exc}", HTTPStatus.BAD_REQUEST)
        if not sign_in.username or not sign_in.password:
            return write_json_error("username or password are required", HTTPStatus.BAD_REQUEST)
        try:
            token, user = self.service.verify_user(sign_in.username, sign_in.password)
        except Exception:  # any backend failure is reported the same way
            return write_json_error("failed to verify user", HTTPStatus.INTERNAL_SERVER_ERROR)
        reply = AuthResponse(
            access_token=token,
            user=UserResponse(id=user.id, username=user.username, role=user.role),
        )
        return json_response(reply.to_dict(), HTTPStatus.OK)