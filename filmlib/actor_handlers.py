"""HTTP handlers for creating, changing and removing actors."""

from __future__ import annotations

import re
from collections.abc import Callable
from http import HTTPStatus
from typing import Protocol

from filmlib.httpio import Request, Response, json_response, write_json_error
from filmlib.middleware import is_admin
from filmlib.models import Actor, ValidationError
from filmlib.repository import RepositoryError
from filmlib.service import ServiceError

_FORBIDDEN = "Forbidden: admin access required"
_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT_MIN, _INT_MAX = -(2**63), 2**63 - 1
_SERVICE_ERRORS = (ServiceError, RepositoryError)


class _ActorOperations(Protocol):
    def add_actor(self, actor: Actor) -> None: ...
    def update_actor(self, actor: Actor) -> None: ...
    def delete_actor(self, actor_id: int) -> None: ...


def _parse_id(text: str) -> int:
    """Parse a decimal id with an optional sign; raise ValueError otherwise."""
    if not _INTEGER.fullmatch(text):
        raise ValueError(f"invalid integer: {text!r}")
    value = int(text)
    if not _INT_MIN <= value <= _INT_MAX:
        raise ValueError(f"integer out of range: {text!r}")
    return value


def _decode_actor(request: Request) -> Actor:
    payload = request.json()
    return Actor.from_dict({} if payload is None else payload)


def _method_not_allowed() -> Response:
    return write_json_error("Method not allowed", HTTPStatus.METHOD_NOT_ALLOWED)


class ActorHandler:
    """Endpoints that change the set of actors."""

    def __init__(self, service: _ActorOperations) -> None:
        self.service = service

    def handle_actor_post(self, request: Request) -> Response:
        if request.method == "POST":
            return self.create_actor(request)
        return _method_not_allowed()

    def handle_actor_put(self, request: Request) -> Response:
        if request.method == "PUT":
            return self.update_actor(request)
        return _method_not_allowed()

    def handle_actor_delete(self, request: Request) -> Response:
        if request.method == "DELETE":
            return self.delete_actor(request)
        return _method_not_allowed()

    def _save(
        self, request: Request, save: Callable[[Actor], None], failure: str
    ) -> Response:
        if is_admin(request):
            return write_json_error(_FORBIDDEN, HTTPStatus.FORBIDDEN)
        try:
            actor = _decode_actor(request)
        except ValueError:
            return write_json_error("Invalid request body", HTTPStatus.BAD_REQUEST)
        try:
            actor.validate()
        except ValidationError as exc:
            return write_json_error(str(exc), HTTPStatus.BAD_REQUEST)
        try:
            save(actor)
        except _SERVICE_ERRORS:
            return write_json_error(failure, HTTPStatus.INTERNAL_SERVER_ERROR)
        return json_response(actor.to_dict(), HTTPStatus.CREATED)

    def create_actor(self, request: Request) -> Response:
        """Validate the actor in the body and add it."""
        return self._save(request, self.service.add_actor, "Failed to create actor")

    def update_actor(self, request: Request) -> Response:
        """Validate the actor in the body and save the changes."""
        return self._save(request, self.service.update_actor, "Failed to update actor")

    def delete_actor(self, request: Request) -> Response:
        """Remove the actor whose id is the last segment of the path."""
        if is_admin(request):
            return write_json_error(_FORBIDDEN, HTTPStatus.FORBIDDEN)
        parts = request.path.strip("/").split("/")
        if len(parts) < 2:
            return write_json_error("Missing actor ID", HTTPStatus.BAD_REQUEST)
        try:
            actor_id = _parse_id(parts[-1])
        except ValueError:
            return write_json_error("Invalid actor ID", HTTPStatus.BAD_REQUEST)
        try:
            self.service.delete_actor(actor_id)
        except _SERVICE_ERRORS:
            return write_json_error("Failed to delete actor", HTTPStatus.INTERNAL_SERVER_ERROR)
        return json_response({"message": "actor deleted successfully"}, HTTPStatus.OK)