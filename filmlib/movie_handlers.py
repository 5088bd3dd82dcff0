"""HTTP handlers for creating, changing, listing and searching films."""

from __future__ import annotations

import re
from collections.abc import Callable
from http import HTTPStatus
from typing import Protocol

from filmlib.httpio import Request, Response, json_response, text_error, write_json_error
from filmlib.middleware import is_admin
from filmlib.models import (
    Film,
    ValidationError,
    validate_film_search_params,
    validate_sort_film,
)
from filmlib.repository import RepositoryError
from filmlib.service import ServiceError

_FORBIDDEN = "Forbidden: admin access required"
_METHOD_NOT_ALLOWED = "Method not allowed"
_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT_MIN, _INT_MAX = -(2**63), 2**63 - 1
_SERVICE_ERRORS = (ServiceError, RepositoryError)


class _MovieOperations(Protocol):
    def add_movie(self, film: Film) -> None: ...
    def update_movie(self, film: Film) -> None: ...
    def delete_movie(self, film_id: int) -> None: ...
    def get_films(self, sort_by: str) -> list[Film] | None: ...
    def search_film(self, actor: str, film: str) -> Film: ...


def _parse_id(text: str) -> int:
    """Parse a decimal id with an optional sign; raise ValueError otherwise."""
    if not _INTEGER.fullmatch(text):
        raise ValueError(f"invalid integer: {text!r}")
    value = int(text)
    if not _INT_MIN <= value <= _INT_MAX:
        raise ValueError(f"integer out of range: {text!r}")
    return value


def _decode_film(request: Request) -> Film:
    payload = request.json()
    return Film.from_dict({} if payload is None else payload)


class MovieHandler:
    """Endpoints that manage and query films."""

    def __init__(self, service: _MovieOperations) -> None:
        self.service = service

    def handle_movie_get(self, request: Request) -> Response:
        """Route GET requests for the film list and the film search."""
        if request.method == "GET":
            if request.path == "/films":
                return self.get_all_films(request)
            if request.path == "/films/search":
                return self.search_film(request)
        return write_json_error(_METHOD_NOT_ALLOWED, HTTPStatus.NOT_FOUND)

    def handle_movie_post(self, request: Request) -> Response:
        if request.method == "POST":
            return self.create_film(request)
        return write_json_error(_METHOD_NOT_ALLOWED, HTTPStatus.NOT_FOUND)

    def handle_movie_put(self, request: Request) -> Response:
        if request.method == "PUT":
            return self.update_film(request)
        return text_error(_METHOD_NOT_ALLOWED, HTTPStatus.METHOD_NOT_ALLOWED)

    def handle_movie_delete(self, request: Request) -> Response:
        if request.method == "DELETE":
            return self.delete_film(request)
        return text_error(_METHOD_NOT_ALLOWED, HTTPStatus.METHOD_NOT_ALLOWED)

    def _save(
        self, request: Request, save: Callable[[Film], None], failure: str
    ) -> Response:
        if is_admin(request):
            return write_json_error(_FORBIDDEN, HTTPStatus.FORBIDDEN)
        try:
            film = _decode_film(request)
        except ValueError:
            return write_json_error("Invalid request body", HTTPStatus.BAD_REQUEST)
        try:
            film.validate()
        except ValidationError as exc:
            return write_json_error(str(exc), HTTPStatus.BAD_REQUEST)
        try:
            save(film)
        except _SERVICE_ERRORS:
            return write_json_error(failure, HTTPStatus.INTERNAL_SERVER_ERROR)
        return json_response(film.to_dict(), HTTPStatus.CREATED)

    def create_film(self, request: Request) -> Response:
        """Validate the film in the body and add it."""
        return self._save(request, self.service.add_movie, "Failed to create film")

    def update_film(self, request: Request) -> Response:
        """Validate the film in the body and save the changes."""
        return self._save(request, self.service.update_movie, "Failed to update film")

    def delete_film(self, request: Request) -> Response:
        """Remove the film whose id is the last segment of the path."""
        if is_admin(request):
            return write_json_error(_FORBIDDEN, HTTPStatus.FORBIDDEN)
        parts = request.path.strip("/").split("/")
        if len(parts) < 2:
            return write_json_error("Missing film ID", HTTPStatus.BAD_REQUEST)
        try:
            film_id = _parse_id(parts[-1])
        except ValueError:
            return write_json_error("Invalid film ID", HTTPStatus.BAD_REQUEST)
        try:
            self.service.delete_movie(film_id)
        except _SERVICE_ERRORS:
            return write_json_error("Failed to delete film", HTTPStatus.INTERNAL_SERVER_ERROR)
        return json_response({"message": "movie deleted successfully"}, HTTPStatus.OK)

    def get_all_films(self, request: Request) -> Response:
        """List films, optionally sorted by the ``sort_by`` query parameter."""
        sort_by = request.query_param("sort_by")
        try:
            validate_sort_film(sort_by)
        except ValidationError as exc:
            return write_json_error(str(exc), HTTPStatus.BAD_REQUEST)
        try:
            films = self.service.get_films(sort_by)
        except _SERVICE_ERRORS:
            return write_json_error("Failed to get films", HTTPStatus.INTERNAL_SERVER_ERROR)
        payload = None if films is None else [film.to_dict() for film in films]
        return json_response(payload, HTTPStatus.OK)

    def search_film(self, request: Request) -> Response:
        """Find a film by the ``actor`` and ``movie`` query parameters."""
        actor = request.query_param("actor").strip()
        movie = request.query_param("movie").strip()
        try:
            validate_film_search_params(movie, actor)
        except ValidationError as exc:
            return write_json_error(str(exc), HTTPStatus.BAD_REQUEST)
        try:
            film = self.service.search_film(actor, movie)
        except _SERVICE_ERRORS as exc:
            return write_json_error(f"Search failed: {exc}", HTTPStatus.INTERNAL_SERVER_ERROR)
        return json_response(film.to_dict(), HTTPStatus.OK)