"""HTTP handler listing actors together with their films."""

from __future__ import annotations

from http import HTTPStatus
from typing import Protocol

from filmlib.httpio import Request, Response, json_response, write_json_error
from filmlib.models import ActorWithFilms, ValidationError, validate_get_actors
from filmlib.repository import RepositoryError
from filmlib.service import ServiceError


class _ActorMovieOperations(Protocol):
    def get_all_actor_with_films(self) -> dict[int, ActorWithFilms]: ...


class ActorMovieHandler:
    """Endpoint reporting every actor with the films they appear in."""

    def __init__(self, service: _ActorMovieOperations) -> None:
        self.service = service

    def handle_actor_movie_get(self, request: Request) -> Response:
        if request.method == "GET":
            return self.get_actor_movies(request)
        return write_json_error("Method not allowed", HTTPStatus.METHOD_NOT_ALLOWED)

    def get_actor_movies(self, request: Request) -> Response:
        """Return a JSON array of actors, each with the list of their films."""
        try:
            validate_get_actors()
        except ValidationError as exc:
            return write_json_error(str(exc), HTTPStatus.BAD_REQUEST)
        try:
            actors = self.service.get_all_actor_with_films()
        except (ServiceError, RepositoryError) as exc:
            return write_json_error(str(exc), HTTPStatus.INTERNAL_SERVER_ERROR)
        payload = [entry.to_dict() for entry in (actors or {}).values()]
        return json_response(payload, HTTPStatus.OK)