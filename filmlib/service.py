"""Business operations on actors and films, built over the repository."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Protocol

from filmlib.models import Actor, ActorWithFilms, Film, ValidationError
from filmlib.repository import RepositoryError


class ServiceError(Exception):
    """Raised when a business operation cannot be carried out."""


class _ActorStore(Protocol):
    def create_actor(self, actor: Actor) -> None: ...
    def update_actor(self, actor: Actor) -> None: ...
    def delete_actor(self, actor_id: int) -> None: ...
    def actor_exists_by_id(self, actor_id: int) -> bool: ...
    def actor_exists_by_name(self, name: str) -> bool: ...


class _MovieStore(Protocol):
    def create_film(self, film: Film) -> None: ...
    def update_film(self, film: Film) -> None: ...
    def delete_film(self, film_id: int) -> None: ...
    def get_all_films(self, sort_by: str) -> list[Film]: ...
    def search_film(self, actor: str, film: str) -> Film: ...
    def movie_exists_by_id(self, film_id: int) -> bool: ...
    def movie_exists_by_name(self, name: str) -> bool: ...


class _ActorMovieStore(Protocol):
    def get_actors_with_films(self) -> dict[int, ActorWithFilms]: ...


class ActorService:
    """Adds, changes and removes actors."""

    def __init__(self, repo: _ActorStore) -> None:
        self.repo = repo

    def add_actor(self, actor: Actor) -> None:
        """Store a new actor; the caller's object is left untouched."""
        try:
            exists = self.repo.actor_exists_by_name(actor.name)
        except RepositoryError as exc:
            raise ServiceError(f"ошибка проверки актёра: {exc}") from exc
        if not exists:
            raise ServiceError("актёр не найден")
        self.repo.create_actor(copy.copy(actor))

    def update_actor(self, actor: Actor) -> None:
        """Validate and save changes to an existing actor."""
        try:
            exists = self.repo.actor_exists_by_id(actor.id)
        except RepositoryError as exc:
            raise ServiceError(f"ошибка проверки актёра: {exc}") from exc
        if not exists:
            raise ServiceError("актёр не найден")
        try:
            actor.validate()
        except ValidationError as exc:
            raise ServiceError(f"ошибка валидации актёра: {exc}") from exc
        self.repo.update_actor(actor)

    def delete_actor(self, actor_id: int) -> None:
        self.repo.delete_actor(actor_id)


class MovieService:
    """Adds, changes, lists and searches films."""

    def __init__(self, repo: _MovieStore) -> None:
        self.repo = repo

    def _require_exists(self, check: Any, key: Any) -> None:
        try:
            exists = check(key)
        except RepositoryError as exc:
            raise ServiceError(f"Ошибка проверки фильма: {exc}") from exc
        if not exists:
            raise ServiceError("Фильм не найден")

    def add_movie(self, film: Film) -> None:
        self._require_exists(self.repo.movie_exists_by_name, film.name)
        self.repo.create_film(copy.copy(film))

    def update_movie(self, film: Film) -> None:
        self._require_exists(self.repo.movie_exists_by_id, film.id)
        self.repo.update_film(film)

    def delete_movie(self, film_id: int) -> None:
        self._require_exists(self.repo.movie_exists_by_id, film_id)
        self.repo.delete_film(film_id)

    def get_films(self, sort_by: str) -> list[Film]:
        """List films ordered by ``sort_by``; an empty list when there are none."""
        try:
            films = self.repo.get_all_films(sort_by)
        except RepositoryError as exc:
            raise ServiceError(f"failed to get actors: {exc}") from exc
        return list(films) if films else []

    def search_film(self, actor: str, film: str) -> Film:
        """Find a film by actor and title fragments; an empty film if it has no cast."""
        try:
            found = self.repo.search_film(actor, film)
        except RepositoryError as exc:
            raise ServiceError(f"ошибка поиска: {exc}") from exc
        if not found.list_actors:
            return Film()
        return found


class ActorMovieService:
    """Reports actors together with their films."""

    def __init__(self, repo: _ActorMovieStore) -> None:
        self.repo = repo

    def get_all_actor_with_films(self) -> dict[int, ActorWithFilms]:
        try:
            actors = self.repo.get_actors_with_films()
        except RepositoryError as exc:
            raise ServiceError(f"Ошибка получения списка всех актеров: {exc}") from exc
        return actors if actors else {}


@dataclass
class Service:
    """The services used by the HTTP handlers."""

    authorization: Any = None
    actor: ActorService | None = None
    movie: MovieService | None = None
    actor_movie: ActorMovieService | None = None