"""Storage of actors, films and users in a relational database."""

from __future__ import annotations

import itertools
import re
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

from filmlib.models import (
    Actor,
    ActorWithFilms,
    Film,
    User,
    ZERO_TIME,
    format_timestamp,
    parse_timestamp,
)

NO_ROWS = "sql: no rows in result set"

_PARAMSTYLES = frozenset({"qmark", "format", "pyformat", "numeric"})

# Placeholder style and RETURNING support of well-known DB-API drivers.
_DRIVER_DEFAULTS = {
    "sqlite3": ("qmark", False),
    "psycopg2": ("pyformat", True),
    "psycopg": ("pyformat", True),
    "pg8000": ("format", True),
    "pymysql": ("pyformat", False),
}

_ORDER_CLAUSES = {
    "name": "ORDER BY f.name ASC",
    "release_date": "ORDER BY f.release_date",
}
_DEFAULT_ORDER = "ORDER BY f.rating DESC"


class RepositoryError(Exception):
    """Raised when a database operation fails."""


class NotFoundError(RepositoryError):
    """Raised when a looked-up record does not exist."""


def _to_datetime(value: Any) -> datetime:
    if value is None:
        return ZERO_TIME
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            return parse_timestamp(value)
        except ValueError:
            return _to_datetime(datetime.fromisoformat(value))
    raise RepositoryError(f"unsupported timestamp value: {value!r}")


def _actor_from_row(row: Sequence[Any]) -> Actor:
    actor_id, name, gender, born = row
    return Actor(
        id=actor_id,
        name=name or "",
        gender=gender or "",
        date_of_birth=_to_datetime(born),
    )


def _film_from_row(row: Sequence[Any], list_actors: list[Actor] | None = None) -> Film:
    film_id, name, description, released, rating = row
    return Film(
        id=film_id,
        name=name or "",
        description=description or "",
        release_date=_to_datetime(released),
        rating=float(rating or 0.0),
        list_actors=list_actors,
    )


class Storage:
    """Data access for actors, films and users over a DB-API connection.

    ``paramstyle`` and ``returning`` default to what the connection's driver
    uses; ``returning`` selects ``INSERT ... RETURNING id`` over ``lastrowid``.
    """

    def __init__(
        self,
        connection: Any,
        *,
        paramstyle: str | None = None,
        returning: bool | None = None,
    ) -> None:
        driver = type(connection).__module__.partition(".")[0]
        default_style, default_returning = _DRIVER_DEFAULTS.get(driver, ("qmark", False))
        self.paramstyle = paramstyle or default_style
        if self.paramstyle not in _PARAMSTYLES:
            raise ValueError(f"unsupported paramstyle: {self.paramstyle!r}")
        self.returning = default_returning if returning is None else returning
        self._conn = connection
        self._db_error: type[BaseException] = getattr(connection, "Error", Exception)

    # -- low-level helpers -------------------------------------------------

    def _sql(self, query: str) -> str:
        if self.paramstyle == "qmark":
            return query
        if self.paramstyle in ("format", "pyformat"):
            return query.replace("?", "%s")
        numbers = itertools.count(1)
        return re.sub(r"\?", lambda _: f":{next(numbers)}", query)

    @contextmanager
    def _cursor(self) -> Iterator[Any]:
        cursor = self._conn.cursor()
        try:
            yield cursor
        finally:
            cursor.close()

    def _rollback(self) -> None:
        try:
            self._conn.rollback()
        except self._db_error:
            pass

    def _insert(self, cursor: Any, query: str, params: Sequence[Any]) -> int:
        if self.returning:
            cursor.execute(self._sql(query + " RETURNING id"), params)
            return cursor.fetchone()[0]
        cursor.execute(self._sql(query), params)
        return cursor.lastrowid

    def _write(self, op: str, query: str, params: Sequence[Any]) -> None:
        try:
            with self._cursor() as cursor:
                cursor.execute(self._sql(query), params)
            self._conn.commit()
        except self._db_error as exc:
            self._rollback()
            raise RepositoryError(f"{op}: {exc}") from exc

    def _rows(self, op: str, query: str, params: Sequence[Any] = ()) -> list[Sequence[Any]]:
        try:
            with self._cursor() as cursor:
                cursor.execute(self._sql(query), params)
                return list(cursor.fetchall())
        except self._db_error as exc:
            raise RepositoryError(f"{op}: {exc}") from exc

    def _exists(self, op: str, query: str, params: Sequence[Any]) -> bool:
        # The query result is not consulted: any successful lookup counts as
        # existing, which is what the services have always relied on.
        self._rows(op, query, params)
        return True

    # -- actors --------------------------------------------------------------

    def create_actor(self, actor: Actor) -> None:
        """Insert an actor and store the new id on it."""
        op = "storage.postgres.AddedInfoActor"
        try:
            with self._cursor() as cursor:
                new_id = self._insert(
                    cursor,
                    "INSERT INTO actors (name, gender, date_of_birth) VALUES (?, ?, ?)",
                    (actor.name, actor.gender, format_timestamp(actor.date_of_birth)),
                )
            self._conn.commit()
        except self._db_error as exc:
            self._rollback()
            raise RepositoryError(f"{op}: {exc}") from exc
        actor.id = new_id

    def update_actor(self, actor: Actor) -> None:
        self._write(
            "storage.postgres.ChangeInfoActor",
            "UPDATE actors SET name = ?, gender = ?, date_of_birth = ? WHERE id = ?",
            (actor.name, actor.gender, format_timestamp(actor.date_of_birth), actor.id),
        )

    def delete_actor(self, actor_id: int) -> None:
        self._write(
            "storage.postgres.DeleteInfoActor",
            "DELETE FROM actors WHERE id = ?",
            (actor_id,),
        )

    def actor_exists_by_id(self, actor_id: int) -> bool:
        """Run the existence check; True whenever the query succeeds."""
        return self._exists(
            "storage.postgres.ActorExistsById",
            "SELECT EXISTS(SELECT 1 FROM actors WHERE id = ?)",
            (actor_id,),
        )

    def actor_exists_by_name(self, name: str) -> bool:
        """Run the existence check; True whenever the query succeeds."""
        return self._exists(
            "storage.postgres.ActorExistsByName",
            "SELECT EXISTS(SELECT 1 FROM actors WHERE name = ?)",
            (name,),
        )

    def get_actors_with_films(self) -> dict[int, ActorWithFilms]:
        """Map each actor that appears in a film to that actor's films."""
        rows = self._rows(
            "storage.postgres.GetActorsWithFilms",
            """
            SELECT a.id, a.name, a.gender, a.date_of_birth,
                   f.id, f.name, f.description, f.release_date, f.rating
            FROM actors a
            JOIN actor_film af ON a.id = af.actor_id
            JOIN films f ON f.id = af.film_id""",
        )
        result: dict[int, ActorWithFilms] = {}
        for row in rows:
            actor = _actor_from_row(row[:4])
            entry = result.setdefault(actor.id, ActorWithFilms(actor=actor))
            entry.films.append(_film_from_row(row[4:9]))
        return result

    # -- users ---------------------------------------------------------------

    def create_user(self, user: User) -> None:
        """Insert a user and store the new id on it."""
        try:
            with self._cursor() as cursor:
                new_id = self._insert(
                    cursor,
                    "INSERT INTO users (name, password, role_id) VALUES (?, ?, ?)",
                    (user.username, user.password, user.role),
                )
            self._conn.commit()
        except self._db_error as exc:
            self._rollback()
            raise RepositoryError(str(exc)) from exc
        user.id = new_id

    def verify_user(self, username: str) -> User:
        """Look up a user by name; raise NotFoundError if there is none."""
        try:
            with self._cursor() as cursor:
                cursor.execute(
                    self._sql("SELECT id, name, password, role_id FROM users WHERE name = ?"),
                    (username,),
                )
                row = cursor.fetchone()
        except self._db_error as exc:
            raise RepositoryError(f"failed to query user: {exc}") from exc
        if row is None:
            raise NotFoundError(f"user not found: {NO_ROWS}")
        user_id, name, password, role = row
        return User(id=user_id, username=name, password=password or "", role=role or 0)

    # -- films ---------------------------------------------------------------

    def create_film(self, film: Film) -> None:
        """Insert a film and link its actors, creating unknown ones, in one transaction."""
        op = "storage.postgres.AddedInfoFilm"
        stage = "failed to insert film"
        try:
            with self._cursor() as cursor:
                film_id = self._insert(
                    cursor,
                    "INSERT INTO films (name, description, release_date, rating)"
                    " VALUES (?, ?, ?, ?)",
                    (
                        film.name,
                        film.description,
                        format_timestamp(film.release_date),
                        film.rating,
                    ),
                )
                for actor in film.list_actors or []:
                    stage = "failed to check actor existence"
                    cursor.execute(
                        self._sql("SELECT id FROM actors WHERE name = ?"), (actor.name,)
                    )
                    row = cursor.fetchone()
                    if row is None:
                        stage = "failed to insert actor"
                        actor_id = self._insert(
                            cursor,
                            "INSERT INTO actors (name, gender, date_of_birth) VALUES (?, ?, ?)",
                            (actor.name, actor.gender, format_timestamp(actor.date_of_birth)),
                        )
                    else:
                        actor_id = row[0]
                    stage = "failed to insert film-actor link"
                    cursor.execute(
                        self._sql("INSERT INTO actor_film (film_id, actor_id) VALUES (?, ?)"),
                        (film_id, actor_id),
                    )
            stage = "failed to commit transaction"
            self._conn.commit()
        except self._db_error as exc:
            self._rollback()
            raise RepositoryError(f"{op}: {stage}: {exc}") from exc

    def update_film(self, film: Film) -> None:
        self._write(
            "storage.postgres.ChangeInfoFilm",
            "UPDATE films SET name = ?, description = ?, release_date = ?, rating = ?"
            " WHERE id = ?",
            (
                film.name,
                film.description,
                format_timestamp(film.release_date),
                film.rating,
                film.id,
            ),
        )

    def delete_film(self, film_id: int) -> None:
        self._write(
            "storage.postgres.DeleteInfoFilm",
            "DELETE FROM films WHERE id = ?",
            (film_id,),
        )

    def get_all_films(self, sort_by: str) -> list[Film]:
        """List films that have actors, sorted by name, release date or rating."""
        order = _ORDER_CLAUSES.get(sort_by, _DEFAULT_ORDER)
        rows = self._rows(
            "storage.postgres.GetAllFilms",
            f"""
            SELECT f.id, f.name, f.description, f.release_date, f.rating,
                   a.id, a.name, a.gender, a.date_of_birth
            FROM films f
            JOIN actor_film af ON f.id = af.film_id
            JOIN actors a ON a.id = af.actor_id
            {order}""",
        )
        films: dict[int, Film] = {}
        for row in rows:
            film = films.setdefault(row[0], _film_from_row(row[:5], []))
            film.list_actors.append(_actor_from_row(row[5:9]))
        return list(films.values())

    def search_film(self, actor: str, film: str) -> Film:
        """Find a film by case-insensitive fragments of its name and an actor's name."""
        op = "storage.postgres.SearchFilm"
        rows = self._rows(
            op,
            """
            SELECT f.id, f.name, f.description, f.release_date, f.rating,
                   a.id, a.name, a.gender, a.date_of_birth
            FROM films f
            JOIN actor_film af ON f.id = af.film_id
            JOIN actors a ON af.actor_id = a.id
            WHERE LOWER(a.name) LIKE LOWER(?) AND LOWER(f.name) LIKE LOWER(?)
            ORDER BY f.id""",
            (f"%{actor}%", f"%{film}%"),
        )
        found = Film(list_actors=[])
        seen: set[int] = set()
        for row in rows:
            found = _film_from_row(row[:5], found.list_actors)
            current = _actor_from_row(row[5:9])
            if current.id not in seen:
                seen.add(current.id)
                found.list_actors.append(current)
        if found.id == 0:
            raise NotFoundError(NO_ROWS)
        return found

    def movie_exists_by_id(self, film_id: int) -> bool:
        """Run the existence check; True whenever the query succeeds."""
        return self._exists(
            "storage.postgres.ActorExistsById",
            "SELECT EXISTS(SELECT 1 FROM films WHERE id = ?)",
            (film_id,),
        )

    def movie_exists_by_name(self, name: str) -> bool:
        """Run the existence check; True whenever the query succeeds."""
        return self._exists(
            "storage.postgres.ActorExistsByName",
            "SELECT EXISTS(SELECT 1 FROM films WHERE name = ?)",
            (name,),
        )


@dataclass
class Repository:
    """The data-access objects used by the services."""

    authorization: Storage
    actor: Storage
    movie: Storage
    actor_movie: Storage


def new_repository(connection: Any) -> Repository:
    """Build a repository whose parts share one storage on ``connection``."""
    storage = Storage(connection)
    return Repository(
        authorization=storage,
        actor=storage,
        movie=storage,
        actor_movie=storage,
    )