import sqlite3
from datetime import datetime, timezone

import pytest

from filmlib.models import Actor, ActorWithFilms, Film
from filmlib.repository import NO_ROWS, NotFoundError, RepositoryError, new_repository
from filmlib.service import (
    ActorMovieService,
    ActorService,
    MovieService,
    Service,
    ServiceError,
)

BORN = datetime(2004, 4, 10, tzinfo=timezone.utc)

SCHEMA = """
CREATE TABLE actors (id INTEGER PRIMARY KEY, name TEXT, gender TEXT, date_of_birth TEXT);
CREATE TABLE films (id INTEGER PRIMARY KEY, name TEXT, description TEXT,
                    release_date TEXT, rating REAL);
CREATE TABLE actor_film (film_id INTEGER, actor_id INTEGER);
CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, password TEXT, role_id INTEGER);
"""


@pytest.fixture
def connection():
    conn = sqlite3.connect(":memory:")
    conn.executescript(SCHEMA)
    yield conn
    conn.close()


class FakeStore:
    def __init__(self, exists=True, check_error=None, write_error=None, data=None):
        self.exists = exists
        self.check_error = check_error
        self.write_error = write_error
        self.data = data
        self.calls = []

    def _check(self, key):
        self.calls.append(("check", key))
        if self.check_error is not None:
            raise self.check_error
        return self.exists

    def _write(self, kind, value):
        if self.write_error is not None:
            raise self.write_error
        self.calls.append((kind, value))

    actor_exists_by_id = _check
    actor_exists_by_name = _check
    movie_exists_by_id = _check
    movie_exists_by_name = _check

    def create_actor(self, actor):
        self._write("create", actor)

    def update_actor(self, actor):
        self._write("update", actor)

    def delete_actor(self, actor_id):
        self._write("delete", actor_id)

    def create_film(self, film):
        self._write("create", film)

    def update_film(self, film):
        self._write("update", film)

    def delete_film(self, film_id):
        self._write("delete", film_id)

    def _read(self):
        if self.check_error is not None:
            raise self.check_error
        return self.data

    def get_all_films(self, sort_by):
        self.calls.append(("list", sort_by))
        return self._read()

    def search_film(self, actor, film):
        self.calls.append(("search", (actor, film)))
        return self._read()

    def get_actors_with_films(self):
        return self._read()


def writes(store):
    return [call for call in store.calls if call[0] != "check"]


def test_add_actor_missing_actor_is_rejected():
    store = FakeStore(exists=False)
    with pytest.raises(ServiceError, match="^актёр не найден$"):
        ActorService(store).add_actor(Actor(name="Ann", gender="female", date_of_birth=BORN))
    assert writes(store) == []


def test_add_actor_wraps_check_error():
    cause = RepositoryError("boom")
    store = FakeStore(check_error=cause)
    with pytest.raises(ServiceError) as info:
        ActorService(store).add_actor(Actor(name="Ann"))
    assert str(info.value) == "ошибка проверки актёра: boom"
    assert info.value.__cause__ is cause


def test_add_actor_stores_copy(connection):
    repo = new_repository(connection)
    actor = Actor(name="Ann", gender="female", date_of_birth=BORN)
    ActorService(repo.actor).add_actor(actor)
    assert actor.id == 0
    rows = connection.execute("SELECT name, gender FROM actors").fetchall()
    assert rows == [("Ann", "female")]


def test_update_actor_validates():
    store = FakeStore()
    actor = Actor(id=3, name="Ann", gender="", date_of_birth=BORN)
    with pytest.raises(ServiceError) as info:
        ActorService(store).update_actor(actor)
    assert str(info.value) == "ошибка валидации актёра: не указан пол"
    assert writes(store) == []


def test_update_actor_missing():
    store = FakeStore(exists=False)
    with pytest.raises(ServiceError, match="актёр не найден"):
        ActorService(store).update_actor(Actor(id=3, name="Ann", gender="male", date_of_birth=BORN))
    assert store.calls == [("check", 3)]


def test_update_actor_saves():
    store = FakeStore()
    actor = Actor(id=3, name="Ann", gender="female", date_of_birth=BORN)
    ActorService(store).update_actor(actor)
    assert writes(store) == [("update", actor)]


def test_delete_actor_passes_errors_through():
    cause = RepositoryError("gone")
    store = FakeStore(write_error=cause)
    with pytest.raises(RepositoryError) as info:
        ActorService(store).delete_actor(5)
    assert info.value is cause


def test_delete_actor_calls_repository():
    store = FakeStore()
    ActorService(store).delete_actor(5)
    assert store.calls == [("delete", 5)]


def test_add_movie_missing_is_rejected():
    store = FakeStore(exists=False)
    with pytest.raises(ServiceError, match="^Фильм не найден$"):
        MovieService(store).add_movie(Film(name="Heat"))
    assert writes(store) == []


def test_update_movie_wraps_check_error():
    store = FakeStore(check_error=RepositoryError("down"))
    with pytest.raises(ServiceError) as info:
        MovieService(store).update_movie(Film(id=2, name="Heat"))
    assert str(info.value) == "Ошибка проверки фильма: down"


def test_delete_movie_checks_then_deletes():
    store = FakeStore()
    MovieService(store).delete_movie(9)
    assert store.calls == [("check", 9), ("delete", 9)]


def test_delete_movie_missing_does_not_delete():
    store = FakeStore(exists=False)
    with pytest.raises(ServiceError, match="Фильм не найден"):
        MovieService(store).delete_movie(9)
    assert writes(store) == []


def test_get_films_empty_returns_empty_list():
    store = FakeStore(data=None)
    assert MovieService(store).get_films("name") == []
    assert store.calls == [("list", "name")]


def test_get_films_wraps_error():
    store = FakeStore(check_error=RepositoryError("bad"))
    with pytest.raises(ServiceError) as info:
        MovieService(store).get_films("")
    assert str(info.value) == "failed to get actors: bad"


def test_search_film_without_cast_returns_empty_film():
    store = FakeStore(data=Film(id=4, name="Heat", list_actors=[]))
    assert MovieService(store).search_film("Al", "Heat") == Film()


def test_search_film_not_found_message():
    store = FakeStore(check_error=NotFoundError(NO_ROWS))
    with pytest.raises(ServiceError) as info:
        MovieService(store).search_film("Дизель", "Форсаж")
    assert str(info.value) == "ошибка поиска: sql: no rows in result set"


def test_movies_round_trip_through_storage(connection):
    repo = new_repository(connection)
    service = MovieService(repo.movie)
    cast = [Actor(name="Ann", gender="female", date_of_birth=BORN)]
    film = Film(name="Heat", description="crime", release_date=BORN, rating=8.5, list_actors=cast)
    service.add_movie(film)

    films = service.get_films("name")
    assert [f.name for f in films] == ["Heat"]
    assert [a.name for a in films[0].list_actors] == ["Ann"]

    found = service.search_film("an", "HEA")
    assert found.name == "Heat"
    assert [a.name for a in found.list_actors] == ["Ann"]


def test_actor_movie_wraps_error():
    store = FakeStore(check_error=RepositoryError("oops"))
    with pytest.raises(ServiceError) as info:
        ActorMovieService(store).get_all_actor_with_films()
    assert str(info.value) == "Ошибка получения списка всех актеров: oops"


def test_actor_movie_empty_and_full():
    assert ActorMovieService(FakeStore(data={})).get_all_actor_with_films() == {}
    data = {1: ActorWithFilms(actor=Actor(id=1, name="Ann"), films=[Film(id=2)])}
    assert ActorMovieService(FakeStore(data=data)).get_all_actor_with_films() == data


def test_service_holds_parts():
    actors = ActorService(FakeStore())
    services = Service(actor=actors)
    assert services.actor is actors
    assert services.movie is None