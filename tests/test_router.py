import io
import json

import jwt
import pytest

from filmlib.httpio import Request, json_response
from filmlib.models import Film, User
from filmlib.router import Router, init_route
from filmlib.service import Service

secret = "secret"

FILM_BODY = (
    '{"name": "Alpha", "description": "d", '
    '"release_date": "2004-04-10T21:12:05+03:00", "rating": 7}'
)


class FakeActors:
    def __init__(self):
        self.deleted = []

    def add_actor(self, actor):
        pass

    def update_actor(self, actor):
        pass

    def delete_actor(self, actor_id):
        self.deleted.append(actor_id)


class FakeMovies:
    def __init__(self):
        self.added = []
        self.films = []
        self.searches = []

    def add_movie(self, film):
        self.added.append(film)

    def update_movie(self, film):
        pass

    def delete_movie(self, film_id):
        pass

    def get_films(self, sort_by):
        return self.films

    def search_film(self, actor, film):
        self.searches.append((actor, film))
        return Film()


class FakeActorMovies:
    def get_all_actor_with_films(self):
        return {}


class FakeAuth:
    def create_user(self, user):
        return "token"

    def verify_user(self, username, password):
        return "token", User(id=1, username=username, role=2)


@pytest.fixture
def services():
    return Service(
        authorization=FakeAuth(),
        actor=FakeActors(),
        movie=FakeMovies(),
        actor_movie=FakeActorMovies(),
    )


@pytest.fixture
def router(services):
    return init_route(services, secret)


def bearer(role, user_id=7):
    encoded = jwt.encode({"user_id": user_id, "role": role}, secret, algorithm="HS256")
    return {"Authorization": "Bearer " + encoded}


def test_protected_route_requires_token(router):
    resp = router.handle(Request("GET", "/films_get_list"))
    assert resp.status == 401
    assert resp.json() == {"message": "Unauthorized"}


def test_protected_route_rejects_bad_token(router):
    resp = router.handle(
        Request("GET", "/films_get_list", headers={"Authorization": "Bearer token"})
    )
    assert resp.status == 401
    assert resp.json() == {"message": "Invalid token"}


def test_film_list_with_valid_token(router, services):
    film = Film(id=3, name="Alpha", list_actors=[])
    services.movie.films = [film]
    resp = router.handle(Request("GET", "/films_get_list?sort_by=name", headers=bearer(2)))
    assert resp.status == 200
    assert resp.json() == [film.to_dict()]


def test_film_create_forbidden_for_role_one(router, services):
    resp = router.handle(Request("POST", "/film_create", headers=bearer(1), body=FILM_BODY))
    assert resp.status == 403
    assert resp.json() == {"message": "Forbidden: admin access required"}
    assert services.movie.added == []


def test_film_create_for_admin(router, services):
    resp = router.handle(Request("POST", "/film_create", headers=bearer(2), body=FILM_BODY))
    assert resp.status == 201
    assert [film.name for film in services.movie.added] == ["Alpha"]
    assert resp.json()["name"] == "Alpha"


def test_actor_delete_subtree(router, services):
    resp = router.handle(Request("DELETE", "/actor_delete/5", headers=bearer(2)))
    assert resp.status == 200
    assert resp.json() == {"message": "actor deleted successfully"}
    assert services.actor.deleted == [5]


def test_missing_trailing_slash_redirects(router):
    resp = router.handle(Request("DELETE", "/actor_delete", headers=bearer(2)))
    assert resp.status == 301
    assert resp.headers["Location"] == "/actor_delete/"


def test_unclean_path_redirects_with_query(router):
    resp = router.handle(Request("GET", "/films//search", query="movie=xy"))
    assert resp.status == 301
    assert resp.headers["Location"] == "/films/search?movie=xy"


def test_unknown_path_is_not_found(router):
    resp = router.handle(Request("GET", "/nowhere"))
    assert resp.status == 404
    assert resp.body == b"404 page not found\n"


def test_sign_up_is_public(router):
    body = '{"username": "user", "password": "password", "role": 1}'
    resp = router.handle(Request("POST", "/auth/sign_up", body=body))
    assert resp.status == 201
    assert resp.json() == {"token": "token"}


def test_search_route_passes_terms(router, services):
    resp = router.handle(
        Request("GET", "/films/search?actor=Vin&movie=Fast", headers=bearer(2))
    )
    assert resp.status == 200
    assert services.movie.searches == [("Vin", "Fast")]


def test_secret_taken_from_environment(services, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", secret)
    env_router = init_route(services)
    resp = env_router.handle(Request("GET", "/get_list_actors_films", headers=bearer(2)))
    assert resp.status == 200
    assert resp.json() == []


def test_add_rejects_duplicates_and_bad_patterns():
    router = Router()
    router.add("/x", lambda request: json_response({}))
    with pytest.raises(ValueError):
        router.add("/x", lambda request: json_response({}))
    with pytest.raises(ValueError):
        router.add("relative", lambda request: json_response({}))


def test_longest_subtree_wins():
    router = Router()
    router.add("/a/", lambda request: json_response({"which": "short"}))
    router.add("/a/b/", lambda request: json_response({"which": "long"}))
    assert router.handle(Request("GET", "/a/b/c")).json() == {"which": "long"}
    assert router.handle(Request("GET", "/a/c")).json() == {"which": "short"}


def test_wsgi_application(router, services):
    captured = {}

    def start_response(status, headers):
        captured["status"] = status
        captured["headers"] = dict(headers)

    body = FILM_BODY.encode("utf-8")
    environ = {
        "REQUEST_METHOD": "POST",
        "PATH_INFO": "/film_create",
        "QUERY_STRING": "",
        "CONTENT_TYPE": "application/json",
        "CONTENT_LENGTH": str(len(body)),
        "HTTP_AUTHORIZATION": bearer(2)["Authorization"],
        "wsgi.input": io.BytesIO(body),
    }
    chunks = router(environ, start_response)
    assert captured["status"].split()[0] == "201"
    assert captured["headers"]["Content-Type"] == "application/json"
    assert json.loads(b"".join(chunks))["name"] == "Alpha"
    assert [film.name for film in services.movie.added] == ["Alpha"]