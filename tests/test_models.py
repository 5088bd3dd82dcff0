from datetime import datetime, timedelta, timezone

import pytest

from filmlib.models import (
    Actor,
    ActorWithFilms,
    AuthResponse,
    Film,
    SignInRequest,
    SignUpRequest,
    UserResponse,
    ValidationError,
    format_timestamp,
    parse_timestamp,
    validate_film_search_params,
    validate_sort_film,
)

NOW = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)
BIRTH = "2004-04-10T21:12:05+03:00"


def make_actor(**changes):
    values = {"name": "name", "gender": "male", "date_of_birth": parse_timestamp(BIRTH)}
    values.update(changes)
    return Actor(**values)


@pytest.mark.parametrize(
    "text",
    [BIRTH, "2020-01-01T00:00:00.5Z", "1999-12-31T23:59:59-05:30", "0001-01-01T00:00:00Z"],
)
def test_timestamp_round_trip(text):
    assert format_timestamp(parse_timestamp(text)) == text


def test_parse_timestamp_keeps_offset():
    parsed = parse_timestamp(BIRTH)
    assert parsed.utcoffset() == timedelta(hours=3)
    assert parsed.hour == 21


@pytest.mark.parametrize("text", ["", "2004-04-10", "2004-13-10T21:12:05Z", "yesterday"])
def test_parse_timestamp_rejects_bad_text(text):
    with pytest.raises(ValueError):
        parse_timestamp(text)


def test_zero_film_serialises_like_source():
    assert Film().to_dict() == {
        "id": 0,
        "name": "",
        "description": "",
        "rating": 0,
        "release_date": "0001-01-01T00:00:00Z",
        "list_actors": None,
    }


def test_actor_dict_round_trip():
    data = {"id": 7, "name": "name", "gender": "male", "date_of_birth": BIRTH}
    assert Actor.from_dict(data).to_dict() == data


def test_actor_from_dict_matches_keys_case_insensitively():
    actor = Actor.from_dict({"Name": "name", "GENDER": "female"})
    assert actor.name == "name"
    assert actor.gender == "female"


@pytest.mark.parametrize(
    "data", [{"name": 5}, {"id": "1"}, {"id": 1.5}, {"date_of_birth": 3}, [1, 2], "text"]
)
def test_actor_from_dict_rejects_malformed_data(data):
    with pytest.raises(ValueError):
        Actor.from_dict(data)


@pytest.mark.parametrize(
    "changes, message",
    [
        ({"gender": ""}, "не указан пол"),
        ({"name": ""}, "имя актера не может быть пустым и не должно превышать 100 символов"),
        ({"gender": "other"}, "несуществующий пол"),
        (
            {"date_of_birth": NOW + timedelta(days=1)},
            "дата рождения не может быть в будущем",
        ),
        (
            {"date_of_birth": parse_timestamp("2025-04-10T21:12:05+03:00")},
            "актёр должен быть старше 5 лет",
        ),
    ],
)
def test_actor_validation_errors(changes, message):
    with pytest.raises(ValidationError) as excinfo:
        make_actor(**changes).validate(now=NOW)
    assert str(excinfo.value) == message


def test_actor_name_limit_counts_bytes():
    make_actor(name="a" * 100).validate(now=NOW)
    with pytest.raises(ValidationError):
        make_actor(name="a" * 101).validate(now=NOW)
    with pytest.raises(ValidationError):
        make_actor(name="я" * 60).validate(now=NOW)


def test_film_round_trip_with_cast():
    data = {
        "id": 3,
        "name": "name",
        "description": "description",
        "release_date": BIRTH,
        "rating": 9.3,
        "list_actors": [{"id": 1, "name": "name", "gender": "male", "date_of_birth": BIRTH}],
    }
    film = Film.from_dict(data)
    assert film.list_actors[0].name == "name"
    assert film.to_dict() == data


def test_film_without_cast_keeps_null():
    film = Film.from_dict({"name": "name", "rating": 9})
    assert film.list_actors is None
    assert film.to_dict()["list_actors"] is None
    assert film.rating == 9.0


def test_film_from_dict_rejects_bad_cast():
    with pytest.raises(ValueError):
        Film.from_dict({"list_actors": "nobody"})


@pytest.mark.parametrize(
    "film, message",
    [
        (Film(name=""), "название фильма должно быть от 1 до 150 символов"),
        (Film(name="n" * 151), "название фильма должно быть от 1 до 150 символов"),
        (Film(name="name", description="d" * 1001), "описание не должно превышать 1000 символов"),
        (Film(name="name", rating=10.5), "рейтинг должен быть от 0 до 10"),
        (Film(name="name", rating=-0.1), "рейтинг должен быть от 0 до 10"),
    ],
)
def test_film_validation_errors(film, message):
    with pytest.raises(ValidationError) as excinfo:
        film.validate()
    assert str(excinfo.value) == message


@pytest.mark.parametrize("sort_by", ["actor", "rating", "NAME"])
def test_validate_sort_film_rejects_unknown(sort_by):
    with pytest.raises(ValidationError) as excinfo:
        validate_sort_film(sort_by)
    assert str(excinfo.value) == "Некорректная сортировка"


@pytest.mark.parametrize(
    "film_name, actor_name, message",
    [
        ("", "", "необходимо указать либо название фильма, либо имя актёра"),
        ("f", "", "название фильма слишком короткое (мин. 2 символа)"),
        ("f" * 151, "", "название фильма слишком длинное (макс. 150 символов)"),
        ("", "a", "имя актёра слишком короткое (мин. 2 символа)"),
        ("Форсаж", "a" * 101, "имя актёра слишком длинное (макс. 100 символов)"),
    ],
)
def test_validate_film_search_params_errors(film_name, actor_name, message):
    with pytest.raises(ValidationError) as excinfo:
        validate_film_search_params(film_name, actor_name)
    assert str(excinfo.value) == message


def test_sign_up_request_from_dict():
    request = SignUpRequest.from_dict({"username": "username", "password": "password", "role": 1})
    assert (request.username, request.password, request.role) == ("username", "password", 1)
    assert SignUpRequest.from_dict({"username": "username"}).role == 0


def test_sign_in_request_rejects_non_string():
    assert SignInRequest.from_dict({"username": "username"}).password == ""
    with pytest.raises(ValueError):
        SignInRequest.from_dict({"username": 1})


def test_auth_response_to_dict():
    response = AuthResponse(access_token="", user=UserResponse(id=0, username="username", role=0))
    assert response.to_dict() == {
        "access_token": "",
        "user": {"id": 0, "username": "username", "role": 0},
    }


def test_actor_with_films_to_dict():
    actor = make_actor(id=4)
    films = [Film(id=1, name="one"), Film(id=2, name="two")]
    result = ActorWithFilms(actor=actor, films=films).to_dict()
    assert result["actor"] == actor.to_dict()
    assert [film["id"] for film in result["films"]] == [1, 2]