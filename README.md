# filmlib

A WSGI application for a film library. It keeps actors and films in a SQL
database, links actors to the films they appear in, and guards most of its
endpoints with HMAC-signed JWT bearer tokens.

## Modules

- `filmlib.models`: the records `Actor`, `Film`, `ActorWithFilms`, `User`,
  `UserRole`, `SignUpRequest`, `SignInRequest`, `UserResponse`,
  `AuthResponse`, `TokenClaims` and `Permission`; the timestamp helpers
  `parse_timestamp` and `format_timestamp` (RFC 3339); and the validation
  rules `Actor.validate`, `Film.validate`, `validate_sort_film`,
  `validate_film_search_params` and `validate_get_actors`. Broken rules raise
  `ValidationError`.
- `filmlib.httpio`: `Request` and `Response`, plus `json_response`,
  `write_json_error` (a `{"message": ...}` body) and `text_error`.
- `filmlib.repository`: `Storage`, data access over any DB-API connection,
  and `new_repository(connection)`, which returns a `Repository` whose
  `authorization`, `actor`, `movie` and `actor_movie` parts share one
  `Storage`. Database failures raise `RepositoryError`; missing users and
  empty searches raise `NotFoundError`.
- `filmlib.service`: `ActorService`, `MovieService` and `ActorMovieService`,
  gathered with an authorization object in the `Service` dataclass. Failures
  raise `ServiceError`.
- `filmlib.middleware`: `require_auth(secret_key)`,
  `require_role(secret_key, required_role)` and `is_admin(request)`.
- `filmlib.actor_handlers`, `filmlib.movie_handlers`,
  `filmlib.actor_movie_handlers`, `filmlib.auth_handlers`: the handlers
  `ActorHandler`, `MovieHandler`, `ActorMovieHandler` and `AuthHandler`.
- `filmlib.router`: `Router` and `init_route(services, secret)`.
- `filmlib.config`: `load_config(path)` and `must_load(path)`.
- `filmlib.logsetup`: `setup_logger(env, stream)`, `PrettyFormatter` and
  `error_fields(err)`.

## Endpoints

`init_route` registers these paths:

| Method | Path                     | Token | Reply                                         |
|--------|--------------------------|-------|-----------------------------------------------|
| POST   | `/auth/sign_up`          | no    | 201, `{"token": ...}`                         |
| POST   | `/auth/sign_in`          | no    | 200, `{"access_token": ..., "user": {...}}`   |
| POST   | `/actor_create`          | yes   | 201, the actor                                |
| PUT    | `/actor_update`          | yes   | 201, the actor                                |
| DELETE | `/actor_delete/{id}`     | yes   | 200, `{"message": "actor deleted successfully"}` |
| POST   | `/film_create`           | yes   | 201, the film                                 |
| PUT    | `/film_update`           | yes   | 201, the film                                 |
| DELETE | `/film_delete/{id}`      | yes   | 200, `{"message": "movie deleted successfully"}` |
| GET    | `/films_get_list`        | yes   | 200, array of films                           |
| GET    | `/films/search`          | yes   | 200, a single film                            |
| GET    | `/get_list_actors_films` | yes   | 200, array of `{"actor": ..., "films": [...]}` |

Details worth knowing:

- A token is sent as `Authorization: Bearer token`. `require_auth` accepts
  HS256, HS384 and HS512 tokens that carry numeric `user_id` and `role`
  claims and puts both into `request.context`; otherwise it answers 401.
- The create, update and delete handlers answer 403
  `Forbidden: admin access required` when `is_admin(request)` is true, that
  is when the role in the request context is `1`.
- `/films_get_list` takes `sort_by`: `name`, `release_date`, or empty for
  rating, highest first. Any other value gives 400. Only films with at
  least one linked actor are listed.
- `/films/search` takes `actor` and/or `movie`; each given term must be
  2 to 150 (film) or 2 to 100 (actor) bytes. Matching is a case-insensitive
  substring match on both names, and the reply is one film with its
  matching actors.
- `Router` redirects (301) unclean paths and a path missing the trailing
  slash of a registered subtree, and answers `404 page not found` as plain
  text for unknown paths.

Errors come back as `{"message": "..."}` with the matching status code,
except a few method checks on the film handlers that reply in plain text.

## Validation rules

```python
from datetime import datetime, timezone

from filmlib.models import Actor, ValidationError, parse_timestamp, validate_sort_film

actor = Actor.from_dict(
    {"name": "name", "gender": "male", "date_of_birth": "2004-04-10T21:12:05+03:00"}
)
actor.validate(datetime.now(timezone.utc))   # passes

validate_sort_film("name")                   # passes
try:
    validate_sort_film("actor")
except ValidationError as err:
    print(err)                               # Некорректная сортировка

print(parse_timestamp("2004-04-10T21:12:05+03:00"))
```

An actor needs a gender of `male` or `female`, a name of 1 to 100 bytes in
UTF-8, and a birth date that is not in the future and whose year is at
least five years before the current one. A film needs a name of 1 to 150
bytes, a description of at most 1000 bytes and a rating from 0 to 10.

## Storage

`Storage` works with any DB-API connection. It writes `?` placeholders and
converts them for the connection's driver (qmark for `sqlite3`, pyformat for
`psycopg2`/`psycopg`/`pymysql`, format for `pg8000`); both can be set with
the `paramstyle` and `returning` keyword arguments. It expects these tables:

- `actors(id, name, gender, date_of_birth)`
- `films(id, name, description, release_date, rating)`
- `actor_film(film_id, actor_id)`
- `users(id, name, password, role_id)`

`create_film` inserts the film and links its actors in one transaction,
creating actors whose names are not stored yet. The `*_exists_by_*`
checks return `True` whenever their query succeeds.

## Serving

`Router` is a WSGI application, so any WSGI server can run it:

```python
import sqlite3
from wsgiref.simple_server import make_server

from filmlib.repository import new_repository
from filmlib.router import init_route
from filmlib.service import ActorMovieService, ActorService, MovieService, Service

repo = new_repository(sqlite3.connect("films.db", check_same_thread=False))
services = Service(
    authorization=None,                      # see "What is not included"
    actor=ActorService(repo.actor),
    movie=MovieService(repo.movie),
    actor_movie=ActorMovieService(repo.actor_movie),
)
app = init_route(services, "secret")         # secret defaults to $SECRET_KEY
with make_server("", 8080, app) as server:
    server.serve_forever()
```

## Configuration and logging

`load_config(path)` reads a YAML file (by default `./config/config.yaml`)
into a `Config` with `env`, `storage_path`, `http_server` (`address`,
`timeout`, `idle_timeout`, `user`, `password`) and `database` (`host`,
`port`, `user`, `password`, `dbname`). Durations are strings such as `4s`
or `1m30s`, or integers in nanoseconds. A missing or malformed file raises
`ConfigError`; `must_load(path)` logs it and exits with status 1.

```yaml
env: local
http_server:
  address: localhost:8080
  timeout: 4s
  idle_timeout: 60s
database:
  host: localhost
  port: "5432"
  user: user
  password: password
  dbname: films
```

`setup_logger(env, stream)` configures the `filmlib` logger: `local` gives
the coloured `PrettyFormatter` layout at DEBUG, `dev` JSON lines at DEBUG,
`prod` JSON lines at INFO; any other value raises `ValueError`. Extra
fields passed with `extra=`, for instance `extra=error_fields(err)`, are
printed with each record.

## What is not included

- There is no authorization service. `AuthHandler` calls
  `create_user(user)` returning a token string and
  `verify_user(username, password)` returning `(token, user)` on the object
  given as `Service.authorization`; the package issues no tokens and hashes
  no passwords, so sign-up and sign-in need such an object supplied.
- There is no command to start the server and no database setup: the
  tables above must already exist, and connecting to the database named in
  the configuration is left to the caller.
- No API documentation pages are served.