"""URL routing for the film library API, usable as a WSGI application."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable
from http import HTTPStatus
from typing import Any

from filmlib.actor_handlers import ActorHandler
from filmlib.actor_movie_handlers import ActorMovieHandler
from filmlib.auth_handlers import AuthHandler
from filmlib.httpio import Request, Response, text_error
from filmlib.middleware import require_auth
from filmlib.movie_handlers import MovieHandler
from filmlib.service import Service

Handler = Callable[[Request], Response]


def _clean_path(path: str) -> str:
    """Resolve '.', '..' and repeated slashes, keeping a trailing slash."""
    if not path:
        return "/"
    if not path.startswith("/"):
        path = "/" + path
    segments: list[str] = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if segments:
                segments.pop()
            continue
        segments.append(segment)
    cleaned = "/" + "/".join(segments)
    if path.endswith("/") and cleaned != "/":
        cleaned += "/"
    return cleaned


def _redirect(path: str, query: str) -> Response:
    location = f"{path}?{query}" if query else path
    return Response(
        status=HTTPStatus.MOVED_PERMANENTLY,
        headers={"Location": location, "Content-Type": "text/html; charset=utf-8"},
        body=f'<a href="{location}">Moved Permanently</a>.\n\n'.encode("utf-8"),
    )


class Router:
    """Dispatches requests by path.

    A pattern ending in '/' matches every path below it; any other pattern
    matches only itself. Exact patterns win, then the longest subtree.
    """

    def __init__(self) -> None:
        self._exact: dict[str, Handler] = {}
        self._subtrees: dict[str, Handler] = {}

    def add(self, pattern: str, handler: Handler) -> None:
        """Register ``handler`` for ``pattern``; raise ValueError on a bad or repeated one."""
        if not pattern or not pattern.startswith("/"):
            raise ValueError(f"invalid pattern: {pattern!r}")
        if handler is None:
            raise ValueError("nil handler")
        table = self._subtrees if pattern.endswith("/") else self._exact
        if pattern in table:
            raise ValueError(f"multiple registrations for {pattern}")
        table[pattern] = handler

    def _match(self, path: str) -> Handler | None:
        handler = self._exact.get(path)
        if handler is not None:
            return handler
        prefixes = [pattern for pattern in self._subtrees if path.startswith(pattern)]
        if not prefixes:
            return None
        return self._subtrees[max(prefixes, key=len)]

    def handle(self, request: Request) -> Response:
        """Send ``request`` to its handler, redirecting to canonical paths."""
        cleaned = _clean_path(request.path)
        if cleaned != request.path:
            return _redirect(cleaned, request.query)
        handler = self._match(request.path)
        if handler is None:
            if request.path + "/" in self._subtrees:
                return _redirect(request.path + "/", request.query)
            return text_error("404 page not found", HTTPStatus.NOT_FOUND)
        return handler(request)

    def __call__(
        self, environ: dict[str, Any], start_response: Callable[..., Any]
    ) -> Iterable[bytes]:
        headers = {
            key[5:].replace("_", "-").title(): value
            for key, value in environ.items()
            if key.startswith("HTTP_")
        }
        if environ.get("CONTENT_TYPE"):
            headers["Content-Type"] = environ["CONTENT_TYPE"]
        if environ.get("CONTENT_LENGTH"):
            headers["Content-Length"] = environ["CONTENT_LENGTH"]
        try:
            length = int(environ.get("CONTENT_LENGTH") or 0)
        except ValueError:
            length = 0
        stream = environ.get("wsgi.input")
        body = stream.read(length) if stream is not None and length > 0 else b""
        raw_path = environ.get("PATH_INFO", "") or ""
        path = raw_path.encode("latin-1").decode("utf-8", "replace")
        request = Request(
            method=environ.get("REQUEST_METHOD", "GET"),
            path=path,
            headers=headers,
            body=body,
            query=environ.get("QUERY_STRING", "") or "",
        )
        response = self.handle(request)
        try:
            phrase = HTTPStatus(response.status).phrase
        except ValueError:
            phrase = "Unknown"
        start_response(f"{int(response.status)} {phrase}", list(response.headers.items()))
        return [response.body]


def init_route(services: Service, secret: bytes | str | None = None) -> Router:
    """Build the API router; the token secret defaults to $SECRET_KEY."""
    if secret is None:
        secret = os.environ.get("SECRET_KEY", "")
    auth = require_auth(secret)

    actor_handler = ActorHandler(services.actor)
    movie_handler = MovieHandler(services.movie)
    actor_movie_handler = ActorMovieHandler(services.actor_movie)
    auth_handler = AuthHandler(services.authorization)

    router = Router()

    router.add("/actor_create", auth(actor_handler.handle_actor_post))
    router.add("/actor_update", auth(actor_handler.handle_actor_put))
    router.add("/actor_delete/", auth(actor_handler.handle_actor_delete))

    router.add("/film_create", auth(movie_handler.handle_movie_post))
    router.add("/film_update", auth(movie_handler.handle_movie_put))
    router.add("/film_delete/", auth(movie_handler.handle_movie_delete))
    router.add("/films_get_list", auth(movie_handler.get_all_films))
    router.add("/films/search", auth(movie_handler.search_film))

    router.add("/get_list_actors_films", auth(actor_movie_handler.handle_actor_movie_get))

    router.add("/auth/sign_up", auth_handler.handle_auth_post)
    router.add("/auth/sign_in", auth_handler.handle_auth_post)

    return router