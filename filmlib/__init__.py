"""Film library WSGI application: actors, films, SQL storage and JWT-protected endpoints."""

__version__ = "1.0.0"