"""Domain models for actors, films and users, with their validation rules."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Optional

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_TIMESTAMP = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})"
)


class ValidationError(Exception):
    """Raised when an entity or a request parameter breaks a business rule."""


def parse_timestamp(text: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware datetime."""
    match = _TIMESTAMP.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid RFC 3339 timestamp: {text!r}")
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    if zone == "Z":
        tz = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        hours, minutes = int(zone[1:3]), int(zone[4:6])
        if hours > 23 or minutes > 59:
            raise ValueError(f"invalid time zone offset: {zone!r}")
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))
    microsecond = int((fraction or "").ljust(6, "0")[:6])
    return datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second),
        microsecond, tzinfo=tz,
    )


def format_timestamp(value: datetime) -> str:
    """Format a datetime as RFC 3339 with trailing fractional zeros trimmed."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    fraction = f"{value.microsecond:06d}".rstrip("0")
    if fraction:
        text += "." + fraction
    offset = value.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        return text + "Z"
    sign = "-" if offset < timedelta(0) else "+"
    total_minutes = abs(int(offset.total_seconds())) // 60
    hours, minutes = divmod(total_minutes, 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _object(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError("expected a JSON object")
    return data


def _lookup(data: Mapping[str, Any], key: str) -> Any:
    if key in data:
        return data[key]
    folded = key.casefold()
    for name, value in data.items():
        if isinstance(name, str) and name.casefold() == folded:
            return value
    return None


def _string(data: Mapping[str, Any], key: str) -> str:
    value = _lookup(data, key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


def _integer(data: Mapping[str, Any], key: str) -> int:
    value = _lookup(data, key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r} must be an integer")
    return value


def _number(data: Mapping[str, Any], key: str) -> float:
    value = _lookup(data, key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"field {key!r} must be a number")
    return float(value)


def _timestamp(data: Mapping[str, Any], key: str) -> datetime:
    value = _lookup(data, key)
    if value is None:
        return ZERO_TIME
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a timestamp string")
    return parse_timestamp(value)


def _byte_length(text: str) -> int:
    return len(text.encode("utf-8"))


@dataclass
class Actor:
    """An actor known to the library."""

    id: int = 0
    name: str = ""
    gender: str = ""
    date_of_birth: datetime = ZERO_TIME

    def validate(self, now: datetime | None = None) -> None:
        """Raise ValidationError if the actor's data is not acceptable."""
        if not self.gender:
            raise ValidationError("не указан пол")
        if not self.name or _byte_length(self.name) > 100:
            raise ValidationError(
                "имя актера не может быть пустым и не должно превышать 100 символов"
            )
        if self.gender not in ("male", "female"):
            raise ValidationError("несуществующий пол")
        current = _as_aware(now) if now is not None else datetime.now(timezone.utc).astimezone()
        born = _as_aware(self.date_of_birth)
        if born > current:
            raise ValidationError("дата рождения не может быть в будущем")
        if current.year - born.year < 5:
            raise ValidationError("актёр должен быть старше 5 лет")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "gender": self.gender,
            "date_of_birth": format_timestamp(self.date_of_birth),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Actor:
        """Build an actor from decoded JSON; raise ValueError on malformed data."""
        data = _object(data)
        return cls(
            id=_integer(data, "id"),
            name=_string(data, "name"),
            gender=_string(data, "gender"),
            date_of_birth=_timestamp(data, "date_of_birth"),
        )


@dataclass
class Film:
    """A film with its cast."""

    id: int = 0
    name: str = ""
    description: str = ""
    release_date: datetime = ZERO_TIME
    rating: float = 0.0
    list_actors: list[Actor] | None = None

    def validate(self) -> None:
        """Raise ValidationError if the film's data is not acceptable."""
        if not self.name or _byte_length(self.name) > 150:
            raise ValidationError("название фильма должно быть от 1 до 150 символов")
        if _byte_length(self.description) > 1000:
            raise ValidationError("описание не должно превышать 1000 символов")
        if self.rating < 0 or self.rating > 10:
            raise ValidationError("рейтинг должен быть от 0 до 10")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "release_date": format_timestamp(self.release_date),
            "rating": self.rating,
            "list_actors": (
                None if self.list_actors is None
                else [actor.to_dict() for actor in self.list_actors]
            ),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Film:
        """Build a film from decoded JSON; raise ValueError on malformed data."""
        data = _object(data)
        raw_actors = _lookup(data, "list_actors")
        if raw_actors is None:
            actors = None
        elif isinstance(raw_actors, list):
            actors = [Actor.from_dict(item) for item in raw_actors]
        else:
            raise ValueError("field 'list_actors' must be an array")
        return cls(
            id=_integer(data, "id"),
            name=_string(data, "name"),
            description=_string(data, "description"),
            release_date=_timestamp(data, "release_date"),
            rating=_number(data, "rating"),
            list_actors=actors,
        )


@dataclass
class ActorWithFilms:
    """An actor together with the films they appear in."""

    actor: Actor = field(default_factory=Actor)
    films: list[Film] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "actor": self.actor.to_dict(),
            "films": [film.to_dict() for film in self.films],
        }


class UserRole(enum.IntEnum):
    """Kinds of user account."""

    USER = 1
    ADMIN = 2


@dataclass
class User:
    """A stored user account."""

    id: int = 0
    username: str = ""
    password: str = field(default="", repr=False)
    role: int = 0


@dataclass
class SignUpRequest:
    """Body of a registration request."""

    username: str = ""
    password: str = field(default="", repr=False)
    role: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> SignUpRequest:
        data = _object(data)
        return cls(
            username=_string(data, "username"),
            password=_string(data, "password"),
            role=_integer(data, "role"),
        )


@dataclass
class SignInRequest:
    """Body of a login request."""

    username: str = ""
    password: str = field(default="", repr=False)

    @classmethod
    def from_dict(cls, data: Any) -> SignInRequest:
        data = _object(data)
        return cls(
            username=_string(data, "username"),
            password=_string(data, "password"),
        )


@dataclass
class UserResponse:
    """Public view of a user."""

    id: int = 0
    username: str = ""
    role: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "username": self.username, "role": self.role}


@dataclass
class AuthResponse:
    """Result of a successful login."""

    access_token: str = ""
    user: UserResponse = field(default_factory=UserResponse)

    def to_dict(self) -> dict[str, Any]:
        return {"access_token": self.access_token, "user": self.user.to_dict()}


@dataclass
class TokenClaims:
    """Claims carried in an access token."""

    user_id: int = 0
    role: int = 0
    expires_at: datetime | None = None
    issued_at: datetime | None = None


@dataclass
class Permission:
    """Actions allowed on a resource."""

    resource: str = ""
    actions: list[str] = field(default_factory=list)


def validate_sort_film(sort_by: str) -> None:
    """Accept only the supported sort fields or an empty value."""
    if sort_by not in ("name", "release_date", ""):
        raise ValidationError("Некорректная сортировка")


def validate_film_search_params(film_name: str, actor_name: str) -> None:
    """Check the film and actor search terms."""
    if not film_name and not actor_name:
        raise ValidationError("необходимо указать либо название фильма, либо имя актёра")
    if film_name:
        if _byte_length(film_name) > 150:
            raise ValidationError("название фильма слишком длинное (макс. 150 символов)")
        if _byte_length(film_name) < 2:
            raise ValidationError("название фильма слишком короткое (мин. 2 символа)")
    if actor_name:
        if _byte_length(actor_name) > 100:
            raise ValidationError("имя актёра слишком длинное (макс. 100 символов)")
        if _byte_length(actor_name) < 2:
            raise ValidationError("имя актёра слишком короткое (мин. 2 символа)")


# Each rule returns an error message, or None when it is satisfied.
# Listing actors currently has no rules.
_GET_ACTORS_RULES: tuple[Callable[[], Optional[str]], ...] = ()


def validate_get_actors() -> None:
    """Apply the rules for listing actors; raise ValidationError on the first failure."""
    for rule in _GET_ACTORS_RULES:
        message = rule()
        if message:
            raise ValidationError(message)