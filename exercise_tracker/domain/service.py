"""Exercise tracker workflows over an injected record store."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from .contracts import LogQuery, NewExercise
from .errors import NotFoundError
from .records import Exercise, User
from .validation import parse_log_query, require_username, validate_exercise

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Persistence operations required by :class:`TrackerService`."""

    def create_user(self, username: str) -> User: ...

    def list_users(self) -> list[User]: ...

    def find_user_by_id(self, user_id: str) -> User | None: ...

    def create_exercise(self, payload: NewExercise) -> Exercise: ...

    def query_exercises(self, user_id: str, query: LogQuery) -> list[Exercise]: ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TrackerService:
    """User registration and exercise logging backed by a record store."""

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] | None = None) -> None:
        """Store dependencies used to validate and persist requests."""
        self._store = store
        self._clock = clock or _utc_now

    def create_user(self, username: Any) -> User:
        """Register a username; duplicates surface as ``DuplicateError``."""
        user = self._store.create_user(require_username(username))
        logger.info("created user %s (%s)", user.user_id, user.username)
        return user

    def list_users(self) -> list[User]:
        return self._store.list_users()

    def add_exercise(
        self,
        user_id: str,
        description: Any,
        duration: Any,
        date_value: Any = None,
    ) -> tuple[User, Exercise]:
        """Log an exercise for an existing user.

        The user is resolved before the payload is validated, so an unknown
        user is reported as not found whatever the body contains.
        """
        user = self._require_user(user_id)
        payload = validate_exercise(user.user_id, description, duration, date_value, self._clock())
        exercise = self._store.create_exercise(payload)
        logger.info("logged exercise %s for user %s", exercise.exercise_id, user.user_id)
        return user, exercise

    def get_log(
        self,
        user_id: str,
        date_from: str | None = None,
        date_to: str | None = None,
        limit: str | None = None,
    ) -> tuple[User, list[Exercise]]:
        """Return the user and their exercises filtered by date range and limit."""
        user = self._require_user(user_id)
        query = parse_log_query(date_from, date_to, limit)
        return user, self._store.query_exercises(user.user_id, query)

    def _require_user(self, user_id: str) -> User:
        user = self._store.find_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user
