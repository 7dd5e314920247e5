"""MongoDB repository for users and their exercise entries."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from pymongo import ASCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from .domain.contracts import LogQuery, NewExercise
from .domain.errors import DuplicateError, StoreError
from .domain.records import Exercise, User


def build_log_filter(user_id: str, query: LogQuery) -> dict[str, Any]:
    """Translate log filters into a MongoDB query document."""
    filters: dict[str, Any] = {"userId": ObjectId(user_id)}
    date_filter: dict[str, datetime] = {}
    if query.date_from is not None:
        date_filter["$gte"] = query.date_from
    if query.date_to is not None:
        date_filter["$lte"] = query.date_to
    if date_filter:
        filters["date"] = date_filter
    return filters


class MongoRecordStore:
    """Document-store persistence for the ``users`` and ``exercises`` collections."""

    def __init__(self, database: Database) -> None:
        """Bind the collections used for all store interactions."""
        self._users = database["users"]
        self._exercises = database["exercises"]

    def ensure_indexes(self) -> None:
        """Create the unique username index and the log lookup index."""
        try:
            self._users.create_index([("username", ASCENDING)], unique=True)
            self._exercises.create_index([("userId", ASCENDING), ("date", ASCENDING)])
        except PyMongoError as exc:
            raise StoreError() from exc

    def create_user(self, username: str) -> User:
        """Insert a user document and return the stored record."""
        document = {"username": username}
        try:
            result = self._users.insert_one(document)
        except DuplicateKeyError as exc:
            raise DuplicateError("Username already exists") from exc
        except PyMongoError as exc:
            raise StoreError() from exc
        return User(user_id=str(result.inserted_id), username=username)

    def list_users(self) -> list[User]:
        """Return every user ordered by insertion."""
        try:
            cursor = self._users.find({}, {"username": 1}).sort("_id", ASCENDING)
            return [self._map_user(document) for document in cursor]
        except PyMongoError as exc:
            raise StoreError() from exc

    def find_user_by_id(self, user_id: str) -> User | None:
        """Fetch a user or return ``None`` when absent or the id is malformed."""
        if not ObjectId.is_valid(user_id):
            return None
        try:
            document = self._users.find_one({"_id": ObjectId(user_id)})
        except PyMongoError as exc:
            raise StoreError() from exc
        if document is None:
            return None
        return self._map_user(document)

    def create_exercise(self, payload: NewExercise) -> Exercise:
        """Persist an exercise for an already verified user."""
        document = {
            "userId": ObjectId(payload.user_id),
            "description": payload.description,
            "duration": payload.duration,
            "date": payload.date,
        }
        try:
            result = self._exercises.insert_one(document)
        except (PyMongoError, OverflowError) as exc:
            raise StoreError() from exc
        document["_id"] = result.inserted_id
        return self._map_exercise(document)

    def query_exercises(self, user_id: str, query: LogQuery) -> list[Exercise]:
        """Return a user's exercises sorted by date with inclusive bounds applied."""
        try:
            cursor = self._exercises.find(build_log_filter(user_id, query)).sort(
                [("date", ASCENDING), ("_id", ASCENDING)]
            )
            if query.limit:
                cursor = cursor.limit(query.limit)
            return [self._map_exercise(document) for document in cursor]
        except PyMongoError as exc:
            raise StoreError() from exc

    def _map_user(self, document: dict[str, Any]) -> User:
        return User(user_id=str(document["_id"]), username=document["username"])

    def _map_exercise(self, document: dict[str, Any]) -> Exercise:
        """Convert a raw exercise document into the domain ``Exercise`` dataclass."""
        stored_date: datetime = document["date"]
        if stored_date.tzinfo is None:
            # BSON dates are UTC; clients without tz_aware hand back naive values.
            stored_date = stored_date.replace(tzinfo=timezone.utc)
        return Exercise(
            exercise_id=str(document["_id"]),
            user_id=str(document["userId"]),
            description=document["description"],
            duration=document["duration"],
            date=stored_date,
        )
