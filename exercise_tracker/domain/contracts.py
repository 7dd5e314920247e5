"""Domain-level inputs produced by the validation layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class NewExercise:
    """Validated inputs required to log an exercise for an existing user."""

    user_id: str
    description: str
    duration: int
    date: datetime


@dataclass(slots=True)
class LogQuery:
    """Normalised filters for an exercise log lookup."""

    date_from: datetime | None = None
    date_to: datetime | None = None
    limit: int | None = None
