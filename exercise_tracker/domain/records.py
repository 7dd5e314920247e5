from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class User:
    """A registered username."""

    user_id: str
    username: str


@dataclass(slots=True)
class Exercise:
    """A single logged exercise owned by a user."""

    exercise_id: str
    user_id: str
    description: str
    duration: int
    date: datetime
