"""HTTP route definitions for the exercise tracker."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from ..domain.records import Exercise, User
from ..domain.service import TrackerService
from ..domain.validation import format_date
from .body import parsed_body

router = APIRouter(prefix="/api")


class HealthResponse(BaseModel):
    status: str


class CreateUserRequest(BaseModel):
    """Payload accepted when registering a username."""

    username: Any = None


class UserResponse(BaseModel):
    """Serialised representation of a `User` record."""

    username: str
    id: str

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(username=user.username, id=user.user_id)


class AddExerciseRequest(BaseModel):
    """Raw add-exercise fields; typed checks run after the user lookup."""

    description: Any = None
    duration: Any = None
    date: Any = None


class ExerciseResponse(BaseModel):
    """Logged exercise echoed back with the owning user's id."""

    username: str
    description: str
    duration: int
    date: str
    id: str

    @classmethod
    def from_domain(cls, user: User, exercise: Exercise) -> "ExerciseResponse":
        return cls(
            username=user.username,
            description=exercise.description,
            duration=exercise.duration,
            date=format_date(exercise.date),
            id=user.user_id,
        )


class LogEntry(BaseModel):
    description: str
    duration: int
    date: str


class LogResponse(BaseModel):
    """A user's exercise log after filtering."""

    username: str
    count: int
    id: str
    log: list[LogEntry]


def get_service(request: Request) -> TrackerService:
    """Resolve the `TrackerService` stored on the FastAPI application state."""
    service: TrackerService = request.app.state.tracker_service
    return service


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="OK")


@router.post("/users", response_model=UserResponse)
def create_user(
    payload: CreateUserRequest = Depends(parsed_body(CreateUserRequest)),
    service: TrackerService = Depends(get_service),
) -> UserResponse:
    """Register a new, unique username."""
    user = service.create_user(payload.username)
    return UserResponse.from_domain(user)


@router.get("/users", response_model=list[UserResponse])
def list_users(service: TrackerService = Depends(get_service)) -> list[UserResponse]:
    return [UserResponse.from_domain(user) for user in service.list_users()]


@router.post("/users/{user_id}/exercises", response_model=ExerciseResponse)
def add_exercise(
    user_id: str,
    payload: AddExerciseRequest = Depends(parsed_body(AddExerciseRequest)),
    service: TrackerService = Depends(get_service),
) -> ExerciseResponse:
    """Log an exercise for the user; the response carries the user's id."""
    user, exercise = service.add_exercise(
        user_id,
        payload.description,
        payload.duration,
        payload.date,
    )
    return ExerciseResponse.from_domain(user, exercise)


@router.get("/users/{user_id}/logs", response_model=LogResponse)
def get_logs(
    user_id: str,
    date_from: str | None = Query(default=None, alias="from"),
    date_to: str | None = Query(default=None, alias="to"),
    limit: str | None = Query(default=None),
    service: TrackerService = Depends(get_service),
) -> LogResponse:
    """Return the user's exercises sorted by date, optionally bounded and limited."""
    user, exercises = service.get_log(user_id, date_from, date_to, limit)
    log = [
        LogEntry(
            description=exercise.description,
            duration=exercise.duration,
            date=format_date(exercise.date),
        )
        for exercise in exercises
    ]
    return LogResponse(username=user.username, count=len(log), id=user.user_id, log=log)
