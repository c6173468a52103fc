from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from cupbracket.models.group_standing import GroupStanding
    from cupbracket.models.match import Match
    from cupbracket.models.registration import Registration


ALLOWED_CAPACITIES = (8, 16, 32, 64, 128)


class TournamentFormat(str, Enum):
    group_knockout = "group_knockout"
    knockout = "knockout"


class TournamentStatus(str, Enum):
    registration = "registration"
    group_stage = "group_stage"
    knockout = "knockout"
    completed = "completed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    capacity: int
    format: str = Field(
        default=TournamentFormat.group_knockout.value, sa_column=Column(String, nullable=False)
    )  # "group_knockout" | "knockout"
    status: str = Field(
        default=TournamentStatus.registration.value, sa_column=Column(String, nullable=False)
    )  # "registration" | "group_stage" | "knockout" | "completed"

    # Bumped on every destructive regeneration
    groups_version: int = Field(default=0)
    bracket_version: int = Field(default=0)

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow, sa_column_kwargs={"onupdate": _utcnow})
    started_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)

    # Relationships
    registrations: List["Registration"] = Relationship(back_populates="tournament")
    standings: List["GroupStanding"] = Relationship(back_populates="tournament")
    matches: List["Match"] = Relationship(back_populates="tournament")
