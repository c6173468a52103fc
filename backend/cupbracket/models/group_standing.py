from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from cupbracket.models.tournament import Tournament


class GroupStanding(SQLModel, table=True):
    """One row per registration while the group stage is active.

    Invariants: points == 3 * won + drawn, played == won + drawn + lost.
    """

    __table_args__ = (SAUniqueConstraint("tournament_id", "registration_id", name="uq_standing_registration"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    group_label: str = Field(index=True)
    registration_id: int = Field(foreign_key="registration.id")

    played: int = Field(default=0)
    won: int = Field(default=0)
    drawn: int = Field(default=0)
    lost: int = Field(default=0)
    goals_for: int = Field(default=0)
    goals_against: int = Field(default=0)
    points: int = Field(default=0)

    tournament: "Tournament" = Relationship(back_populates="standings")

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against
