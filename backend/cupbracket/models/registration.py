from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from cupbracket.models.player import Player
    from cupbracket.models.team import Team
    from cupbracket.models.tournament import Tournament


class Registration(SQLModel, table=True):
    __table_args__ = (
        # A player and a team can each appear only once per tournament
        SAUniqueConstraint("tournament_id", "player_id", name="uq_registration_player"),
        SAUniqueConstraint("tournament_id", "team_id", name="uq_registration_team"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    player_id: int = Field(foreign_key="player.id")
    team_id: int = Field(foreign_key="team.id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="registrations")
    player: "Player" = Relationship(back_populates="registrations")
    team: "Team" = Relationship(back_populates="registrations")
