from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from cupbracket.models.tournament import Tournament

STAGE_GROUP = "group"


class Match(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    stage: str = Field(default=STAGE_GROUP, index=True)  # "group" | "round-of-16" | ... | "final"

    # Group stage only
    group_label: Optional[str] = Field(default=None)
    matchday: Optional[int] = Field(default=None)

    # Knockout only: 1-based bracket slot within the stage
    match_order: Optional[int] = Field(default=None)
    is_bye: bool = Field(default=False)
    bracket_version: Optional[int] = Field(default=None)

    # Null side = TBD placeholder
    home_registration_id: Optional[int] = Field(default=None, foreign_key="registration.id")
    away_registration_id: Optional[int] = Field(default=None, foreign_key="registration.id")

    home_score: Optional[int] = Field(default=None)
    away_score: Optional[int] = Field(default=None)

    # One-way latch
    confirmed: bool = Field(default=False)
    confirmed_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    tournament: "Tournament" = Relationship(back_populates="matches")

    @property
    def has_scores(self) -> bool:
        return self.home_score is not None and self.away_score is not None

    @property
    def is_group_match(self) -> bool:
        return self.stage == STAGE_GROUP
