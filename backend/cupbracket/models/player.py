from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from cupbracket.models.registration import Registration


class Player(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    contact: str  # phone / messaging handle, private to the player
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    registrations: List["Registration"] = Relationship(back_populates="player")
