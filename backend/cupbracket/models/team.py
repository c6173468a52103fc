from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from cupbracket.models.registration import Registration


class Team(SQLModel, table=True):
    """Catalog entry, shared by every tournament."""

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    crest_url: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    registrations: List["Registration"] = Relationship(back_populates="team")
