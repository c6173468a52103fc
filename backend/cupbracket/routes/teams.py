"""
Team Catalog API Routes
Teams are shared by every tournament; a registration takes one per tournament.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session, select

from cupbracket.auth import require_admin
from cupbracket.database import get_session
from cupbracket.models.team import Team
from cupbracket.services.player_service import create_team

router = APIRouter()


class TeamCreateRequest(BaseModel):
    name: str
    crest_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    crest_url: Optional[str] = None
    created_at: datetime


@router.get("/teams", response_model=List[TeamResponse])
def list_teams(session: Session = Depends(get_session)):
    """Team catalog, by name"""
    return session.exec(select(Team).order_by(Team.name)).all()


@router.post("/teams", response_model=TeamResponse, status_code=201, dependencies=[Depends(require_admin)])
def add_team(body: TeamCreateRequest, session: Session = Depends(get_session)):
    return create_team(session, body.name, body.crest_url)
