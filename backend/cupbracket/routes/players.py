"""
Player API Routes
Login-or-create by username + contact, and per-player views.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session

from cupbracket.database import get_session
from cupbracket.services import read_models
from cupbracket.services.player_service import login_player
from cupbracket.utils.guards import get_player_or_404

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class PlayerLoginRequest(BaseModel):
    username: str
    contact: str

    @field_validator("username", "contact")
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()


class PlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    created_at: datetime


class PlayerLoginResponse(BaseModel):
    player: PlayerResponse
    created: bool


class PlayerRegistrationResponse(BaseModel):
    registration_id: int
    tournament_id: int
    tournament_name: str
    tournament_status: str
    team_id: int
    team_name: str


class PlayerMatchResponse(BaseModel):
    match_id: int
    tournament_id: int
    tournament_name: Optional[str] = None
    stage: str
    group_label: Optional[str] = None
    matchday: Optional[int] = None
    match_order: Optional[int] = None
    is_home: bool
    team_name: str
    opponent_team_name: str
    opponent_username: Optional[str] = None
    own_score: Optional[int] = None
    opponent_score: Optional[int] = None
    confirmed: bool
    result: Optional[str] = None  # W / D / L once confirmed


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/players/login", response_model=PlayerLoginResponse)
def player_login(body: PlayerLoginRequest, session: Session = Depends(get_session)):
    """Log in; an unknown username creates the player"""
    player, created = login_player(session, body.username, body.contact)
    return PlayerLoginResponse(player=PlayerResponse.model_validate(player), created=created)


@router.get("/players/{player_id}", response_model=PlayerResponse)
def get_player(player_id: int, session: Session = Depends(get_session)):
    return get_player_or_404(session, player_id)


@router.get("/players/{player_id}/registrations", response_model=List[PlayerRegistrationResponse])
def get_player_registrations(player_id: int, session: Session = Depends(get_session)):
    get_player_or_404(session, player_id)
    return read_models.player_registrations(session, player_id)


@router.get("/players/{player_id}/matches", response_model=List[PlayerMatchResponse])
def get_player_matches(player_id: int, session: Session = Depends(get_session)):
    """Match history across tournaments, from the player's side"""
    get_player_or_404(session, player_id)
    return read_models.player_matches(session, player_id)
