from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, field_validator
from sqlmodel import Session

from cupbracket.auth import require_admin
from cupbracket.database import get_session
from cupbracket.models.tournament import ALLOWED_CAPACITIES, TournamentFormat, TournamentStatus
from cupbracket.routes.teams import TeamResponse
from cupbracket.services import read_models, registration_service, tournament_service
from cupbracket.utils.guards import get_tournament_or_404

router = APIRouter()


class TournamentCreate(BaseModel):
    name: str
    capacity: int
    format: TournamentFormat = TournamentFormat.group_knockout
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("capacity")
    @classmethod
    def validate_capacity(cls, v):
        if v not in ALLOWED_CAPACITIES:
            raise ValueError(f"capacity must be one of {list(ALLOWED_CAPACITIES)}")
        return v


class TournamentStatusUpdate(BaseModel):
    status: TournamentStatus


class TournamentResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    capacity: int
    format: TournamentFormat
    status: TournamentStatus
    groups_version: int
    bracket_version: int
    registered_count: int = 0
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class RegistrationView(BaseModel):
    id: int
    player_id: int
    team_id: int
    team_name: str
    username: str
    created_at: datetime


class TournamentDetailResponse(TournamentResponse):
    registrations: List[RegistrationView] = []


class RegisterRequest(BaseModel):
    player_id: int
    team_id: int


class WithdrawRequest(BaseModel):
    player_id: int


class RegistrationResponse(BaseModel):
    id: int
    tournament_id: int
    player_id: int
    team_id: int
    created_at: datetime


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(session: Session = Depends(get_session)):
    """List all tournaments with their registered_count"""
    return read_models.list_tournaments(session)


@router.post(
    "/tournaments", response_model=TournamentResponse, status_code=201, dependencies=[Depends(require_admin)]
)
def create_tournament(body: TournamentCreate, session: Session = Depends(get_session)):
    tournament = tournament_service.create_tournament(
        session, body.name, body.capacity, body.format.value, body.description
    )
    return {**tournament.model_dump(), "registered_count": 0}


@router.get("/tournaments/{tournament_id}", response_model=TournamentDetailResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Get a tournament with its registrations (team name, username)"""
    tournament = get_tournament_or_404(session, tournament_id)
    return read_models.tournament_detail(session, tournament)


@router.put(
    "/tournaments/{tournament_id}/status",
    response_model=TournamentResponse,
    dependencies=[Depends(require_admin)],
)
def update_tournament_status(tournament_id: int, body: TournamentStatusUpdate, session: Session = Depends(get_session)):
    tournament = get_tournament_or_404(session, tournament_id)
    tournament = tournament_service.update_status(session, tournament, body.status.value)
    return read_models.tournament_detail(session, tournament)


@router.delete("/tournaments/{tournament_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Delete a tournament with its registrations, standings and matches"""
    tournament = get_tournament_or_404(session, tournament_id)
    tournament_service.delete_tournament(session, tournament)
    return Response(status_code=204)


# ============================================================================
# Registration
# ============================================================================


@router.post("/tournaments/{tournament_id}/register", response_model=RegistrationResponse, status_code=201)
def register(tournament_id: int, body: RegisterRequest, session: Session = Depends(get_session)):
    return registration_service.register(session, tournament_id, body.player_id, body.team_id)


@router.post("/tournaments/{tournament_id}/withdraw", status_code=204)
def withdraw(tournament_id: int, body: WithdrawRequest, session: Session = Depends(get_session)):
    registration_service.withdraw(session, tournament_id, body.player_id)
    return Response(status_code=204)


@router.get("/tournaments/{tournament_id}/available-teams", response_model=List[TeamResponse])
def available_teams(tournament_id: int, session: Session = Depends(get_session)):
    """Catalog teams nobody has taken in this tournament"""
    get_tournament_or_404(session, tournament_id)
    return registration_service.available_teams(session, tournament_id)
