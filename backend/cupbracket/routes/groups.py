"""
Group Stage API Routes
Standings by group, group generation and manual reassignment.
"""

from typing import Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlmodel import Session

from cupbracket.auth import require_admin
from cupbracket.database import get_session
from cupbracket.services import read_models
from cupbracket.services.group_allocator import allocate_groups, reassign_groups
from cupbracket.utils.guards import get_tournament_or_404

router = APIRouter()


class StandingView(BaseModel):
    id: int
    position: int
    registration_id: int
    team_name: str
    username: str
    played: int
    won: int
    drawn: int
    lost: int
    goals_for: int
    goals_against: int
    goal_difference: int
    points: int


class GroupView(BaseModel):
    label: str
    standings: List[StandingView]


class GenerateGroupsRequest(BaseModel):
    confirm_regenerate: bool = False


class GenerateGroupsResponse(BaseModel):
    groups: int
    standings: int
    matches: int
    groups_version: int


class ReassignGroupsRequest(BaseModel):
    # standing row id -> group label
    assignments: Dict[int, str]

    @field_validator("assignments")
    @classmethod
    def validate_assignments(cls, v):
        if not v:
            raise ValueError("assignments must not be empty")
        return {k: label.strip().upper() for k, label in v.items()}


class ReassignGroupsResponse(BaseModel):
    groups: int
    matches: int
    groups_version: int


@router.get("/tournaments/{tournament_id}/groups", response_model=List[GroupView])
def get_groups(tournament_id: int, session: Session = Depends(get_session)):
    """Ranked standings per group"""
    get_tournament_or_404(session, tournament_id)
    return read_models.groups_view(session, tournament_id)


@router.post(
    "/tournaments/{tournament_id}/groups/generate",
    response_model=GenerateGroupsResponse,
    dependencies=[Depends(require_admin)],
)
def generate_groups(
    tournament_id: int,
    body: GenerateGroupsRequest = GenerateGroupsRequest(),
    session: Session = Depends(get_session),
):
    """
    Shuffle registrations into groups of 4 and create the round-robin fixtures.
    Replaces existing groups; confirmed results require confirm_regenerate=true.
    """
    tournament = get_tournament_or_404(session, tournament_id)
    return allocate_groups(session, tournament, confirm_regenerate=body.confirm_regenerate)


@router.put(
    "/tournaments/{tournament_id}/groups",
    response_model=ReassignGroupsResponse,
    dependencies=[Depends(require_admin)],
)
def update_groups(tournament_id: int, body: ReassignGroupsRequest, session: Session = Depends(get_session)):
    """Move entrants between groups before any group result is confirmed"""
    tournament = get_tournament_or_404(session, tournament_id)
    return reassign_groups(session, tournament, body.assignments)
