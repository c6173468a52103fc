"""
Match and Knockout API Routes
Scores are entered by anyone; confirmation, bracket generation and round
resolution are admin-only. Confirming a match updates standings (group) or
advances the winner (knockout).
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlmodel import Session

from cupbracket.auth import require_admin
from cupbracket.database import get_session
from cupbracket.models.tournament import TournamentStatus
from cupbracket.services import match_service, read_models
from cupbracket.services.advancement_service import resolve_round
from cupbracket.services.bracket_builder import generate_knockout
from cupbracket.utils.guards import get_match_or_404, get_tournament_or_404

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class MatchView(BaseModel):
    id: int
    tournament_id: int
    stage: str
    group_label: Optional[str] = None
    matchday: Optional[int] = None
    match_order: Optional[int] = None
    is_bye: bool
    home_registration_id: Optional[int] = None
    away_registration_id: Optional[int] = None
    home_player_id: Optional[int] = None
    away_player_id: Optional[int] = None
    home_team_name: str
    away_team_name: str
    home_username: Optional[str] = None
    away_username: Optional[str] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    confirmed: bool
    confirmed_at: Optional[datetime] = None


class ScoreUpdate(BaseModel):
    home_score: int = Field(ge=0)
    away_score: int = Field(ge=0)


class ConfirmAllRequest(BaseModel):
    group_label: Optional[str] = None
    matchday: Optional[int] = Field(default=None, ge=1)
    stage: Optional[str] = None


class ConfirmAllResponse(BaseModel):
    confirmed: int
    skipped: int


class GenerateKnockoutRequest(BaseModel):
    confirm_regenerate: bool = False


class GenerateKnockoutResponse(BaseModel):
    entrants: int
    matches: int
    first_stage: str
    bracket_version: int


class ResolveRequest(BaseModel):
    stage: Optional[str] = None


class ResolveResponse(BaseModel):
    matches_processed: int
    slots_filled: int
    tbd_before: int
    tbd_after: int


class BracketRound(BaseModel):
    stage: str
    matches: List[MatchView]


class BracketResponse(BaseModel):
    tournament_id: int
    status: TournamentStatus
    bracket_version: int
    rounds: List[BracketRound]


# ============================================================================
# Matches
# ============================================================================


@router.get("/tournaments/{tournament_id}/matches", response_model=List[MatchView])
def list_matches(
    tournament_id: int,
    stage: Optional[str] = Query(None),
    group_label: Optional[str] = Query(None),
    session: Session = Depends(get_session),
):
    """Matches sorted by stage, group, matchday and bracket slot"""
    get_tournament_or_404(session, tournament_id)
    return read_models.tournament_matches(session, tournament_id, stage=stage, group_label=group_label)


@router.put("/tournaments/{tournament_id}/matches/{match_id}/score", response_model=MatchView)
def save_score(tournament_id: int, match_id: int, body: ScoreUpdate, session: Session = Depends(get_session)):
    match = get_match_or_404(session, match_id, tournament_id)
    match_service.save_score(session, match, body.home_score, body.away_score)
    return read_models.match_view(session, match_id)


@router.post(
    "/tournaments/{tournament_id}/matches/confirm-all",
    response_model=ConfirmAllResponse,
    dependencies=[Depends(require_admin)],
)
def confirm_all(
    tournament_id: int,
    body: ConfirmAllRequest = ConfirmAllRequest(),
    session: Session = Depends(get_session),
):
    """Confirm every scored match in scope (optionally one group / matchday / stage)"""
    tournament = get_tournament_or_404(session, tournament_id)
    return match_service.confirm_all(
        session, tournament, group_label=body.group_label, matchday=body.matchday, stage=body.stage
    )


@router.post(
    "/tournaments/{tournament_id}/matches/{match_id}/confirm",
    response_model=MatchView,
    dependencies=[Depends(require_admin)],
)
def confirm_match(tournament_id: int, match_id: int, session: Session = Depends(get_session)):
    match = get_match_or_404(session, match_id, tournament_id)
    match_service.confirm_match(session, match)
    return read_models.match_view(session, match_id)


# ============================================================================
# Knockout
# ============================================================================


@router.post(
    "/tournaments/{tournament_id}/knockout/generate",
    response_model=GenerateKnockoutResponse,
    dependencies=[Depends(require_admin)],
)
def generate_bracket(
    tournament_id: int,
    body: GenerateKnockoutRequest = GenerateKnockoutRequest(),
    session: Session = Depends(get_session),
):
    """Seed and build the knockout bracket (replaces any existing bracket)"""
    tournament = get_tournament_or_404(session, tournament_id)
    return generate_knockout(session, tournament, confirm_regenerate=body.confirm_regenerate)


@router.post(
    "/tournaments/{tournament_id}/knockout/resolve",
    response_model=ResolveResponse,
    dependencies=[Depends(require_admin)],
)
def resolve_knockout(
    tournament_id: int,
    body: ResolveRequest = ResolveRequest(),
    session: Session = Depends(get_session),
):
    """Re-apply advancement for confirmed knockout matches (one stage or all)"""
    tournament = get_tournament_or_404(session, tournament_id)
    return resolve_round(session, tournament, body.stage)


@router.get("/tournaments/{tournament_id}/bracket", response_model=BracketResponse)
def get_bracket(tournament_id: int, session: Session = Depends(get_session)):
    tournament = get_tournament_or_404(session, tournament_id)
    return read_models.bracket_view(session, tournament)
