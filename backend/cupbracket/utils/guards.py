"""
Lookup guards for route handlers.

Each helper loads a row or raises 404, and checks that nested resources
belong to the tournament in the path.
"""

from fastapi import HTTPException
from sqlmodel import Session

from cupbracket.models.match import Match
from cupbracket.models.player import Player
from cupbracket.models.tournament import Tournament


def get_tournament_or_404(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


def get_match_or_404(session: Session, match_id: int, tournament_id: int = None) -> Match:
    """
    Raises:
        HTTPException 404: Match not found, or it belongs to another tournament
    """
    match = session.get(Match, match_id)
    if not match:
        raise HTTPException(status_code=404, detail="Match not found")

    if tournament_id and match.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail=f"Match {match_id} does not belong to tournament {tournament_id}")

    return match


def get_player_or_404(session: Session, player_id: int) -> Player:
    player = session.get(Player, player_id)
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")
    return player
