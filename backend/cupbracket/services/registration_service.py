"""
Registration Service

Register / withdraw a player with a team slot, and list untaken teams.

Capacity and uniqueness checks run in the same transaction as the insert,
with the tournament row locked (SELECT ... FOR UPDATE; a no-op on SQLite).
The (tournament, player) and (tournament, team) unique constraints are the
backstop: an IntegrityError from a racing insert becomes a conflict.
"""

import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, func, select

from cupbracket.models.player import Player
from cupbracket.models.registration import Registration
from cupbracket.models.team import Team
from cupbracket.models.tournament import Tournament, TournamentStatus
from cupbracket.services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _lock_tournament(session: Session, tournament_id: int) -> Tournament:
    tournament = session.exec(select(Tournament).where(Tournament.id == tournament_id).with_for_update()).first()
    if tournament is None:
        raise NotFoundError("Tournament not found")
    return tournament


def register(session: Session, tournament_id: int, player_id: int, team_id: int) -> Registration:
    """
    Register a player with a team.

    Raises:
        NotFoundError: tournament, player or team unknown
        ValidationError: registration is closed
        ConflictError: tournament full, player already registered, team taken
    """
    try:
        tournament = _lock_tournament(session, tournament_id)
        if session.get(Player, player_id) is None:
            raise NotFoundError("Player not found")
        if session.get(Team, team_id) is None:
            raise NotFoundError("Team not found")
        if tournament.status != TournamentStatus.registration:
            raise ValidationError("Registration is closed")

        registered = session.exec(
            select(func.count(Registration.id)).where(Registration.tournament_id == tournament_id)
        ).one()
        if registered >= tournament.capacity:
            raise ConflictError("Tournament is full")

        existing = session.exec(
            select(Registration).where(Registration.tournament_id == tournament_id, Registration.player_id == player_id)
        ).first()
        if existing is not None:
            raise ConflictError("Player is already registered in this tournament")

        taken = session.exec(
            select(Registration).where(Registration.tournament_id == tournament_id, Registration.team_id == team_id)
        ).first()
        if taken is not None:
            raise ConflictError("Team is already taken in this tournament")

        registration = Registration(tournament_id=tournament_id, player_id=player_id, team_id=team_id)
        session.add(registration)
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("Player or team is already registered in this tournament")
    except Exception:
        session.rollback()
        raise

    session.refresh(registration)
    logger.info(
        "Registered player %d with team %d in tournament %d (%d/%d)",
        player_id,
        team_id,
        tournament_id,
        registered + 1,
        tournament.capacity,
    )
    return registration


def withdraw(session: Session, tournament_id: int, player_id: int) -> None:
    """Remove a player's registration while registration is open; frees the team."""
    tournament = session.get(Tournament, tournament_id)
    if tournament is None:
        raise NotFoundError("Tournament not found")
    if tournament.status != TournamentStatus.registration:
        raise ValidationError("Registration is closed")

    registration = session.exec(
        select(Registration).where(Registration.tournament_id == tournament_id, Registration.player_id == player_id)
    ).first()
    if registration is None:
        raise NotFoundError("Registration not found")

    team_id = registration.team_id
    session.delete(registration)
    session.commit()
    logger.info("Player %d withdrew from tournament %d (team %d freed)", player_id, tournament_id, team_id)


def available_teams(session: Session, tournament_id: int) -> List[Team]:
    """Catalog teams not taken in the tournament, by name."""
    taken = select(Registration.team_id).where(Registration.tournament_id == tournament_id)
    return list(session.exec(select(Team).where(Team.id.not_in(taken)).order_by(Team.name)).all())
