"""Tournament administration: create, lifecycle status, delete."""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete
from sqlmodel import Session, select

from cupbracket.models.group_standing import GroupStanding
from cupbracket.models.match import Match
from cupbracket.models.registration import Registration
from cupbracket.models.tournament import ALLOWED_CAPACITIES, Tournament, TournamentFormat, TournamentStatus
from cupbracket.services.errors import ConflictError, ValidationError

logger = logging.getLogger(__name__)


def create_tournament(
    session: Session,
    name: str,
    capacity: int,
    format: str = TournamentFormat.group_knockout.value,
    description: Optional[str] = None,
) -> Tournament:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Tournament name is required")
    if capacity not in ALLOWED_CAPACITIES:
        raise ValidationError(f"Capacity must be one of {', '.join(str(c) for c in ALLOWED_CAPACITIES)}")
    try:
        fmt = TournamentFormat(format)
    except ValueError:
        raise ValidationError(f"Unknown tournament format: {format}")

    tournament = Tournament(
        name=name,
        description=description,
        capacity=capacity,
        format=fmt.value,
        status=TournamentStatus.registration.value,
    )
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    logger.info("Created tournament %d '%s' (%s, capacity %d)", tournament.id, name, fmt.value, capacity)
    return tournament


def _has_draw(session: Session, tournament_id: int) -> bool:
    standing = session.exec(select(GroupStanding.id).where(GroupStanding.tournament_id == tournament_id)).first()
    if standing is not None:
        return True
    return session.exec(select(Match.id).where(Match.tournament_id == tournament_id)).first() is not None


def update_status(session: Session, tournament: Tournament, status: str) -> Tournament:
    """
    Admin override of the lifecycle status.

    Entering group_stage/knockout stamps started_at if unset; completed stamps completed_at.
    Moving back to registration is refused once groups or matches exist.
    """
    try:
        new_status = TournamentStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown tournament status: {status}")

    if new_status == TournamentStatus.registration and _has_draw(session, tournament.id):
        raise ConflictError(
            "Groups or matches exist for this tournament; regenerate or delete it instead of reopening registration"
        )

    now = datetime.now(timezone.utc)
    if new_status in (TournamentStatus.group_stage, TournamentStatus.knockout) and tournament.started_at is None:
        tournament.started_at = now
    if new_status == TournamentStatus.completed:
        tournament.completed_at = now

    previous = tournament.status
    tournament.status = new_status.value
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    logger.info("Tournament %d status %s -> %s", tournament.id, previous, new_status.value)
    return tournament


def delete_tournament(session: Session, tournament: Tournament) -> None:
    """Remove the tournament with its matches, standings and registrations."""
    tournament_id = tournament.id
    try:
        session.execute(delete(Match).where(Match.tournament_id == tournament_id))
        session.execute(delete(GroupStanding).where(GroupStanding.tournament_id == tournament_id))
        session.execute(delete(Registration).where(Registration.tournament_id == tournament_id))
        session.delete(tournament)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("Deleted tournament %d", tournament_id)
