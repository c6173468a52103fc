"""Player login and the team catalog."""

import logging
from typing import Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from cupbracket.models.player import Player
from cupbracket.models.team import Team
from cupbracket.services.errors import AuthorizationError, ConflictError, ValidationError

logger = logging.getLogger(__name__)


def login_player(session: Session, username: str, contact: str) -> Tuple[Player, bool]:
    """
    Log in by username + contact, creating the player on first login.

    Returns:
        (player, created)
    """
    username = (username or "").strip()
    contact = (contact or "").strip()
    if not username or not contact:
        raise ValidationError("Username and contact are required")

    player = session.exec(select(Player).where(Player.username == username)).first()
    if player is not None:
        if player.contact != contact:
            raise AuthorizationError("Contact does not match this username")
        return player, False

    player = Player(username=username, contact=contact)
    session.add(player)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("Username was registered concurrently; try again")
    session.refresh(player)
    logger.info("Created player %d (%s)", player.id, username)
    return player, True


def create_team(session: Session, name: str, crest_url: str = None) -> Team:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Team name is required")

    if session.exec(select(Team).where(Team.name == name)).first() is not None:
        raise ConflictError(f"Team '{name}' already exists")

    team = Team(name=name, crest_url=crest_url)
    session.add(team)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError(f"Team '{name}' already exists")
    session.refresh(team)
    logger.info("Added team %d (%s)", team.id, name)
    return team
