"""
Standings Updater

Applies a confirmed group match to the two participating standing rows and
ranks groups.

The increments are issued as in-database arithmetic (UPDATE ... SET
played = played + 1) so two confirmations touching the same row never lose
an update. Applying a result is NOT idempotent: the caller must hold the
match's confirmation latch (see match_service.confirm_match).
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Sequence

from sqlalchemy import update
from sqlmodel import Session, select

from cupbracket.models.group_standing import GroupStanding
from cupbracket.models.match import Match
from cupbracket.services.errors import ValidationError
from cupbracket.services.group_allocator import group_label_sort_key

logger = logging.getLogger(__name__)

POINTS_WIN = 3
POINTS_DRAW = 1


@dataclass(frozen=True)
class SideDelta:
    goals_for: int
    goals_against: int
    won: int = 0
    drawn: int = 0
    lost: int = 0

    @property
    def points(self) -> int:
        return POINTS_WIN * self.won + POINTS_DRAW * self.drawn


def outcome(home_score: int, away_score: int) -> tuple:
    """Return (home_delta, away_delta) for a final score."""
    if home_score > away_score:
        return (
            SideDelta(home_score, away_score, won=1),
            SideDelta(away_score, home_score, lost=1),
        )
    if home_score < away_score:
        return (
            SideDelta(home_score, away_score, lost=1),
            SideDelta(away_score, home_score, won=1),
        )
    return (
        SideDelta(home_score, away_score, drawn=1),
        SideDelta(away_score, home_score, drawn=1),
    )


def _increment(session: Session, tournament_id: int, registration_id: int, delta: SideDelta) -> int:
    result = session.execute(
        update(GroupStanding)
        .where(
            GroupStanding.tournament_id == tournament_id,
            GroupStanding.registration_id == registration_id,
        )
        .values(
            played=GroupStanding.played + 1,
            won=GroupStanding.won + delta.won,
            drawn=GroupStanding.drawn + delta.drawn,
            lost=GroupStanding.lost + delta.lost,
            goals_for=GroupStanding.goals_for + delta.goals_for,
            goals_against=GroupStanding.goals_against + delta.goals_against,
            points=GroupStanding.points + delta.points,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def apply_result(session: Session, match: Match) -> None:
    """
    Add a group match result to both participants' standings.

    Does not commit; runs inside the caller's confirmation transaction.
    """
    if not match.is_group_match:
        raise ValidationError(f"Match {match.id} is not a group match")
    if not match.has_scores:
        raise ValidationError(f"Match {match.id} has no score")

    home_delta, away_delta = outcome(int(match.home_score), int(match.away_score))

    for registration_id, delta in (
        (match.home_registration_id, home_delta),
        (match.away_registration_id, away_delta),
    ):
        if registration_id is None:
            continue
        if _increment(session, match.tournament_id, registration_id, delta) == 0:
            logger.warning(
                "No standing row for registration %s in tournament %d (match %d)",
                registration_id,
                match.tournament_id,
                match.id,
            )

    logger.info(
        "Standings updated for match %d (group %s): %d-%d",
        match.id,
        match.group_label,
        match.home_score,
        match.away_score,
    )


def rank_group(rows: Sequence[GroupStanding]) -> List[GroupStanding]:
    """Points desc, goals-for desc, then registration id for a stable order."""
    return sorted(rows, key=lambda r: (-r.points, -r.goals_for, r.registration_id))


def standings_by_group(session: Session, tournament_id: int) -> "OrderedDict[str, List[GroupStanding]]":
    """Ranked standing rows keyed by group label, labels in allocation order."""
    rows = session.exec(select(GroupStanding).where(GroupStanding.tournament_id == tournament_id)).all()

    grouped: Dict[str, List[GroupStanding]] = {}
    for row in rows:
        grouped.setdefault(row.group_label, []).append(row)

    ordered: "OrderedDict[str, List[GroupStanding]]" = OrderedDict()
    for label in sorted(grouped, key=group_label_sort_key):
        ordered[label] = rank_group(grouped[label])
    return ordered
