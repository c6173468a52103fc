"""
Knockout advancement: when a knockout match is confirmed, write its winner into
the next round's placeholder slot.

Slot k of round r+1 is fed by match 2k-1 (home side) and 2k (away side) of
round r. Only home/away registration ids of later-round matches are written;
scores and confirmations of other matches are never touched, except for
byes, which confirm themselves once their single side is known.

Functions here do not commit; callers own the transaction.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlmodel import Session, select

from cupbracket.models.match import STAGE_GROUP, Match
from cupbracket.models.tournament import Tournament, TournamentStatus
from cupbracket.services.errors import ValidationError
from cupbracket.services.stages import SIDE_HOME, is_knockout_stage, next_slot, stage_rank

logger = logging.getLogger(__name__)


def winner_of(match: Match) -> Optional[int]:
    """Registration id of the winning side; a bye is won by its home side."""
    if match.is_bye:
        return match.home_registration_id
    if not match.has_scores or match.home_score == match.away_score:
        return None
    if match.home_score > match.away_score:
        return match.home_registration_id
    return match.away_registration_id


def _get_slot_match(session: Session, tournament_id: int, stage: str, match_order: int) -> Optional[Match]:
    return session.exec(
        select(Match).where(
            Match.tournament_id == tournament_id,
            Match.stage == stage,
            Match.match_order == match_order,
        )
    ).first()


def _complete_tournament(session: Session, tournament_id: int) -> None:
    tournament = session.get(Tournament, tournament_id)
    if tournament is None or tournament.status == TournamentStatus.completed:
        return
    tournament.status = TournamentStatus.completed.value
    tournament.completed_at = datetime.now(timezone.utc)
    session.add(tournament)
    logger.info("Tournament %d completed", tournament_id)


def confirm_bye(session: Session, match: Match) -> int:
    """Confirm a bye whose single side is known and advance it. Returns slots filled."""
    if not match.is_bye or match.confirmed or match.home_registration_id is None:
        return 0
    match.confirmed = True
    match.confirmed_at = datetime.now(timezone.utc)
    session.add(match)
    return apply_advancement_for_confirmed_match(session, match)


def apply_advancement_for_confirmed_match(session: Session, match: Match) -> int:
    """
    Given a confirmed knockout match, advance its winner into the next round.

    Idempotent: the target slot is only written when empty or already holding
    the same winner. Confirming the final completes the tournament.

    Returns:
        Number of placeholder slots filled (byes chain further slots).
    """
    if not match.confirmed or not is_knockout_stage(match.stage):
        return 0
    if match.match_order is None:
        raise ValidationError(f"Knockout match {match.id} has no bracket slot")

    winner_id = winner_of(match)
    if winner_id is None:
        return 0

    slot = next_slot(match.stage, match.match_order)
    if slot is None:
        _complete_tournament(session, match.tournament_id)
        return 0

    stage, order, side = slot
    target = _get_slot_match(session, match.tournament_id, stage, order)
    if target is None:
        logger.warning(
            "No %s slot %d for winner of match %d in tournament %d", stage, order, match.id, match.tournament_id
        )
        return 0

    attr = "home_registration_id" if side == SIDE_HOME else "away_registration_id"
    current = getattr(target, attr)
    if current == winner_id:
        return 0
    if current is not None:
        logger.warning(
            "Slot %s #%d (%s) already holds registration %d; not overwriting with %d",
            stage,
            order,
            side,
            current,
            winner_id,
        )
        return 0

    setattr(target, attr, winner_id)
    session.add(target)
    filled = 1
    logger.info("Advanced registration %d from match %d into %s #%d (%s)", winner_id, match.id, stage, order, side)

    if target.is_bye:
        session.flush()
        filled += confirm_bye(session, target)
    return filled


def _count_tbd(session: Session, tournament_id: int) -> int:
    matches = session.exec(
        select(Match).where(Match.tournament_id == tournament_id, Match.stage != STAGE_GROUP)
    ).all()
    return sum(
        1
        for m in matches
        if m.home_registration_id is None or (m.away_registration_id is None and not m.is_bye)
    )


def resolve_round(session: Session, tournament: Tournament, stage: Optional[str] = None) -> Dict:
    """
    Re-apply advancement for every confirmed knockout match of `stage`
    (all knockout stages when None), in bracket order, then commit.

    Returns:
        Dict with matches_processed, slots_filled, tbd_before, tbd_after
    """
    if stage is not None and not is_knockout_stage(stage):
        raise ValidationError(f"Not a knockout stage: {stage}")

    tbd_before = _count_tbd(session, tournament.id)

    query = select(Match).where(
        Match.tournament_id == tournament.id,
        Match.stage != STAGE_GROUP,
        Match.confirmed == True,  # noqa: E712
    )
    if stage is not None:
        query = query.where(Match.stage == stage)
    confirmed = sorted(session.exec(query).all(), key=lambda m: (stage_rank(m.stage), m.match_order or 0))

    matches_processed = 0
    slots_filled = 0
    try:
        for match in confirmed:
            slots_filled += apply_advancement_for_confirmed_match(session, match)
            matches_processed += 1
        session.commit()
    except Exception:
        session.rollback()
        raise

    return {
        "matches_processed": matches_processed,
        "slots_filled": slots_filled,
        "tbd_before": tbd_before,
        "tbd_after": _count_tbd(session, tournament.id),
    }


def resolve_all(session: Session, tournament: Tournament) -> Dict:
    """resolve_round over every knockout stage."""
    return resolve_round(session, tournament, None)
