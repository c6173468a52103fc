"""
Match scoring and confirmation.

This is the only caller of the standings updater and of knockout
advancement. Confirmation flips the one-way latch with a conditional
UPDATE (WHERE confirmed = false) and applies standings or advancement in
the same transaction, only when that UPDATE changed a row.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import update
from sqlmodel import Session, select

from cupbracket.models.match import STAGE_GROUP, Match
from cupbracket.models.tournament import Tournament
from cupbracket.services.advancement_service import apply_advancement_for_confirmed_match
from cupbracket.services.errors import ConflictError, ValidationError
from cupbracket.services.group_allocator import group_label_sort_key
from cupbracket.services.stages import stage_rank
from cupbracket.services.standings_service import apply_result

logger = logging.getLogger(__name__)


def save_score(session: Session, match: Match, home_score: int, away_score: int) -> Match:
    """Record (or overwrite) the score of an unconfirmed match."""
    if match.confirmed:
        raise ConflictError("Match is already confirmed")
    if match.is_bye:
        raise ValidationError("A bye has no score")
    if match.home_registration_id is None or match.away_registration_id is None:
        raise ValidationError("Both sides must be known before a score can be entered")
    if home_score is None or away_score is None or home_score < 0 or away_score < 0:
        raise ValidationError("Scores must be non-negative integers")

    match.home_score = home_score
    match.away_score = away_score
    session.add(match)
    session.commit()
    session.refresh(match)
    logger.info("Score saved for match %d: %d-%d", match.id, home_score, away_score)
    return match


def _check_confirmable(match: Match) -> None:
    if match.confirmed:
        raise ConflictError("Match is already confirmed")
    if match.is_bye:
        raise ValidationError("Byes are confirmed automatically")
    if match.home_registration_id is None or match.away_registration_id is None:
        raise ValidationError("Both sides must be known before a match can be confirmed")
    if not match.has_scores:
        raise ValidationError("Match has no score yet")
    if not match.is_group_match and match.home_score == match.away_score:
        raise ValidationError("Knockout matches need a winner; a draw cannot be confirmed")


def _latch_and_apply(session: Session, match: Match) -> int:
    """Flip the latch and apply the result. Does not commit. Returns slots filled."""
    result = session.execute(
        update(Match)
        .where(Match.id == match.id, Match.confirmed == False)  # noqa: E712
        .values(confirmed=True, confirmed_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ConflictError("Match is already confirmed")
    session.refresh(match)

    if match.is_group_match:
        apply_result(session, match)
        return 0
    return apply_advancement_for_confirmed_match(session, match)


def confirm_match(session: Session, match: Match) -> Match:
    """
    Confirm a scored match.

    Group matches update both standings rows; knockout matches advance their
    winner. Latch, standings and advancement commit together or not at all.
    """
    _check_confirmable(match)

    try:
        filled = _latch_and_apply(session, match)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(match)
    logger.info(
        "Confirmed match %d (%s) %d-%d; %d slots filled",
        match.id,
        match.stage,
        match.home_score,
        match.away_score,
        filled,
    )
    return match


def confirm_all(
    session: Session,
    tournament: Tournament,
    group_label: Optional[str] = None,
    matchday: Optional[int] = None,
    stage: Optional[str] = None,
) -> Dict:
    """
    Confirm every scored, unconfirmed, non-bye match in scope, group stage
    first, then knockout rounds in bracket order.

    Unscored matches, TBD sides and drawn knockout matches are skipped.

    Returns:
        Dict with confirmed, skipped
    """
    query = select(Match).where(
        Match.tournament_id == tournament.id,
        Match.confirmed == False,  # noqa: E712
        Match.is_bye == False,  # noqa: E712
    )
    if group_label is not None:
        query = query.where(Match.stage == STAGE_GROUP, Match.group_label == group_label.strip().upper())
    if matchday is not None:
        query = query.where(Match.matchday == matchday)
    if stage is not None:
        query = query.where(Match.stage == stage)

    pending = sorted(
        session.exec(query).all(),
        key=lambda m: (
            stage_rank(m.stage),
            group_label_sort_key(m.group_label or ""),
            m.matchday or 0,
            m.match_order or 0,
            m.id,
        ),
    )

    confirmed = 0
    skipped = 0
    try:
        for match in pending:
            try:
                _check_confirmable(match)
            except ValidationError:
                skipped += 1
                continue
            _latch_and_apply(session, match)
            confirmed += 1
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info("Bulk confirm in tournament %d: %d confirmed, %d skipped", tournament.id, confirmed, skipped)
    return {"confirmed": confirmed, "skipped": skipped}
