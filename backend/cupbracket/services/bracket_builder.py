"""
Bracket Builder

Seeds a single-elimination draw and creates every round of it:

- group_knockout: top 2 per group; winner[i] meets the runner-up of the
  mirror group (winner[0] vs runner_up[last], winner[1] vs runner_up[last-1], ...)
- knockout: all registrations in uniform random order

Round 1 holds real registrations (an odd entrant gets a bye); later rounds
are TBD placeholders, each with ceil(previous / 2) matches, down to one final.
Generation replaces every non-group match of the tournament.
"""

import logging
import random
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import delete
from sqlmodel import Session, select

from cupbracket.models.group_standing import GroupStanding
from cupbracket.models.match import STAGE_GROUP, Match
from cupbracket.models.registration import Registration
from cupbracket.models.tournament import Tournament, TournamentFormat, TournamentStatus
from cupbracket.services.advancement_service import confirm_bye
from cupbracket.services.errors import ConflictError, ValidationError
from cupbracket.services.stages import next_stage, stage_from_count
from cupbracket.services.standings_service import standings_by_group

logger = logging.getLogger(__name__)

QUALIFIERS_PER_GROUP = 2


# =============================================================================
# Seeding
# =============================================================================


def seed_from_groups(ranked_groups: Mapping[str, Sequence[GroupStanding]]) -> List[int]:
    """
    Cross-group seeding from ranked standings (labels in allocation order).

    Returns registration ids in bracket order: [W0, RU_last, W1, RU_last-1, ...].
    A winner left without a runner-up to face (a one-entrant group) goes last
    and receives the bye.
    """
    winners: List[int] = []
    runners_up: List[int] = []
    for rows in ranked_groups.values():
        qualified = list(rows)[:QUALIFIERS_PER_GROUP]
        if not qualified:
            continue
        winners.append(qualified[0].registration_id)
        if len(qualified) > 1:
            runners_up.append(qualified[1].registration_id)

    entrants: List[int] = []
    unpaired: List[int] = []
    for i, winner in enumerate(winners):
        if i < len(runners_up):
            entrants.extend([winner, runners_up[len(runners_up) - 1 - i]])
        else:
            unpaired.append(winner)
    return entrants + unpaired


def seed_random(registration_ids: Sequence[int], rng: Optional[random.Random] = None) -> List[int]:
    """Uniform shuffle of all registrations."""
    rng = rng or random.Random()
    seeded = list(registration_ids)
    rng.shuffle(seeded)
    return seeded


# =============================================================================
# Bracket shape
# =============================================================================


def plan_rounds(entrant_count: int) -> List[Tuple[str, int]]:
    """
    (stage, match_count) per round. 8 entrants -> quarter-final 4, semi-final 2,
    final 1. Fewer than 2 entrants -> no rounds.
    """
    if entrant_count < 2:
        return []

    rounds: List[Tuple[str, int]] = []
    stage = stage_from_count(entrant_count)
    count = (entrant_count + 1) // 2
    while True:
        rounds.append((stage, count))
        if count == 1:
            break
        count = (count + 1) // 2
        stage = next_stage(stage)
    return rounds


def build_bracket(tournament_id: int, entrants: Sequence[Optional[int]], bracket_version: int = 1) -> List[Match]:
    """
    Unsaved Match rows for the whole bracket.

    Consecutive entrants meet in round 1; a missing opponent makes a bye.
    Later-round slots whose away feeder cannot exist are flagged as byes.
    """
    rounds = plan_rounds(len(entrants))
    matches: List[Match] = []

    for round_idx, (stage, count) in enumerate(rounds):
        for order in range(1, count + 1):
            if round_idx == 0:
                home = entrants[2 * order - 2]
                away = entrants[2 * order - 1] if 2 * order - 1 < len(entrants) else None
                if home is None:
                    home, away = away, None
                is_bye = away is None
            else:
                home = away = None
                is_bye = 2 * order > rounds[round_idx - 1][1]

            matches.append(
                Match(
                    tournament_id=tournament_id,
                    stage=stage,
                    group_label=None,
                    match_order=order,
                    home_registration_id=home,
                    away_registration_id=away,
                    home_score=None,
                    away_score=None,
                    confirmed=False,
                    is_bye=is_bye,
                    bracket_version=bracket_version,
                )
            )
    return matches


# =============================================================================
# Persistence
# =============================================================================


def _entrants_for(session: Session, tournament: Tournament, rng: Optional[random.Random]) -> List[int]:
    if tournament.format == TournamentFormat.knockout:
        if tournament.status not in (TournamentStatus.registration, TournamentStatus.knockout):
            raise ValidationError(f"Cannot generate the bracket while tournament is '{tournament.status}'")
        registration_ids = session.exec(
            select(Registration.id).where(Registration.tournament_id == tournament.id).order_by(Registration.id)
        ).all()
        return seed_random(registration_ids, rng)

    if tournament.status not in (TournamentStatus.group_stage, TournamentStatus.knockout):
        raise ValidationError("Groups must be generated and played before the knockout bracket")

    open_group_matches = session.exec(
        select(Match).where(
            Match.tournament_id == tournament.id,
            Match.stage == STAGE_GROUP,
            Match.confirmed == False,  # noqa: E712
        )
    ).all()
    if open_group_matches:
        raise ValidationError(f"{len(open_group_matches)} group matches are not confirmed yet")

    return seed_from_groups(standings_by_group(session, tournament.id))


def generate_knockout(
    session: Session,
    tournament: Tournament,
    rng: Optional[random.Random] = None,
    confirm_regenerate: bool = False,
) -> Dict:
    """
    Seed and create the knockout bracket, replacing any existing one.

    Round-1 byes are confirmed and advanced immediately. Runs in one transaction.

    Returns:
        Dict with entrants, matches, first_stage, bracket_version
    """
    entrants = _entrants_for(session, tournament, rng)
    if len(entrants) < 2:
        raise ValidationError(f"Not enough entrants for a knockout bracket (have {len(entrants)})")

    played = session.exec(
        select(Match).where(
            Match.tournament_id == tournament.id,
            Match.stage != STAGE_GROUP,
            Match.confirmed == True,  # noqa: E712
            Match.is_bye == False,  # noqa: E712
        )
    ).first()
    if played is not None and not confirm_regenerate:
        raise ConflictError("Knockout results exist; pass confirm_regenerate=true to discard them")

    version = (tournament.bracket_version or 0) + 1
    matches = build_bracket(tournament.id, entrants, version)

    try:
        session.execute(delete(Match).where(Match.tournament_id == tournament.id, Match.stage != STAGE_GROUP))
        session.add_all(matches)
        session.flush()

        for match in matches:
            if match.is_bye and match.home_registration_id is not None:
                confirm_bye(session, match)

        tournament.status = TournamentStatus.knockout.value
        tournament.completed_at = None
        if tournament.started_at is None:
            tournament.started_at = datetime.now(timezone.utc)
        tournament.bracket_version = version
        session.add(tournament)
        session.commit()
    except Exception:
        session.rollback()
        raise

    first_stage = matches[0].stage
    logger.info(
        "Generated %s bracket v%d for tournament %d: %d entrants, %d matches",
        first_stage,
        version,
        tournament.id,
        len(entrants),
        len(matches),
    )
    return {
        "entrants": len(entrants),
        "matches": len(matches),
        "first_stage": first_stage,
        "bracket_version": version,
    }
