"""
Group Allocator

Partitions a tournament's registrations into groups of four and emits the
round-robin fixtures of every group.

- Uniform shuffle, then contiguous chunks; the last group may be smaller
- Labels A..Z, then A2..Z2, A3.. beyond 26 groups
- Any group size >= 2 yields C(n, 2) fixtures tagged with a matchday
- Regeneration is destructive: standings and matches are replaced wholesale
"""

import logging
import random
import re
import string
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy import delete
from sqlmodel import Session, select

from cupbracket.models.group_standing import GroupStanding
from cupbracket.models.match import STAGE_GROUP, Match
from cupbracket.models.registration import Registration
from cupbracket.models.tournament import Tournament, TournamentFormat, TournamentStatus
from cupbracket.services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

GROUP_SIZE = 4
MIN_REGISTRATIONS = 4

_LABEL_RE = re.compile(r"^([A-Z])(\d*)$")

T = TypeVar("T")


# =============================================================================
# Labels
# =============================================================================


def group_label(index: int) -> str:
    """0 -> "A", 25 -> "Z", 26 -> "A2", 27 -> "B2", ..."""
    if index < 0:
        raise ValueError(f"group index must be >= 0, got {index}")
    letter = string.ascii_uppercase[index % 26]
    cycle = index // 26
    return letter if cycle == 0 else f"{letter}{cycle + 1}"


def group_label_sort_key(label: str) -> Tuple[int, str]:
    """Order labels by allocation index (A..Z before A2); unknown labels last, alphabetically."""
    match = _LABEL_RE.match(label or "")
    if not match:
        return (10**6, label or "")
    letter, suffix = match.groups()
    cycle = int(suffix) - 1 if suffix else 0
    return (cycle * 26 + string.ascii_uppercase.index(letter), "")


# =============================================================================
# Pure partitioning / pairing
# =============================================================================


def round_robin_pairings(size: int) -> List[Tuple[int, int, int]]:
    """
    Round-robin pairings for a group of `size` entrants.
    Returns (matchday, idx_a, idx_b) with idx_a < idx_b, 0-based group positions.

    Circle method: position 0 fixed, the rest rotate; odd sizes get a BYE
    position whose pairings are dropped. Yields exactly C(size, 2) pairings.
    """
    if size < 2:
        return []

    n2 = size + 1 if size % 2 == 1 else size
    bye_idx = size if size % 2 == 1 else -1
    half = n2 // 2

    result: List[Tuple[int, int, int]] = []
    positions = list(range(n2))

    for matchday in range(1, n2):
        for i in range(half):
            a, b = positions[i], positions[n2 - 1 - i]
            if a == bye_idx or b == bye_idx:
                continue
            result.append((matchday, min(a, b), max(a, b)))
        # Keep 0, move last to second, shift others
        positions = [positions[0]] + [positions[-1]] + positions[1:-1]

    return result


def partition(items: Sequence[T], group_size: int = GROUP_SIZE, rng: Optional[random.Random] = None) -> List[List[T]]:
    """Shuffle uniformly, then cut into contiguous chunks of `group_size`."""
    if group_size < 1:
        raise ValueError(f"group_size must be >= 1, got {group_size}")
    rng = rng or random.Random()
    shuffled = list(items)
    rng.shuffle(shuffled)
    return [shuffled[i : i + group_size] for i in range(0, len(shuffled), group_size)]


def build_group_fixtures(tournament_id: int, label: str, registration_ids: Sequence[int]) -> List[Match]:
    """All unconfirmed, unscored fixtures for one group, in matchday order."""
    return [
        Match(
            tournament_id=tournament_id,
            stage=STAGE_GROUP,
            group_label=label,
            matchday=matchday,
            home_registration_id=registration_ids[a],
            away_registration_id=registration_ids[b],
            home_score=None,
            away_score=None,
            confirmed=False,
        )
        for matchday, a, b in round_robin_pairings(len(registration_ids))
    ]


# =============================================================================
# Persistence
# =============================================================================


def _require_confirmation_to_discard(session: Session, tournament_id: int, confirm_regenerate: bool) -> None:
    confirmed = session.exec(
        select(Match).where(Match.tournament_id == tournament_id, Match.confirmed == True)  # noqa: E712
    ).first()
    if confirmed is not None and not confirm_regenerate:
        raise ConflictError(
            "Confirmed results exist for this tournament; pass confirm_regenerate=true to discard them"
        )


def allocate_groups(
    session: Session,
    tournament: Tournament,
    rng: Optional[random.Random] = None,
    confirm_regenerate: bool = False,
) -> Dict:
    """
    Partition the tournament's registrations into groups and create fixtures.

    Deletes all existing standings and matches of the tournament first, then
    moves the tournament into the group stage. Runs in one transaction.

    Returns:
        Dict with groups, standings, matches, groups_version
    """
    if tournament.format != TournamentFormat.group_knockout:
        raise ValidationError("Knockout-format tournaments have no group stage")
    if tournament.status not in (TournamentStatus.registration, TournamentStatus.group_stage):
        raise ValidationError(f"Cannot generate groups while tournament is '{tournament.status}'")

    registrations = session.exec(
        select(Registration).where(Registration.tournament_id == tournament.id).order_by(Registration.id)
    ).all()
    if len(registrations) < MIN_REGISTRATIONS:
        raise ValidationError(
            f"Not enough registrations to generate groups (need {MIN_REGISTRATIONS}, have {len(registrations)})"
        )

    _require_confirmation_to_discard(session, tournament.id, confirm_regenerate)

    groups = partition([r.id for r in registrations], GROUP_SIZE, rng)
    match_count = 0

    try:
        session.execute(delete(Match).where(Match.tournament_id == tournament.id))
        session.execute(delete(GroupStanding).where(GroupStanding.tournament_id == tournament.id))

        for index, members in enumerate(groups):
            label = group_label(index)
            for registration_id in members:
                session.add(
                    GroupStanding(tournament_id=tournament.id, group_label=label, registration_id=registration_id)
                )
            fixtures = build_group_fixtures(tournament.id, label, members)
            session.add_all(fixtures)
            match_count += len(fixtures)

        tournament.status = TournamentStatus.group_stage.value
        if tournament.started_at is None:
            tournament.started_at = datetime.now(timezone.utc)
        tournament.groups_version = (tournament.groups_version or 0) + 1
        session.add(tournament)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(tournament)
    logger.info(
        "Allocated tournament %d into %d groups (%d registrations, %d fixtures, version %d)",
        tournament.id,
        len(groups),
        len(registrations),
        match_count,
        tournament.groups_version,
    )
    return {
        "groups": len(groups),
        "standings": len(registrations),
        "matches": match_count,
        "groups_version": tournament.groups_version,
    }


def reassign_groups(session: Session, tournament: Tournament, assignments: Dict[int, str]) -> Dict:
    """
    Move standing rows between groups and rebuild the group fixtures.

    Args:
        assignments: standing_id -> new group label

    Only allowed in the group stage before any result is confirmed. Labels
    must have the allocator's form and no group may exceed GROUP_SIZE.
    """
    if tournament.status != TournamentStatus.group_stage:
        raise ValidationError("Groups can only be edited during the group stage")
    if not assignments:
        raise ValidationError("No group assignments given")

    confirmed = session.exec(
        select(Match).where(
            Match.tournament_id == tournament.id,
            Match.stage == STAGE_GROUP,
            Match.confirmed == True,  # noqa: E712
        )
    ).first()
    if confirmed is not None:
        raise ConflictError("Groups cannot be edited after group results have been confirmed")

    rows = session.exec(select(GroupStanding).where(GroupStanding.tournament_id == tournament.id)).all()
    by_id = {row.id: row for row in rows}

    try:
        for standing_id, label in assignments.items():
            row = by_id.get(standing_id)
            if row is None:
                raise NotFoundError(f"Group row {standing_id} not found in this tournament")
            clean = (label or "").strip().upper()
            if not _LABEL_RE.match(clean):
                raise ValidationError(f"Invalid group label '{label}' for row {standing_id} (expected A..Z, A2..)")
            row.group_label = clean
            session.add(row)

        members: Dict[str, List[int]] = defaultdict(list)
        for row in sorted(rows, key=lambda r: r.id):
            members[row.group_label].append(row.registration_id)
        oversized = sorted(
            (label for label, ids in members.items() if len(ids) > GROUP_SIZE), key=group_label_sort_key
        )
        if oversized:
            raise ValidationError(f"Groups can hold at most {GROUP_SIZE} entrants: {', '.join(oversized)}")

        session.execute(delete(Match).where(Match.tournament_id == tournament.id, Match.stage == STAGE_GROUP))
        match_count = 0
        for label in sorted(members, key=group_label_sort_key):
            fixtures = build_group_fixtures(tournament.id, label, members[label])
            session.add_all(fixtures)
            match_count += len(fixtures)

        tournament.groups_version = (tournament.groups_version or 0) + 1
        session.add(tournament)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(
        "Reassigned %d group rows in tournament %d; rebuilt %d fixtures", len(assignments), tournament.id, match_count
    )
    return {"groups": len(members), "matches": match_count, "groups_version": tournament.groups_version}
