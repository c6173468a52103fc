"""
Stage naming and ordering shared by the bracket builder, advancement and
the match listings.

Knockout stages are named by field size (entrant count rounded up to a power
of two): 2 -> final, 4 -> semi-final, 8 -> quarter-final, 16+ -> round-of-N.
"""

from typing import Optional, Tuple

from cupbracket.models.match import STAGE_GROUP

STAGE_FINAL = "final"
STAGE_SEMI_FINAL = "semi-final"
STAGE_QUARTER_FINAL = "quarter-final"

_NAMED_FIELDS = {2: STAGE_FINAL, 4: STAGE_SEMI_FINAL, 8: STAGE_QUARTER_FINAL}
_FIELDS_BY_NAME = {name: size for size, name in _NAMED_FIELDS.items()}
_ROUND_OF_PREFIX = "round-of-"

# Play order, group stage first
STAGE_ORDER = (
    STAGE_GROUP,
    "round-of-128",
    "round-of-64",
    "round-of-32",
    "round-of-16",
    STAGE_QUARTER_FINAL,
    STAGE_SEMI_FINAL,
    STAGE_FINAL,
)

SIDE_HOME = "home"
SIDE_AWAY = "away"


def field_size(entrant_count: int) -> int:
    """Smallest power of two >= entrant_count (minimum 2)."""
    if entrant_count < 2:
        return 2
    return 1 << (entrant_count - 1).bit_length()


def stage_from_count(entrant_count: int) -> str:
    """Knockout stage name for a round that starts with `entrant_count` entrants."""
    if entrant_count < 2:
        raise ValueError(f"a knockout round needs at least 2 entrants, got {entrant_count}")
    size = field_size(entrant_count)
    return _NAMED_FIELDS.get(size, f"{_ROUND_OF_PREFIX}{size}")


def stage_field_size(stage: str) -> Optional[int]:
    """Field size of a knockout stage, None for the group stage or unknown names."""
    if stage in _FIELDS_BY_NAME:
        return _FIELDS_BY_NAME[stage]
    if stage and stage.startswith(_ROUND_OF_PREFIX):
        try:
            return int(stage[len(_ROUND_OF_PREFIX) :])
        except ValueError:
            return None
    return None


def is_knockout_stage(stage: str) -> bool:
    return stage_field_size(stage) is not None


def next_stage(stage: str) -> Optional[str]:
    """The round after `stage`; None after the final."""
    size = stage_field_size(stage)
    if size is None:
        raise ValueError(f"not a knockout stage: {stage!r}")
    if size <= 2:
        return None
    return stage_from_count(size // 2)


def stage_rank(stage: str) -> int:
    """Sort key: group first, then knockout rounds from the largest field to the final."""
    if stage == STAGE_GROUP:
        return 0
    size = stage_field_size(stage)
    if size is None:
        return 10**6
    # Larger fields are earlier rounds
    return 10**6 - size


def next_slot(stage: str, match_order: int) -> Optional[Tuple[str, int, str]]:
    """
    Where the winner of (stage, match_order) goes: (next_stage, next_order, side).

    Slot k of the next round is fed by orders 2k-1 (home) and 2k (away).
    Returns None for the final.
    """
    following = next_stage(stage)
    if following is None:
        return None
    side = SIDE_HOME if match_order % 2 == 1 else SIDE_AWAY
    return following, (match_order + 1) // 2, side
