"""Knockout advancement: winners move into the half-index slot until the final completes the tournament."""
import random

import pytest
from sqlmodel import Session

from cupbracket.models.match import Match
from cupbracket.models.tournament import Tournament
from cupbracket.services.advancement_service import (
    apply_advancement_for_confirmed_match,
    resolve_all,
    resolve_round,
    winner_of,
)
from cupbracket.services.bracket_builder import generate_knockout
from cupbracket.services.errors import ValidationError
from cupbracket.services.match_service import confirm_match, save_score
from cupbracket.services.stages import next_slot
from tests.factories import create_tournament, fill_tournament, knockout_matches


@pytest.fixture
def eight_team_bracket(session: Session):
    tournament = create_tournament(session, capacity=8, format="knockout")
    fill_tournament(session, tournament, 8)
    generate_knockout(session, tournament, rng=random.Random(21))
    return tournament


def _play(session: Session, match: Match, home: int, away: int) -> None:
    save_score(session, match, home, away)
    confirm_match(session, match)


def test_next_slot():
    assert next_slot("quarter-final", 1) == ("semi-final", 1, "home")
    assert next_slot("quarter-final", 2) == ("semi-final", 1, "away")
    assert next_slot("quarter-final", 3) == ("semi-final", 2, "home")
    assert next_slot("round-of-16", 8) == ("quarter-final", 4, "away")
    assert next_slot("final", 1) is None


def test_winner_of():
    assert winner_of(Match(tournament_id=1, stage="final", home_registration_id=1, away_registration_id=2,
                           home_score=1, away_score=0)) == 1
    assert winner_of(Match(tournament_id=1, stage="final", home_registration_id=1, away_registration_id=2,
                           home_score=0, away_score=3)) == 2
    assert winner_of(Match(tournament_id=1, stage="final", home_registration_id=1, away_registration_id=2,
                           home_score=2, away_score=2)) is None
    assert winner_of(Match(tournament_id=1, stage="semi-final", home_registration_id=7, is_bye=True)) == 7


def test_quarter_final_winners_fill_semi_final_slots(session: Session, eight_team_bracket):
    quarter_finals = knockout_matches(session, eight_team_bracket.id, "quarter-final")
    _play(session, quarter_finals[0], 2, 0)
    _play(session, quarter_finals[1], 0, 1)

    semi_final = knockout_matches(session, eight_team_bracket.id, "semi-final")[0]
    assert semi_final.home_registration_id == quarter_finals[0].home_registration_id
    assert semi_final.away_registration_id == quarter_finals[1].away_registration_id


def test_confirming_the_final_completes_the_tournament(session: Session, eight_team_bracket):
    for stage in ("quarter-final", "semi-final"):
        for match in knockout_matches(session, eight_team_bracket.id, stage):
            _play(session, match, 3, 1)

    final = knockout_matches(session, eight_team_bracket.id, "final")[0]
    assert final.home_registration_id is not None and final.away_registration_id is not None
    assert session.get(Tournament, eight_team_bracket.id).status == "knockout"

    _play(session, final, 0, 2)

    tournament = session.get(Tournament, eight_team_bracket.id)
    assert tournament.status == "completed"
    assert tournament.completed_at is not None


def test_drawn_knockout_match_cannot_be_confirmed(session: Session, eight_team_bracket):
    match = knockout_matches(session, eight_team_bracket.id, "quarter-final")[0]
    save_score(session, match, 1, 1)

    with pytest.raises(ValidationError):
        confirm_match(session, match)
    assert knockout_matches(session, eight_team_bracket.id, "semi-final")[0].home_registration_id is None


def test_scores_cannot_be_entered_for_tbd_sides(session: Session, eight_team_bracket):
    semi_final = knockout_matches(session, eight_team_bracket.id, "semi-final")[0]
    with pytest.raises(ValidationError):
        save_score(session, semi_final, 1, 0)


def test_advancement_is_idempotent(session: Session, eight_team_bracket):
    match = knockout_matches(session, eight_team_bracket.id, "quarter-final")[0]
    _play(session, match, 2, 1)

    assert apply_advancement_for_confirmed_match(session, match) == 0
    session.commit()
    semi_final = knockout_matches(session, eight_team_bracket.id, "semi-final")[0]
    assert semi_final.home_registration_id == match.home_registration_id


def test_advancement_never_overwrites_another_entrant(session: Session, eight_team_bracket):
    match = knockout_matches(session, eight_team_bracket.id, "quarter-final")[0]
    semi_final = knockout_matches(session, eight_team_bracket.id, "semi-final")[0]
    semi_final.home_registration_id = match.away_registration_id
    session.add(semi_final)
    session.commit()

    _play(session, match, 2, 1)

    session.refresh(semi_final)
    assert semi_final.home_registration_id == match.away_registration_id


def test_resolve_round_refills_cleared_slots(session: Session, eight_team_bracket):
    quarter_finals = knockout_matches(session, eight_team_bracket.id, "quarter-final")
    for match in quarter_finals:
        _play(session, match, 1, 0)

    semi_final = knockout_matches(session, eight_team_bracket.id, "semi-final")[1]
    semi_final.away_registration_id = None
    session.add(semi_final)
    session.commit()

    result = resolve_round(session, eight_team_bracket, "quarter-final")
    assert result["matches_processed"] == 4
    assert result["slots_filled"] == 1
    assert result["tbd_before"] == result["tbd_after"] + 1

    session.refresh(semi_final)
    assert semi_final.away_registration_id == quarter_finals[3].home_registration_id

    assert resolve_all(session, eight_team_bracket)["slots_filled"] == 0


def test_resolve_round_rejects_group_stage(session: Session, eight_team_bracket):
    with pytest.raises(ValidationError):
        resolve_round(session, eight_team_bracket, "group")
