"""
Read Models

Join queries that enrich tournaments, registrations, matches, standings and
player histories with team names and usernames. Everything returned is a
plain dict ready for the response models in routes/.

Missing names degrade to placeholders and are logged:
- "TBD": side not decided yet (null registration)
- "Unknown": registration whose team row is gone
- "?": registration whose player row is gone
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import aliased
from sqlmodel import Session, func, or_, select

from cupbracket.models.match import STAGE_GROUP, Match
from cupbracket.models.player import Player
from cupbracket.models.registration import Registration
from cupbracket.models.team import Team
from cupbracket.models.tournament import Tournament
from cupbracket.services.group_allocator import group_label_sort_key
from cupbracket.services.stages import stage_rank
from cupbracket.services.standings_service import standings_by_group

logger = logging.getLogger(__name__)

TBD_LABEL = "TBD"
UNKNOWN_TEAM = "Unknown"
UNKNOWN_PLAYER = "?"


def _side_names(
    registration_id: Optional[int], team_name: Optional[str], username: Optional[str], context: str
) -> Dict[str, Any]:
    if registration_id is None:
        return {"registration_id": None, "team_name": TBD_LABEL, "username": None}
    if team_name is None:
        logger.warning("No team for registration %d (%s)", registration_id, context)
        team_name = UNKNOWN_TEAM
    if username is None:
        logger.warning("No player for registration %d (%s)", registration_id, context)
        username = UNKNOWN_PLAYER
    return {"registration_id": registration_id, "team_name": team_name, "username": username}


# =============================================================================
# Tournaments
# =============================================================================


def list_tournaments(session: Session) -> List[Dict[str, Any]]:
    """All tournaments, newest first, each with its registered_count."""
    rows = session.exec(
        select(Tournament, func.count(Registration.id))
        .select_from(Tournament)
        .outerjoin(Registration, Registration.tournament_id == Tournament.id)
        .group_by(Tournament.id)
        .order_by(Tournament.created_at.desc(), Tournament.id.desc())
    ).all()
    return [{**tournament.model_dump(), "registered_count": count} for tournament, count in rows]


def tournament_registrations(session: Session, tournament_id: int) -> List[Dict[str, Any]]:
    """Registrations with team name and username, in registration order."""
    rows = session.exec(
        select(Registration, Team.name, Player.username)
        .select_from(Registration)
        .outerjoin(Team, Registration.team_id == Team.id)
        .outerjoin(Player, Registration.player_id == Player.id)
        .where(Registration.tournament_id == tournament_id)
        .order_by(Registration.created_at, Registration.id)
    ).all()

    result = []
    for registration, team_name, username in rows:
        names = _side_names(registration.id, team_name, username, f"tournament {tournament_id}")
        result.append(
            {
                "id": registration.id,
                "player_id": registration.player_id,
                "team_id": registration.team_id,
                "team_name": names["team_name"],
                "username": names["username"],
                "created_at": registration.created_at,
            }
        )
    return result


def tournament_detail(session: Session, tournament: Tournament) -> Dict[str, Any]:
    registrations = tournament_registrations(session, tournament.id)
    return {**tournament.model_dump(), "registered_count": len(registrations), "registrations": registrations}


# =============================================================================
# Matches
# =============================================================================


def _enriched_match_query():
    home_reg = aliased(Registration)
    away_reg = aliased(Registration)
    home_team = aliased(Team)
    away_team = aliased(Team)
    home_player = aliased(Player)
    away_player = aliased(Player)

    query = (
        select(
            Match,
            home_team.name,
            home_player.username,
            home_reg.player_id,
            away_team.name,
            away_player.username,
            away_reg.player_id,
        )
        .select_from(Match)
        .outerjoin(home_reg, Match.home_registration_id == home_reg.id)
        .outerjoin(home_team, home_reg.team_id == home_team.id)
        .outerjoin(home_player, home_reg.player_id == home_player.id)
        .outerjoin(away_reg, Match.away_registration_id == away_reg.id)
        .outerjoin(away_team, away_reg.team_id == away_team.id)
        .outerjoin(away_player, away_reg.player_id == away_player.id)
    )
    return query, home_reg, away_reg


def _match_dict(row) -> Dict[str, Any]:
    match, home_team, home_user, home_player_id, away_team, away_user, away_player_id = row
    context = f"match {match.id}"
    home = _side_names(match.home_registration_id, home_team, home_user, context)
    away = _side_names(match.away_registration_id, away_team, away_user, context)
    return {
        "id": match.id,
        "tournament_id": match.tournament_id,
        "stage": match.stage,
        "group_label": match.group_label,
        "matchday": match.matchday,
        "match_order": match.match_order,
        "is_bye": match.is_bye,
        "home_registration_id": match.home_registration_id,
        "away_registration_id": match.away_registration_id,
        "home_player_id": home_player_id,
        "away_player_id": away_player_id,
        "home_team_name": home["team_name"],
        "away_team_name": away["team_name"],
        "home_username": home["username"],
        "away_username": away["username"],
        "home_score": match.home_score,
        "away_score": match.away_score,
        "confirmed": match.confirmed,
        "confirmed_at": match.confirmed_at,
    }


def match_sort_key(match: Dict[str, Any]):
    return (
        stage_rank(match["stage"]),
        group_label_sort_key(match["group_label"] or ""),
        match["matchday"] or 0,
        match["match_order"] or 0,
        match["id"],
    )


def tournament_matches(
    session: Session,
    tournament_id: int,
    stage: Optional[str] = None,
    group_label: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Enriched matches sorted by stage, group, matchday / bracket slot."""
    query, _, _ = _enriched_match_query()
    query = query.where(Match.tournament_id == tournament_id)
    if stage is not None:
        query = query.where(Match.stage == stage)
    if group_label is not None:
        query = query.where(Match.group_label == group_label.strip().upper())

    matches = [_match_dict(row) for row in session.exec(query).all()]
    return sorted(matches, key=match_sort_key)


def match_view(session: Session, match_id: int) -> Dict[str, Any]:
    query, _, _ = _enriched_match_query()
    return _match_dict(session.exec(query.where(Match.id == match_id)).one())


def bracket_view(session: Session, tournament: Tournament) -> Dict[str, Any]:
    """Knockout matches grouped into rounds, first round to final."""
    knockout = [m for m in tournament_matches(session, tournament.id) if m["stage"] != STAGE_GROUP]

    rounds: List[Dict[str, Any]] = []
    for match in knockout:
        if not rounds or rounds[-1]["stage"] != match["stage"]:
            rounds.append({"stage": match["stage"], "matches": []})
        rounds[-1]["matches"].append(match)

    return {
        "tournament_id": tournament.id,
        "status": tournament.status,
        "bracket_version": tournament.bracket_version,
        "rounds": rounds,
    }


# =============================================================================
# Standings
# =============================================================================


def groups_view(session: Session, tournament_id: int) -> List[Dict[str, Any]]:
    """Ranked standings per group, with names and positions."""
    names = {r["id"]: r for r in tournament_registrations(session, tournament_id)}

    groups = []
    for label, rows in standings_by_group(session, tournament_id).items():
        standings = []
        for position, row in enumerate(rows, start=1):
            registration = names.get(row.registration_id)
            if registration is None:
                logger.warning("Standing %d refers to missing registration %d", row.id, row.registration_id)
            standings.append(
                {
                    "id": row.id,
                    "position": position,
                    "registration_id": row.registration_id,
                    "team_name": registration["team_name"] if registration else UNKNOWN_TEAM,
                    "username": registration["username"] if registration else UNKNOWN_PLAYER,
                    "played": row.played,
                    "won": row.won,
                    "drawn": row.drawn,
                    "lost": row.lost,
                    "goals_for": row.goals_for,
                    "goals_against": row.goals_against,
                    "goal_difference": row.goal_difference,
                    "points": row.points,
                }
            )
        groups.append({"label": label, "standings": standings})
    return groups


# =============================================================================
# Players
# =============================================================================


def player_registrations(session: Session, player_id: int) -> List[Dict[str, Any]]:
    rows = session.exec(
        select(Registration, Tournament.name, Tournament.status, Team.name)
        .select_from(Registration)
        .join(Tournament, Registration.tournament_id == Tournament.id)
        .outerjoin(Team, Registration.team_id == Team.id)
        .where(Registration.player_id == player_id)
        .order_by(Registration.created_at.desc(), Registration.id.desc())
    ).all()

    result = []
    for registration, tournament_name, tournament_status, team_name in rows:
        if team_name is None:
            logger.warning("No team for registration %d (player %d)", registration.id, player_id)
        result.append(
            {
                "registration_id": registration.id,
                "tournament_id": registration.tournament_id,
                "tournament_name": tournament_name,
                "tournament_status": tournament_status,
                "team_id": registration.team_id,
                "team_name": team_name or UNKNOWN_TEAM,
            }
        )
    return result


def _result_letter(own: Optional[int], other: Optional[int]) -> Optional[str]:
    if own is None or other is None:
        return None
    if own > other:
        return "W"
    if own < other:
        return "L"
    return "D"


def player_matches(session: Session, player_id: int) -> List[Dict[str, Any]]:
    """
    Every non-bye match the player appears in, across tournaments, from the
    player's point of view. result is W/D/L once the match is confirmed.
    """
    query, home_reg, away_reg = _enriched_match_query()
    query = query.add_columns(Tournament.name).outerjoin(Tournament, Match.tournament_id == Tournament.id)
    query = query.where(or_(home_reg.player_id == player_id, away_reg.player_id == player_id))
    query = query.where(Match.is_bye == False)  # noqa: E712

    history = []
    keys = []
    for row in session.exec(query).all():
        match = _match_dict(row[:-1])
        is_home = match["home_player_id"] == player_id
        side, other = ("home", "away") if is_home else ("away", "home")
        own_score = match[f"{side}_score"]
        opponent_score = match[f"{other}_score"]
        history.append(
            {
                "match_id": match["id"],
                "tournament_id": match["tournament_id"],
                "tournament_name": row[-1],
                "stage": match["stage"],
                "group_label": match["group_label"],
                "matchday": match["matchday"],
                "match_order": match["match_order"],
                "is_home": is_home,
                "team_name": match[f"{side}_team_name"],
                "opponent_team_name": match[f"{other}_team_name"],
                "opponent_username": match[f"{other}_username"],
                "own_score": own_score,
                "opponent_score": opponent_score,
                "confirmed": match["confirmed"],
                "result": _result_letter(own_score, opponent_score) if match["confirmed"] else None,
            }
        )
        keys.append((match["tournament_id"], match_sort_key(match)))

    order = sorted(range(len(history)), key=keys.__getitem__)
    return [history[i] for i in order]
