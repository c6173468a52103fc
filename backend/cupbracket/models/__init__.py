from cupbracket.models.group_standing import GroupStanding
from cupbracket.models.match import Match
from cupbracket.models.player import Player
from cupbracket.models.registration import Registration
from cupbracket.models.team import Team
from cupbracket.models.tournament import Tournament, TournamentFormat, TournamentStatus

__all__ = [
    "GroupStanding",
    "Match",
    "Player",
    "Registration",
    "Team",
    "Tournament",
    "TournamentFormat",
    "TournamentStatus",
]
