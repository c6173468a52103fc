# Force SQLModel table registration at test discovery time
from cupbracket.models.group_standing import GroupStanding  # noqa: F401
from cupbracket.models.match import Match  # noqa: F401
from cupbracket.models.player import Player  # noqa: F401
from cupbracket.models.registration import Registration  # noqa: F401
from cupbracket.models.team import Team  # noqa: F401
from cupbracket.models.tournament import Tournament  # noqa: F401
