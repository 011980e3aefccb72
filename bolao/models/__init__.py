from .enums import MatchStatus, Side, Outcome, ScoreType, ChampionStatus
from .user import User
from .team import Team, Round
from .pool import Pool, PoolParticipant, PoolTeam, PoolRound
from .match import Match
from .prediction import Prediction
from .champion import Champion, ChampionPick

__all__ = [
    "MatchStatus",
    "Side",
    "Outcome",
    "ScoreType",
    "ChampionStatus",
    "User",
    "Team",
    "Round",
    "Pool",
    "PoolParticipant",
    "PoolTeam",
    "PoolRound",
    "Match",
    "Prediction",
    "Champion",
    "ChampionPick",
]
