from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint

from ..config import DEFAULT_POINTS
from ..utils import utcnow


class Pool(SQLModel, table=True):
    """A betting pool with its point configuration."""
    __tablename__ = "pools"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    end_date: Optional[datetime] = Field(default=None)
    active: bool = Field(default=True)

    # Point configuration
    pts_exact_score: int = Field(default=DEFAULT_POINTS["exact_score"])
    pts_winner_score: int = Field(default=DEFAULT_POINTS["winner_score"])
    pts_goal_difference: Optional[int] = Field(default=DEFAULT_POINTS["goal_difference"])  # None -> pts_winner
    pts_loser_score: int = Field(default=DEFAULT_POINTS["loser_score"])
    pts_winner: int = Field(default=DEFAULT_POINTS["winner"])
    pts_draw: int = Field(default=DEFAULT_POINTS["draw"])
    pts_exact_draw: Optional[int] = Field(default=DEFAULT_POINTS["exact_draw"])  # None -> pts_exact_score
    pts_penalties: int = Field(default=DEFAULT_POINTS["penalties"])
    pts_champion: int = Field(default=DEFAULT_POINTS["champion"])

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class PoolParticipant(SQLModel, table=True):
    __tablename__ = "pool_participants"
    __table_args__ = (UniqueConstraint("pool_id", "user_id", name="unique_pool_user"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    pool_id: int = Field(foreign_key="pools.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    joined_at: datetime = Field(default_factory=utcnow)


class PoolTeam(SQLModel, table=True):
    __tablename__ = "pool_teams"
    __table_args__ = (UniqueConstraint("pool_id", "team_id", name="unique_pool_team"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    pool_id: int = Field(foreign_key="pools.id", index=True)
    team_id: int = Field(foreign_key="teams.id", index=True)


class PoolRound(SQLModel, table=True):
    __tablename__ = "pool_rounds"
    __table_args__ = (UniqueConstraint("pool_id", "round_id", name="unique_pool_round"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    pool_id: int = Field(foreign_key="pools.id", index=True)
    round_id: int = Field(foreign_key="rounds.id", index=True)
