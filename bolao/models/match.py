from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field

from .enums import MatchStatus, Side
from ..utils import utcnow


class Match(SQLModel, table=True):
    __tablename__ = "matches"

    id: Optional[int] = Field(default=None, primary_key=True)
    pool_id: Optional[int] = Field(default=None, foreign_key="pools.id", index=True)
    round_id: Optional[int] = Field(default=None, foreign_key="rounds.id", index=True)

    home_team_id: Optional[int] = Field(default=None, foreign_key="teams.id")
    away_team_id: Optional[int] = Field(default=None, foreign_key="teams.id")

    scheduled_datetime: datetime = Field(default_factory=utcnow, index=True)
    venue: Optional[str] = Field(default=None, max_length=255)
    is_knockout: bool = Field(default=False)

    status: MatchStatus = Field(default=MatchStatus.OPEN, index=True)

    # Actual result, only while status is FINAL
    actual_home_score: Optional[int] = Field(default=None)
    actual_away_score: Optional[int] = Field(default=None)
    penalty_winner: Optional[Side] = Field(default=None)  # knockout ties only

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
