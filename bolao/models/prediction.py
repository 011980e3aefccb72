from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint

from .enums import Side
from ..utils import utcnow


class Prediction(SQLModel, table=True):
    __tablename__ = "predictions"
    __table_args__ = (UniqueConstraint("user_id", "match_id", name="unique_user_match"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    match_id: int = Field(foreign_key="matches.id", index=True)

    # Prediction
    predicted_home_score: int = Field(default=0)
    predicted_away_score: int = Field(default=0)
    predicted_penalty_winner: Optional[Side] = Field(default=None)  # knockout only

    # Points (calculated when the match is finalized)
    points_earned: int = Field(default=0)
    points_score: int = Field(default=0)
    points_penalties: int = Field(default=0)
    score_type: Optional[str] = Field(default=None)
    calculated_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
