from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint

from ..utils import utcnow


class Champion(SQLModel, table=True):
    """A pool-scoped "who wins category X" contest. Status is derived, never stored."""
    __tablename__ = "champions"
    __table_args__ = (UniqueConstraint("pool_id", "name", name="unique_pool_champion_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    pool_id: int = Field(foreign_key="pools.id", index=True)
    name: str = Field(max_length=255)
    description: Optional[str] = Field(default=None)
    deadline: datetime
    points: Optional[int] = Field(default=None)  # None -> pool pts_champion

    result_team_id: Optional[int] = Field(default=None, foreign_key="teams.id")
    decided_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)


class ChampionPick(SQLModel, table=True):
    __tablename__ = "champion_picks"
    __table_args__ = (UniqueConstraint("user_id", "champion_id", name="unique_user_champion"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    champion_id: int = Field(foreign_key="champions.id", index=True)
    team_id: int = Field(foreign_key="teams.id")

    points: int = Field(default=0)
    calculated_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)
