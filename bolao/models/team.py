from typing import Optional
from sqlmodel import SQLModel, Field


class Team(SQLModel, table=True):
    __tablename__ = "teams"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, max_length=100)
    badge_url: Optional[str] = Field(default=None, max_length=255)


class Round(SQLModel, table=True):
    """A named grouping of matches, reusable across pools."""
    __tablename__ = "rounds"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    sort_order: int = Field(default=0)
