from typing import Optional
from fastapi import APIRouter, Depends
from sqlmodel import Session
from pydantic import BaseModel

from ..database import get_session
from ..dependencies import require_admin, require_user
from ..models.enums import MatchStatus, Side
from ..models.user import User
from ..services.matches import MatchResult, change_match_status, effective_status, get_match
from ..services.predictions import list_match_predictions

router = APIRouter(prefix="/api/matches", tags=["matches"])


class StatusChange(BaseModel):
    status: MatchStatus
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    penalty_winner: Optional[Side] = None


def match_to_dict(match, now=None) -> dict:
    return {
        "id": match.id,
        "pool_id": match.pool_id,
        "round_id": match.round_id,
        "home_team_id": match.home_team_id,
        "away_team_id": match.away_team_id,
        "scheduled_datetime": match.scheduled_datetime,
        "is_knockout": match.is_knockout,
        "status": match.status,
        "effective_status": effective_status(match, now),
        "actual_home_score": match.actual_home_score,
        "actual_away_score": match.actual_away_score,
        "penalty_winner": match.penalty_winner,
    }


@router.post("/{match_id}/status")
async def update_match_status(
    match_id: int,
    data: StatusChange,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    """Move a match through its lifecycle; finalizing scores every prediction."""
    result = MatchResult(**data.model_dump(exclude={"status"}, exclude_unset=True))
    match = change_match_status(db, match_id, data.status, result, is_admin=current_user.is_admin)
    return match_to_dict(match)


@router.get("/{match_id}")
async def read_match(
    match_id: int,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    return match_to_dict(get_match(db, match_id))


@router.get("/{match_id}/predictions")
async def read_match_predictions(
    match_id: int,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    return list_match_predictions(db, match_id, current_user.id, current_user.is_admin)
