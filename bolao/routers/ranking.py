from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from ..database import get_session
from ..dependencies import require_user
from ..models.enums import MatchStatus
from ..models.user import User
from ..services.ranking import RankingFilters, compute_ranking, user_statement

router = APIRouter(prefix="/api/ranking", tags=["ranking"])


def build_filters(
    round_id: Optional[int] = None,
    status: Optional[list[MatchStatus]] = Query(default=None),
    date: Optional[str] = None,
    user_ids: Optional[list[int]] = Query(default=None),
) -> RankingFilters:
    return RankingFilters(round_id=round_id, statuses=status, date=date, user_ids=user_ids)


@router.get("/{pool_id}")
async def read_ranking(
    pool_id: int,
    filters: RankingFilters = Depends(build_filters),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    return compute_ranking(db, pool_id, filters)


@router.get("/{pool_id}/users/{user_id}")
async def read_user_statement(
    pool_id: int,
    user_id: int,
    filters: RankingFilters = Depends(build_filters),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    return user_statement(db, pool_id, user_id, filters)
