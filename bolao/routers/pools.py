import logging
from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..database import get_session
from ..dependencies import require_admin, require_user
from ..services.champions import get_pool
from ..services.pools import PointConfigUpdate, get_point_columns, rescore_matches, update_point_config
from ..models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pools", tags=["pools"])


@router.get("/{pool_id}/points")
async def read_point_config(
    pool_id: int,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    return get_point_columns(get_pool(db, pool_id))


@router.patch("/{pool_id}/points")
async def edit_point_config(
    pool_id: int,
    data: PointConfigUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    match_ids = update_point_config(db, pool_id, data)
    rescored = rescore_matches(db, match_ids)
    if rescored:
        logger.info("Pool %s: rescored %d finished matches", pool_id, rescored)

    return {
        "points": get_point_columns(get_pool(db, pool_id)),
        "rescored_matches": rescored,
    }
