from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..database import get_session
from ..dependencies import require_user
from ..models.user import User
from ..services.predictions import (
    PredictionCreate,
    PredictionUpdate,
    create_prediction,
    update_prediction,
)

router = APIRouter(prefix="/api/predictions", tags=["predictions"])


@router.post("", status_code=201)
async def submit_prediction(
    data: PredictionCreate,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    return create_prediction(db, current_user.id, data, is_admin=current_user.is_admin)


@router.patch("/{prediction_id}")
async def edit_prediction(
    prediction_id: int,
    data: PredictionUpdate,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    return update_prediction(db, prediction_id, current_user.id, data, is_admin=current_user.is_admin)
