import logging
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from sqlmodel import Session, select

from ..config import LOCK_MINUTES_BEFORE
from ..exceptions import DeadlineViolation, DuplicateEntity, NotFound, PermissionDenied, ValidationFailure
from ..models.enums import MatchStatus, Side
from ..models.match import Match
from ..models.prediction import Prediction
from ..utils import utcnow
from .matches import get_match, is_virtually_locked
from .scoring import calculate_match_points, reset_score

logger = logging.getLogger(__name__)


class PredictionCreate(BaseModel):
    match_id: int
    predicted_home_score: int = Field(ge=0)
    predicted_away_score: int = Field(ge=0)
    predicted_penalty_winner: Optional[Side] = None


class PredictionUpdate(BaseModel):
    match_id: Optional[int] = None
    predicted_home_score: Optional[int] = Field(default=None, ge=0)
    predicted_away_score: Optional[int] = Field(default=None, ge=0)
    predicted_penalty_winner: Optional[Side] = None


def assert_can_edit(match: Match, is_admin: bool, now: Optional[datetime] = None) -> None:
    """Non-admins may only write while the match is OPEN and outside the lock window."""
    if is_admin:
        return

    if MatchStatus(match.status) != MatchStatus.OPEN:
        raise DeadlineViolation(
            "Predictions are locked for this match",
            field="match_id",
            rule="match_locked",
        )

    if is_virtually_locked(match, now):
        raise DeadlineViolation(
            f"Predictions are accepted until {LOCK_MINUTES_BEFORE} minutes before kickoff",
            field="match_id",
            rule="lock_window",
        )


def require_penalties_if_allowed(match: Match, penalty_winner) -> None:
    if not match.is_knockout and penalty_winner:
        raise ValidationFailure(
            "Penalty winner is only allowed for knockout matches",
            field="predicted_penalty_winner",
            rule="penalties_not_knockout",
        )


def find_prediction(db: Session, user_id: int, match_id: int) -> Optional[Prediction]:
    statement = select(Prediction).where(
        Prediction.user_id == user_id,
        Prediction.match_id == match_id
    )
    return db.exec(statement).first()


def create_prediction(
    db: Session,
    user_id: int,
    data: PredictionCreate,
    is_admin: bool = False,
    now: Optional[datetime] = None,
) -> Prediction:
    match = get_match(db, data.match_id)

    assert_can_edit(match, is_admin, now)
    require_penalties_if_allowed(match, data.predicted_penalty_winner)

    if find_prediction(db, user_id, match.id):
        raise DuplicateEntity(
            "A prediction for this match already exists",
            field="match_id",
            rule="duplicate_prediction",
        )

    prediction = Prediction(
        user_id=user_id,
        match_id=match.id,
        predicted_home_score=data.predicted_home_score,
        predicted_away_score=data.predicted_away_score,
        predicted_penalty_winner=data.predicted_penalty_winner,
    )
    db.add(prediction)
    db.commit()
    db.refresh(prediction)

    logger.info("User %s predicted match %s", user_id, match.id)
    return prediction


def update_prediction(
    db: Session,
    prediction_id: int,
    user_id: int,
    data: PredictionUpdate,
    is_admin: bool = False,
    now: Optional[datetime] = None,
) -> Prediction:
    """Owner edits are subject to the lock; admins may edit anytime and trigger a rescore."""
    prediction = db.get(Prediction, prediction_id)
    if not prediction:
        raise NotFound("Prediction", prediction_id)

    if prediction.user_id != user_id and not is_admin:
        raise PermissionDenied(
            "You cannot edit this prediction",
            field="prediction_id",
            rule="not_owner",
        )

    target_match_id = data.match_id if data.match_id is not None else prediction.match_id
    match = get_match(db, target_match_id)

    moved = target_match_id != prediction.match_id
    if moved and find_prediction(db, prediction.user_id, target_match_id):
        raise DuplicateEntity(
            "This user already has a prediction for the selected match",
            field="match_id",
            rule="duplicate_prediction",
        )

    if moved:
        # Leaving a locked or finished match is an edit of that match too
        assert_can_edit(get_match(db, prediction.match_id), is_admin, now)
    assert_can_edit(match, is_admin, now)

    if "predicted_penalty_winner" in data.model_fields_set:
        penalty = data.predicted_penalty_winner
    else:
        penalty = prediction.predicted_penalty_winner
    require_penalties_if_allowed(match, penalty)

    prediction.match_id = target_match_id
    if data.predicted_home_score is not None:
        prediction.predicted_home_score = data.predicted_home_score
    if data.predicted_away_score is not None:
        prediction.predicted_away_score = data.predicted_away_score
    prediction.predicted_penalty_winner = penalty
    prediction.updated_at = utcnow()
    if moved:
        reset_score(prediction)

    db.add(prediction)
    db.commit()
    db.refresh(prediction)

    if is_admin and MatchStatus(match.status) == MatchStatus.FINAL:
        calculate_match_points(db, match)
        db.refresh(prediction)

    return prediction


def list_match_predictions(
    db: Session,
    match_id: int,
    user_id: int,
    is_admin: bool = False,
) -> list[Prediction]:
    """All predictions once the match is no longer OPEN; only the caller's own before that."""
    match = get_match(db, match_id)
    revealed = MatchStatus(match.status) != MatchStatus.OPEN

    statement = select(Prediction).where(Prediction.match_id == match_id)
    if not (revealed or is_admin):
        statement = statement.where(Prediction.user_id == user_id)

    return list(db.exec(statement.order_by(Prediction.points_earned.desc(), Prediction.id)).all())
