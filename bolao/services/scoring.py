import logging
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from sqlmodel import Session, select

from ..config import DEFAULT_POINTS
from ..exceptions import ValidationFailure
from ..models.enums import MatchStatus, Outcome, ScoreType, Side
from ..models.match import Match
from ..models.pool import Pool
from ..models.prediction import Prediction
from ..utils import utcnow

logger = logging.getLogger(__name__)


class PointConfig(BaseModel):
    """Point values for each scoring tier of a pool."""

    exact_score: int = Field(default=DEFAULT_POINTS["exact_score"], ge=0)
    winner_score: int = Field(default=DEFAULT_POINTS["winner_score"], ge=0)
    goal_difference: Optional[int] = Field(default=DEFAULT_POINTS["goal_difference"], ge=0)
    loser_score: int = Field(default=DEFAULT_POINTS["loser_score"], ge=0)
    winner: int = Field(default=DEFAULT_POINTS["winner"], ge=0)
    draw: int = Field(default=DEFAULT_POINTS["draw"], ge=0)
    exact_draw: Optional[int] = Field(default=DEFAULT_POINTS["exact_draw"], ge=0)
    penalties: int = Field(default=DEFAULT_POINTS["penalties"], ge=0)

    model_config = {"frozen": True}

    @property
    def goal_difference_points(self) -> int:
        # Legacy pools only had a generic "winner" value
        return self.winner if self.goal_difference is None else self.goal_difference

    @property
    def exact_draw_points(self) -> int:
        return self.exact_score if self.exact_draw is None else self.exact_draw

    @classmethod
    def from_pool(cls, pool: Pool) -> "PointConfig":
        return cls(
            exact_score=pool.pts_exact_score,
            winner_score=pool.pts_winner_score,
            goal_difference=pool.pts_goal_difference,
            loser_score=pool.pts_loser_score,
            winner=pool.pts_winner,
            draw=pool.pts_draw,
            exact_draw=pool.pts_exact_draw,
            penalties=pool.pts_penalties,
        )


class ScoreResult(BaseModel):
    points: int
    points_score: int
    points_penalties: int
    score_type: ScoreType
    correct_winner: bool
    correct_exact_score: bool
    correct_penalty: bool


def to_side(value) -> Optional[Side]:
    """Normalize a penalty side ("CASA", Side.HOME, " FORA ") or None."""
    if value is None:
        return None
    if isinstance(value, Side):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return Side(text)
    except ValueError:
        raise ValidationFailure(
            f"Invalid penalty winner: {value!r}",
            field="penalty_winner",
            rule="invalid_side",
        )


def to_goals(value, field: str) -> int:
    """Coerce a goal count to int; upstream layers sometimes hand us strings."""
    if value is None or isinstance(value, bool):
        raise ValidationFailure(f"{field} is required", field=field, rule="required")
    try:
        goals = int(str(value).strip())
    except ValueError:
        raise ValidationFailure(f"{field} must be an integer", field=field, rule="not_integer")
    if goals < 0:
        raise ValidationFailure(f"{field} cannot be negative", field=field, rule="negative")
    return goals


def resolve_outcome(
    home_goals: int,
    away_goals: int,
    is_knockout: bool = False,
    penalty_winner: Optional[Side] = None,
) -> Outcome:
    """Winner side of a scoreline; a knockout tie is decided by the penalty winner."""
    if home_goals > away_goals:
        return Outcome.HOME
    if away_goals > home_goals:
        return Outcome.AWAY
    if is_knockout and penalty_winner:
        return Outcome(to_side(penalty_winner).value)
    return Outcome.DRAW


def score_prediction(config: PointConfig, match: Match, prediction: Prediction) -> ScoreResult:
    """
    Calculate the points earned by one prediction against a finished match.

    Tiers are checked in order and the first one that applies wins:

    1. Penalty pick on a knockout tie (exclusive, nothing else is added)
    2. Exact score (not for knockout ties)
    3. Correct winner + winner's goals
    4. Correct winner + goal difference
    5. Correct winner + loser's goals
    6. Draw predicted for a draw
    7. Correct winner only
    8. Miss
    """
    actual_home = to_goals(match.actual_home_score, "actual_home_score")
    actual_away = to_goals(match.actual_away_score, "actual_away_score")
    predicted_home = to_goals(prediction.predicted_home_score, "predicted_home_score")
    predicted_away = to_goals(prediction.predicted_away_score, "predicted_away_score")
    is_knockout = bool(match.is_knockout)
    actual_penalty = to_side(match.penalty_winner)
    predicted_penalty = to_side(prediction.predicted_penalty_winner)

    tied = actual_home == actual_away

    def result(points: int, score_type: ScoreType, correct_winner: bool, exact: bool = False) -> ScoreResult:
        return ScoreResult(
            points=points,
            points_score=points,
            points_penalties=0,
            score_type=score_type,
            correct_winner=correct_winner,
            correct_exact_score=exact,
            correct_penalty=False,
        )

    # 1. Penalty override
    if is_knockout and tied and actual_penalty is not None and predicted_penalty == actual_penalty:
        return ScoreResult(
            points=config.penalties,
            points_score=0,
            points_penalties=config.penalties,
            score_type=ScoreType.PENALTIES_ONLY,
            correct_winner=True,
            correct_exact_score=False,
            correct_penalty=True,
        )

    # 2. Exact score
    if predicted_home == actual_home and predicted_away == actual_away and (not is_knockout or not tied):
        points = config.exact_draw_points if tied else config.exact_score
        return result(points, ScoreType.EXACT_SCORE, True, exact=True)

    actual_outcome = resolve_outcome(actual_home, actual_away, is_knockout, actual_penalty)
    predicted_outcome = resolve_outcome(predicted_home, predicted_away, is_knockout, predicted_penalty)
    correct_winner = actual_outcome != Outcome.DRAW and predicted_outcome == actual_outcome

    if actual_outcome == Outcome.HOME:
        winner_goals, loser_goals = (actual_home, predicted_home), (actual_away, predicted_away)
    else:
        winner_goals, loser_goals = (actual_away, predicted_away), (actual_home, predicted_home)

    # 3. Winner + winner's goals
    if correct_winner and winner_goals[0] == winner_goals[1]:
        return result(config.winner_score, ScoreType.WINNER_SCORE, True)

    # 4. Goal difference
    if correct_winner and actual_home - actual_away == predicted_home - predicted_away:
        return result(config.goal_difference_points, ScoreType.GOAL_DIFFERENCE, True)

    # 5. Loser's goals
    if correct_winner and loser_goals[0] == loser_goals[1]:
        return result(config.loser_score, ScoreType.LOSER_SCORE, True)

    # 6. Draw
    if actual_outcome == Outcome.DRAW and predicted_outcome == Outcome.DRAW:
        return result(config.draw, ScoreType.DRAW, True)

    # 7. Winner only
    if correct_winner:
        return result(config.winner, ScoreType.WINNER, True)

    return result(0, ScoreType.MISS, False)


def apply_score(prediction: Prediction, score: ScoreResult, now: Optional[datetime] = None) -> Prediction:
    prediction.points_earned = score.points
    prediction.points_score = score.points_score
    prediction.points_penalties = score.points_penalties
    prediction.score_type = score.score_type.value
    prediction.calculated_at = now or utcnow()
    return prediction


def reset_score(prediction: Prediction) -> Prediction:
    prediction.points_earned = 0
    prediction.points_score = 0
    prediction.points_penalties = 0
    prediction.score_type = None
    prediction.calculated_at = None
    return prediction


def get_point_config(db: Session, pool_id: Optional[int]) -> PointConfig:
    pool = db.get(Pool, pool_id) if pool_id is not None else None
    if not pool:
        return PointConfig()
    return PointConfig.from_pool(pool)


def calculate_match_points(db: Session, match: Match) -> list[Prediction]:
    """
    Calculate and store points for all predictions on a finished match.
    Called when a match is finalized and when the pool's points change.
    """
    if MatchStatus(match.status) != MatchStatus.FINAL:
        return []

    if match.actual_home_score is None or match.actual_away_score is None:
        raise ValidationFailure(
            "Cannot score a match without its result",
            field="actual_home_score",
            rule="result_required",
        )

    config = get_point_config(db, match.pool_id)
    predictions = db.exec(select(Prediction).where(Prediction.match_id == match.id)).all()

    now = utcnow()
    for prediction in predictions:
        score = score_prediction(config, match, prediction)
        apply_score(prediction, score, now)
        logger.debug(
            "Prediction %s on match %s: %s (%s)",
            prediction.id, match.id, score.points, score.score_type.value
        )
        db.add(prediction)

    db.commit()
    logger.info("Scored %d predictions for match %s", len(predictions), match.id)
    return list(predictions)


def reset_match_points(db: Session, match: Match) -> list[Prediction]:
    """Zero every prediction of a match that left FINAL."""
    predictions = db.exec(select(Prediction).where(Prediction.match_id == match.id)).all()
    for prediction in predictions:
        reset_score(prediction)
        db.add(prediction)

    db.commit()
    logger.info("Reset %d predictions for match %s", len(predictions), match.id)
    return list(predictions)
