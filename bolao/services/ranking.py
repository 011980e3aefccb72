import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from pydantic import BaseModel
from sqlmodel import Session, select

from ..exceptions import NotFound, ValidationFailure
from ..models.champion import Champion, ChampionPick
from ..models.enums import MatchStatus, ScoreType
from ..models.match import Match
from ..models.pool import Pool, PoolParticipant, PoolRound
from ..models.prediction import Prediction
from ..models.user import User

logger = logging.getLogger(__name__)

COUNTERS = ("pc", "pv", "dg", "pp", "em", "v", "e")

# Classification tag -> counters it increments
SCORE_TYPE_BUCKETS: dict[str, tuple[str, ...]] = {
    ScoreType.EXACT_SCORE.value: ("pc", "v"),
    ScoreType.WINNER_SCORE.value: ("pv", "v"),
    ScoreType.GOAL_DIFFERENCE.value: ("dg", "v"),
    ScoreType.LOSER_SCORE.value: ("pp", "v"),
    ScoreType.WINNER.value: ("pv", "v"),
    ScoreType.DRAW.value: ("em",),
    ScoreType.MISS.value: ("e",),
}

DEFAULT_STATUSES = (MatchStatus.LOCKED, MatchStatus.FINAL)

_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


class RankingFilters(BaseModel):
    round_id: Optional[int] = None
    statuses: Optional[list[MatchStatus]] = None
    date: Optional[str] = None  # YYYY-MM-DD
    user_ids: Optional[list[int]] = None


class RankingRow(BaseModel):
    user_id: int
    name: str
    total_points: int = 0
    match_points: int = 0
    champion_points: int = 0
    pc: int = 0  # exact score
    pv: int = 0  # winner + winner's goals, or winner only
    dg: int = 0  # goal difference
    pp: int = 0  # loser's goals
    em: int = 0  # draws
    v: int = 0  # correct winner
    e: int = 0  # misses
    penalties: int = 0  # predictions that earned penalty points
    position: Optional[int] = None


def buckets_for(score_type: Optional[str]) -> tuple[str, ...]:
    if score_type is None:
        return ()
    value = score_type.value if isinstance(score_type, ScoreType) else str(score_type)
    return SCORE_TYPE_BUCKETS.get(value, ())


def add_prediction(row: RankingRow, prediction: Prediction) -> None:
    points = prediction.points_earned or 0
    row.match_points += points
    row.total_points += points
    for counter in buckets_for(prediction.score_type):
        setattr(row, counter, getattr(row, counter) + 1)
    if (prediction.points_penalties or 0) > 0:
        row.penalties += 1


def add_champion_pick(row: RankingRow, pick: ChampionPick) -> None:
    points = pick.points or 0
    row.champion_points += points
    row.total_points += points


def sort_key(row: RankingRow) -> tuple[int, ...]:
    return (
        -row.total_points,
        -row.champion_points,
        -row.pc,
        -row.em,
        -row.pv,
        -row.dg,
        -row.pp,
        -row.v,
    )


def sort_ranking(rows: Iterable[RankingRow]) -> list[RankingRow]:
    """Order by total, champion points, pc, em, pv, dg, pp, v and number positions.

    ``sorted`` is stable, so rows tied on every key keep their input order.
    """
    ranked = sorted(rows, key=sort_key)
    for index, row in enumerate(ranked):
        row.position = index + 1
    return ranked


def aggregate_ranking(
    participants: Iterable[User],
    predictions: Iterable[Prediction],
    picks: Iterable[ChampionPick],
) -> list[RankingRow]:
    """Fold stored prediction and pick scores into one sorted row per participant."""
    rows: dict[int, RankingRow] = {}
    for user in participants:
        rows[user.id] = RankingRow(user_id=user.id, name=user.name)

    for prediction in predictions:
        row = rows.get(prediction.user_id)
        if row:
            add_prediction(row, prediction)

    for pick in picks:
        row = rows.get(pick.user_id)
        if row:
            add_champion_pick(row, pick)

    return sort_ranking(rows.values())


def parse_day_range(value: Optional[str]) -> Optional[tuple[datetime, datetime]]:
    """'YYYY-MM-DD' -> (start, end) of that day; anything else is ignored."""
    if not value:
        return None
    found = _DATE_RE.match(value)
    if not found:
        return None
    try:
        start = datetime(int(found.group(1)), int(found.group(2)), int(found.group(3)), tzinfo=timezone.utc)
    except ValueError:
        return None
    return start, start + timedelta(days=1) - timedelta(microseconds=1)


def _get_pool(db: Session, pool_id: int) -> Pool:
    pool = db.get(Pool, pool_id)
    if not pool:
        raise NotFound("Pool", pool_id)
    return pool


def _ensure_round_in_pool(db: Session, pool_id: int, round_id: int) -> None:
    statement = select(PoolRound).where(PoolRound.pool_id == pool_id, PoolRound.round_id == round_id)
    if not db.exec(statement).first():
        raise ValidationFailure(
            "Round does not belong to the pool",
            field="round_id",
            rule="round_not_in_pool",
        )


def _match_filters(pool_id: int, filters: RankingFilters, default_statuses=DEFAULT_STATUSES) -> list:
    conditions = [Match.pool_id == pool_id]

    statuses = filters.statuses or default_statuses
    if statuses:
        conditions.append(Match.status.in_(list(statuses)))
    if filters.round_id is not None:
        conditions.append(Match.round_id == filters.round_id)

    day = parse_day_range(filters.date)
    if day:
        conditions.append(Match.scheduled_datetime >= day[0])
        conditions.append(Match.scheduled_datetime <= day[1])

    return conditions


def load_participants(db: Session, pool_id: int, user_ids: Optional[list[int]] = None) -> list[User]:
    statement = (
        select(User)
        .join(PoolParticipant, PoolParticipant.user_id == User.id)
        .where(
            PoolParticipant.pool_id == pool_id,
            User.is_admin == False,  # noqa: E712
            User.active == True,  # noqa: E712
        )
        .order_by(PoolParticipant.joined_at, PoolParticipant.id)
    )
    if user_ids is not None:
        statement = statement.where(User.id.in_(user_ids))
    return list(db.exec(statement).all())


def load_pool_predictions(
    db: Session,
    pool_id: int,
    user_ids: list[int],
    filters: RankingFilters,
) -> list[Prediction]:
    statement = (
        select(Prediction)
        .join(Match, Prediction.match_id == Match.id)
        .where(Prediction.user_id.in_(user_ids), *_match_filters(pool_id, filters))
    )
    return list(db.exec(statement).all())


def load_pool_picks(db: Session, pool_id: int, user_ids: list[int]) -> list[ChampionPick]:
    statement = (
        select(ChampionPick)
        .join(Champion, ChampionPick.champion_id == Champion.id)
        .where(Champion.pool_id == pool_id, ChampionPick.user_id.in_(user_ids))
    )
    return list(db.exec(statement).all())


def compute_ranking(db: Session, pool_id: int, filters: Optional[RankingFilters] = None) -> list[RankingRow]:
    """Leaderboard of a pool, recomputed from the stored scores on every call."""
    filters = filters or RankingFilters()
    _get_pool(db, pool_id)
    if filters.round_id is not None:
        _ensure_round_in_pool(db, pool_id, filters.round_id)

    participants = load_participants(db, pool_id, filters.user_ids)
    user_ids = [user.id for user in participants]

    predictions = load_pool_predictions(db, pool_id, user_ids, filters)
    picks = load_pool_picks(db, pool_id, user_ids)

    ranking = aggregate_ranking(participants, predictions, picks)
    logger.debug("Ranking for pool %s: %d rows", pool_id, len(ranking))
    return ranking


def user_statement(
    db: Session,
    pool_id: int,
    user_id: int,
    filters: Optional[RankingFilters] = None,
) -> dict:
    """One user's summary, ranking position, predictions and champion picks."""
    filters = filters or RankingFilters()
    pool = _get_pool(db, pool_id)
    user = db.get(User, user_id)
    if not user:
        raise NotFound("User", user_id)

    statement = (
        select(Prediction, Match)
        .join(Match, Prediction.match_id == Match.id)
        .where(Prediction.user_id == user_id, *_match_filters(pool_id, filters, default_statuses=()))
        .order_by(Prediction.created_at, Prediction.id)
    )
    rows = db.exec(statement).all()
    picks = load_pool_picks(db, pool_id, [user_id])

    summary = RankingRow(user_id=user.id, name=user.name)
    for prediction, _match in rows:
        add_prediction(summary, prediction)
    for pick in picks:
        add_champion_pick(summary, pick)

    ranking = compute_ranking(db, pool_id, filters.model_copy(update={"user_ids": None}))
    position = next((row.position for row in ranking if row.user_id == user_id), None)

    return {
        "pool": {"id": pool.id, "name": pool.name},
        "summary": summary,
        "position": position,
        "predictions": [
            {
                "prediction": prediction,
                "match": match,
            }
            for prediction, match in rows
        ],
        "champion_picks": picks,
    }
