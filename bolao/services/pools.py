import logging
from typing import Iterable, Optional

from pydantic import BaseModel, Field
from sqlmodel import Session, select

from ..exceptions import NotFound, ValidationFailure
from ..models.champion import Champion
from ..models.enums import MatchStatus
from ..models.match import Match
from ..models.pool import Pool
from ..utils import utcnow
from .champions import recalculate_champion
from .scoring import calculate_match_points

logger = logging.getLogger(__name__)

# PointConfigUpdate field -> Pool column
POINT_COLUMNS = {
    "exact_score": "pts_exact_score",
    "winner_score": "pts_winner_score",
    "goal_difference": "pts_goal_difference",
    "loser_score": "pts_loser_score",
    "winner": "pts_winner",
    "draw": "pts_draw",
    "exact_draw": "pts_exact_draw",
    "penalties": "pts_penalties",
    "champion": "pts_champion",
}

# Legacy aliases: unset goal_difference -> winner, unset exact_draw -> exact_score
NULLABLE_POINTS = {"goal_difference", "exact_draw"}


class PointConfigUpdate(BaseModel):
    exact_score: Optional[int] = Field(default=None, ge=0)
    winner_score: Optional[int] = Field(default=None, ge=0)
    goal_difference: Optional[int] = Field(default=None, ge=0)
    loser_score: Optional[int] = Field(default=None, ge=0)
    winner: Optional[int] = Field(default=None, ge=0)
    draw: Optional[int] = Field(default=None, ge=0)
    exact_draw: Optional[int] = Field(default=None, ge=0)
    penalties: Optional[int] = Field(default=None, ge=0)
    champion: Optional[int] = Field(default=None, ge=0)


def get_point_columns(pool: Pool) -> dict[str, Optional[int]]:
    return {name: getattr(pool, column) for name, column in POINT_COLUMNS.items()}


def update_point_config(db: Session, pool_id: int, data: PointConfigUpdate) -> list[int]:
    """
    Store new point values for a pool.

    Returns the ids of the pool's FINAL matches that must be rescored; the
    caller decides how to fan them out (see ``rescore_matches``). An update
    that changes no value returns an empty list.
    """
    pool = db.get(Pool, pool_id)
    if not pool:
        raise NotFound("Pool", pool_id)

    values = data.model_dump(exclude_unset=True)
    for name, value in values.items():
        if value is None and name not in NULLABLE_POINTS:
            raise ValidationFailure(f"{name} cannot be empty", field=name, rule="required")

    changed = []
    for name, value in values.items():
        column = POINT_COLUMNS[name]
        if getattr(pool, column) != value:
            setattr(pool, column, value)
            changed.append(name)

    if not changed:
        return []

    pool.updated_at = utcnow()
    db.add(pool)
    db.commit()
    logger.info("Pool %s point values changed: %s", pool_id, ", ".join(changed))

    if "champion" in changed:
        rescore_default_champions(db, pool_id)

    if changed == ["champion"]:
        return []

    statement = select(Match.id).where(Match.pool_id == pool_id, Match.status == MatchStatus.FINAL)
    return list(db.exec(statement).all())


def rescore_matches(db: Session, match_ids: Iterable[int]) -> int:
    """Rescore each match independently; returns how many were rescored."""
    count = 0
    for match_id in match_ids:
        match = db.get(Match, match_id)
        if not match:
            continue
        calculate_match_points(db, match)
        count += 1
    return count


def rescore_default_champions(db: Session, pool_id: int) -> None:
    """Decided champions that use the pool's default points follow its new value."""
    statement = select(Champion).where(
        Champion.pool_id == pool_id,
        Champion.result_team_id != None,  # noqa: E711
        Champion.points == None,  # noqa: E711
    )
    for champion in db.exec(statement).all():
        recalculate_champion(db, champion)
