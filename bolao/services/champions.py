import logging
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from sqlmodel import Session, select

from ..exceptions import DeadlineViolation, DuplicateEntity, NotFound, PermissionDenied, ValidationFailure
from ..models.champion import Champion, ChampionPick
from ..models.enums import ChampionStatus
from ..models.pool import Pool, PoolTeam
from ..utils import as_utc, utcnow

logger = logging.getLogger(__name__)


class ChampionCreate(BaseModel):
    pool_id: int
    name: str = Field(max_length=255)
    description: Optional[str] = None
    deadline: datetime
    points: Optional[int] = Field(default=None, ge=0)


class ChampionUpdate(BaseModel):
    """
    Partial update. Sending ``result_team_id: null`` clears the result and
    ``points: null`` falls back to the pool value.
    """
    name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    points: Optional[int] = Field(default=None, ge=0)
    result_team_id: Optional[int] = None


class PickCreate(BaseModel):
    champion_id: int
    team_id: int


class PickUpdate(BaseModel):
    champion_id: Optional[int] = None
    team_id: Optional[int] = None


def compute_champion_status(champion: Champion, now: Optional[datetime] = None) -> ChampionStatus:
    if champion.result_team_id:
        return ChampionStatus.RESULT_SET

    now = as_utc(now) or utcnow()
    if now > as_utc(champion.deadline):
        return ChampionStatus.DEADLINE_PASSED

    return ChampionStatus.OPEN


def is_champion_locked(champion: Champion, now: Optional[datetime] = None) -> bool:
    return compute_champion_status(champion, now) != ChampionStatus.OPEN


def champion_points(champion: Champion, default_points: int) -> int:
    return champion.points if champion.points is not None else default_points


def score_champion_result(
    champion: Champion,
    picks: list[ChampionPick],
    default_points: int,
    now: Optional[datetime] = None,
) -> list[ChampionPick]:
    """
    Score every pick of a champion in place.

    With a result set, picks on the winning team get the champion's points and
    the rest get 0, all stamped with ``now``. Without a result, every pick is
    reset to 0 and unstamped.
    """
    if not champion.result_team_id:
        for pick in picks:
            pick.points = 0
            pick.calculated_at = None
        return picks

    points = champion_points(champion, default_points)
    now = as_utc(now) or utcnow()
    for pick in picks:
        pick.points = points if pick.team_id == champion.result_team_id else 0
        pick.calculated_at = now
    return picks


def assert_pick_deadline(champion: Champion, is_admin: bool, now: Optional[datetime] = None) -> None:
    if is_admin:
        return
    now = as_utc(now) or utcnow()
    if now > as_utc(champion.deadline):
        raise DeadlineViolation(
            "The deadline for this champion has passed",
            field="champion_id",
            rule="deadline_passed",
        )


def get_champion(db: Session, champion_id: int) -> Champion:
    champion = db.get(Champion, champion_id)
    if not champion:
        raise NotFound("Champion", champion_id)
    return champion


def get_pool(db: Session, pool_id: int) -> Pool:
    pool = db.get(Pool, pool_id)
    if not pool:
        raise NotFound("Pool", pool_id)
    return pool


def ensure_team_in_pool(db: Session, team_id: int, pool_id: int, field: str = "team_id") -> None:
    statement = select(PoolTeam).where(PoolTeam.pool_id == pool_id, PoolTeam.team_id == team_id)
    if not db.exec(statement).first():
        raise ValidationFailure(
            "The team must belong to the pool",
            field=field,
            rule="team_not_in_pool",
        )


def recalculate_champion(db: Session, champion: Champion, now: Optional[datetime] = None) -> list[ChampionPick]:
    """Score (or reset) and persist all picks of a champion."""
    pool = get_pool(db, champion.pool_id)
    picks = db.exec(select(ChampionPick).where(ChampionPick.champion_id == champion.id)).all()

    score_champion_result(champion, list(picks), pool.pts_champion, now)
    for pick in picks:
        db.add(pick)
    db.commit()

    logger.info(
        "Champion %s: %s %d picks",
        champion.id, "scored" if champion.result_team_id else "reset", len(picks)
    )
    return list(picks)


def create_champion(db: Session, data: ChampionCreate) -> Champion:
    get_pool(db, data.pool_id)

    statement = select(Champion).where(Champion.pool_id == data.pool_id, Champion.name == data.name)
    if db.exec(statement).first():
        raise DuplicateEntity(
            "A champion with this name already exists in the pool",
            field="name",
            rule="duplicate_champion",
        )

    champion = Champion(
        pool_id=data.pool_id,
        name=data.name,
        description=data.description,
        deadline=as_utc(data.deadline),
        points=data.points,
    )
    db.add(champion)
    db.commit()
    db.refresh(champion)
    return champion


def update_champion(
    db: Session,
    champion_id: int,
    data: ChampionUpdate,
    now: Optional[datetime] = None,
) -> Champion:
    """
    Update a champion and keep its picks consistent with the result.

    - result set: all picks are scored
    - result explicitly cleared: all picks reset
    - only the deadline moved to the future while a result exists: the
      champion reopens, as if the result had been cleared
    - points changed while a result exists: all picks are rescored
    """
    champion = get_champion(db, champion_id)
    now = as_utc(now) or utcnow()
    changes = data.model_fields_set

    deadline = as_utc(data.deadline) if data.deadline is not None else as_utc(champion.deadline)

    if data.name and data.name != champion.name:
        statement = select(Champion).where(
            Champion.pool_id == champion.pool_id,
            Champion.name == data.name
        )
        if db.exec(statement).first():
            raise DuplicateEntity(
                "A champion with this name already exists in the pool",
                field="name",
                rule="duplicate_champion",
            )

    has_result = "result_team_id" in changes
    if has_result and data.result_team_id:
        ensure_team_in_pool(db, data.result_team_id, champion.pool_id, field="result_team_id")

    moving_deadline_to_future = data.deadline is not None and deadline > now
    reopen = moving_deadline_to_future and not has_result and bool(champion.result_team_id)

    if has_result:
        if data.result_team_id is None:
            champion.result_team_id = None
            champion.decided_at = None
        elif data.result_team_id != champion.result_team_id:
            champion.result_team_id = data.result_team_id
            champion.decided_at = now
    elif reopen:
        logger.info("Champion %s reopened by deadline moved to %s", champion.id, deadline)
        champion.result_team_id = None
        champion.decided_at = None

    if data.name:
        champion.name = data.name
    if data.description is not None:
        champion.description = data.description
    if "points" in changes:
        champion.points = data.points
    champion.deadline = deadline

    db.add(champion)
    db.commit()
    db.refresh(champion)

    repriced = "points" in changes and bool(champion.result_team_id)
    if has_result or reopen or repriced:
        recalculate_champion(db, champion, now)

    return champion


def _find_pick(db: Session, user_id: int, champion_id: int) -> Optional[ChampionPick]:
    statement = select(ChampionPick).where(
        ChampionPick.champion_id == champion_id,
        ChampionPick.user_id == user_id
    )
    return db.exec(statement).first()


def create_pick(
    db: Session,
    user_id: int,
    data: PickCreate,
    is_admin: bool = False,
    now: Optional[datetime] = None,
) -> ChampionPick:
    champion = get_champion(db, data.champion_id)

    assert_pick_deadline(champion, is_admin, now)
    ensure_team_in_pool(db, data.team_id, champion.pool_id)

    if _find_pick(db, user_id, champion.id):
        raise DuplicateEntity(
            "You already picked a team for this champion",
            field="champion_id",
            rule="duplicate_pick",
        )

    pick = ChampionPick(user_id=user_id, champion_id=champion.id, team_id=data.team_id)
    db.add(pick)
    db.commit()
    db.refresh(pick)

    if champion.result_team_id:
        recalculate_champion(db, champion, now)
        db.refresh(pick)

    return pick


def update_pick(
    db: Session,
    pick_id: int,
    user_id: int,
    data: PickUpdate,
    is_admin: bool = False,
    now: Optional[datetime] = None,
) -> ChampionPick:
    pick = db.get(ChampionPick, pick_id)
    if not pick:
        raise NotFound("ChampionPick", pick_id)

    if pick.user_id != user_id and not is_admin:
        raise PermissionDenied("You cannot edit this pick", field="pick_id", rule="not_owner")

    assert_pick_deadline(get_champion(db, pick.champion_id), is_admin, now)

    target_champion_id = data.champion_id if data.champion_id is not None else pick.champion_id
    champion = get_champion(db, target_champion_id)
    assert_pick_deadline(champion, is_admin, now)

    target_team_id = data.team_id if data.team_id is not None else pick.team_id
    ensure_team_in_pool(db, target_team_id, champion.pool_id)

    if target_champion_id != pick.champion_id:
        duplicate = _find_pick(db, pick.user_id, target_champion_id)
        if duplicate and duplicate.id != pick.id:
            raise DuplicateEntity(
                "This user already has a pick for the champion",
                field="champion_id",
                rule="duplicate_pick",
            )

    pick.champion_id = target_champion_id
    pick.team_id = target_team_id
    db.add(pick)
    db.commit()
    db.refresh(pick)

    # Also clears points carried over from a previously decided champion
    recalculate_champion(db, champion, now)
    db.refresh(pick)

    return pick


def list_champion_picks(
    db: Session,
    champion_id: int,
    user_id: int,
    is_admin: bool = False,
    now: Optional[datetime] = None,
) -> list[ChampionPick]:
    """Everyone's picks once the champion is locked; only the caller's own before that."""
    champion = get_champion(db, champion_id)
    reveal_all = is_admin or is_champion_locked(champion, now)

    statement = select(ChampionPick).where(ChampionPick.champion_id == champion_id)
    if not reveal_all:
        statement = statement.where(ChampionPick.user_id == user_id)

    return list(db.exec(statement.order_by(ChampionPick.created_at, ChampionPick.id)).all())
