import logging
from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel
from sqlmodel import Session

from ..config import LOCK_MINUTES_AFTER, LOCK_MINUTES_BEFORE
from ..exceptions import InvalidTransition, NotFound, PermissionDenied, ValidationFailure
from ..models.enums import MatchStatus, Side
from ..models.match import Match
from ..utils import as_utc, utcnow
from .scoring import calculate_match_points, reset_match_points, to_goals, to_side

logger = logging.getLogger(__name__)

# Finalizing straight from OPEN is allowed (score already known)
ALLOWED_TRANSITIONS: dict[MatchStatus, set[MatchStatus]] = {
    MatchStatus.OPEN: {MatchStatus.LOCKED, MatchStatus.FINAL},
    MatchStatus.LOCKED: {MatchStatus.FINAL},
    MatchStatus.FINAL: {MatchStatus.OPEN, MatchStatus.LOCKED},
}


class MatchResult(BaseModel):
    """Result payload sent along with a transition to FINAL."""
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    penalty_winner: Optional[Side] = None


class MatchTransition(BaseModel):
    match_id: Optional[int]
    previous_status: MatchStatus
    status: MatchStatus
    rescore: bool = False
    reset: bool = False


def is_valid_transition(current: MatchStatus, target: MatchStatus) -> bool:
    if current == target:
        return True
    return target in ALLOWED_TRANSITIONS.get(current, set())


def ensure_valid_transition(current, target) -> None:
    current, target = MatchStatus(current), MatchStatus(target)
    if not is_valid_transition(current, target):
        raise InvalidTransition(current.value, target.value)


def validate_final_result(
    is_knockout: bool,
    home_score,
    away_score,
    penalty_winner,
) -> tuple[int, int, Optional[Side]]:
    """
    Check a result before a match enters FINAL.

    Returns the normalized (home, away, penalty_winner); the penalty winner is
    only kept for knockout ties.
    """
    if home_score is None or away_score is None:
        raise ValidationFailure(
            "Home and away scores are required to finalize a match",
            field="home_score" if home_score is None else "away_score",
            rule="result_required",
        )

    home = to_goals(home_score, "home_score")
    away = to_goals(away_score, "away_score")
    side = to_side(penalty_winner)

    if not is_knockout:
        if side is not None:
            raise ValidationFailure(
                "Penalty winner is only allowed for knockout matches",
                field="penalty_winner",
                rule="penalties_not_knockout",
            )
        return home, away, None

    if home == away:
        if side is None:
            raise ValidationFailure(
                "A tied knockout match needs a penalty winner",
                field="penalty_winner",
                rule="penalties_required",
            )
        return home, away, side

    return home, away, None


def is_virtually_locked(match: Match, now: Optional[datetime] = None) -> bool:
    """True from LOCK_MINUTES_BEFORE kickoff until LOCK_MINUTES_AFTER it.

    Matches far in the past or future are outside the window, so an admin can
    reopen them without the lock getting in the way.
    """
    now = as_utc(now) or utcnow()
    kickoff = as_utc(match.scheduled_datetime)
    minutes_to_kickoff = (kickoff - now) / timedelta(minutes=1)
    return -LOCK_MINUTES_AFTER < minutes_to_kickoff < LOCK_MINUTES_BEFORE


def effective_status(match: Match, now: Optional[datetime] = None) -> MatchStatus:
    """Stored status, except an OPEN match inside the lock window reads as LOCKED."""
    status = MatchStatus(match.status)
    if status == MatchStatus.OPEN and is_virtually_locked(match, now):
        return MatchStatus.LOCKED
    return status


def transition_match_status(
    match: Match,
    new_status,
    result: Optional[MatchResult] = None,
    is_admin: bool = True,
) -> MatchTransition:
    """
    Move a match to ``new_status`` in memory.

    Everything is validated before the match is touched. The returned
    transition says whether the match's predictions must be rescored
    (entering or staying in FINAL) or reset (leaving FINAL).
    """
    if not is_admin:
        raise PermissionDenied("Only admins can change a match status", field="status", rule="admin_only")

    current = MatchStatus(match.status)
    target = MatchStatus(new_status)
    ensure_valid_transition(current, target)

    if target == MatchStatus.FINAL:
        # Without a payload, fall back to whatever is stored
        home = result.home_score if result and result.home_score is not None else match.actual_home_score
        away = result.away_score if result and result.away_score is not None else match.actual_away_score
        if result and "penalty_winner" in result.model_fields_set:
            penalty = result.penalty_winner
        else:
            penalty = match.penalty_winner
        home, away, penalty = validate_final_result(match.is_knockout, home, away, penalty)

        match.actual_home_score = home
        match.actual_away_score = away
        match.penalty_winner = penalty
    else:
        match.actual_home_score = None
        match.actual_away_score = None
        match.penalty_winner = None

    match.status = target
    match.updated_at = utcnow()

    return MatchTransition(
        match_id=match.id,
        previous_status=current,
        status=target,
        rescore=target == MatchStatus.FINAL,
        reset=current == MatchStatus.FINAL and target != MatchStatus.FINAL,
    )


def change_match_status(
    db: Session,
    match_id: int,
    new_status,
    result: Optional[MatchResult] = None,
    is_admin: bool = True,
) -> Match:
    """Apply a status transition, persist it and rescore/reset the predictions."""
    match = db.get(Match, match_id)
    if not match:
        raise NotFound("Match", match_id)

    transition = transition_match_status(match, new_status, result, is_admin)
    db.add(match)
    db.commit()
    db.refresh(match)

    logger.info(
        "Match %s: %s -> %s",
        match.id, transition.previous_status.value, transition.status.value
    )

    if transition.rescore:
        calculate_match_points(db, match)
    elif transition.reset:
        reset_match_points(db, match)

    return match


def get_match(db: Session, match_id: int) -> Match:
    match = db.get(Match, match_id)
    if not match:
        raise NotFound("Match", match_id)
    return match
