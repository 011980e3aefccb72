import pytest
from sqlmodel import select

from bolao.exceptions import NotFound, ValidationFailure
from bolao.models import Champion, ChampionPick, Prediction
from bolao.models.enums import MatchStatus
from bolao.services.pools import PointConfigUpdate, get_point_columns, rescore_matches, update_point_config
from bolao.services.scoring import calculate_match_points
from bolao.utils import utcnow


@pytest.fixture(name="finished")
def finished_fixture(session, alice, bob, make_match):
    final = make_match(status=MatchStatus.FINAL, actual_home_score=3, actual_away_score=1)
    other_final = make_match(status=MatchStatus.FINAL, actual_home_score=0, actual_away_score=0)
    locked = make_match(status=MatchStatus.LOCKED)

    session.add(Prediction(user_id=alice.id, match_id=final.id, predicted_home_score=2, predicted_away_score=0))
    session.add(Prediction(user_id=bob.id, match_id=final.id, predicted_home_score=3, predicted_away_score=1))
    session.add(Prediction(user_id=alice.id, match_id=other_final.id, predicted_home_score=1, predicted_away_score=1))
    session.add(Prediction(user_id=alice.id, match_id=locked.id, predicted_home_score=1, predicted_away_score=0))
    session.commit()

    calculate_match_points(session, final)
    calculate_match_points(session, other_final)
    return {"final": final, "other_final": other_final, "locked": locked}


def points_by_prediction(session):
    return {p.id: p.points_earned for p in session.exec(select(Prediction).order_by(Prediction.id)).all()}


def test_point_columns(pool):
    columns = get_point_columns(pool)
    assert columns["exact_score"] == 25
    assert columns["goal_difference"] == 15
    assert columns["champion"] == 20

def test_update_returns_final_matches(session, pool, finished):
    match_ids = update_point_config(session, pool.id, PointConfigUpdate(goal_difference=30, draw=5))

    assert sorted(match_ids) == sorted([finished["final"].id, finished["other_final"].id])
    assert finished["locked"].id not in match_ids

    assert rescore_matches(session, match_ids) == 2
    points = list(points_by_prediction(session).values())
    assert points == [30, 25, 5, 0]

def test_rescore_is_idempotent(session, pool, finished):
    match_ids = update_point_config(session, pool.id, PointConfigUpdate(exact_score=40))
    rescore_matches(session, match_ids)
    first = points_by_prediction(session)

    rescore_matches(session, match_ids)

    assert points_by_prediction(session) == first
    assert first[2] == 40

def test_unchanged_values_need_no_rescore(session, pool, finished):
    assert update_point_config(session, pool.id, PointConfigUpdate(exact_score=25)) == []
    assert update_point_config(session, pool.id, PointConfigUpdate()) == []

def test_nullable_fallback_values(session, pool, finished):
    match_ids = update_point_config(session, pool.id, PointConfigUpdate(goal_difference=None, winner=4))
    rescore_matches(session, match_ids)

    session.refresh(pool)
    assert pool.pts_goal_difference is None
    assert points_by_prediction(session)[1] == 4

def test_required_value_cannot_be_cleared(session, pool, finished):
    with pytest.raises(ValidationFailure) as exc:
        update_point_config(session, pool.id, PointConfigUpdate(draw=7, exact_score=None))

    assert exc.value.field == "exact_score"
    session.refresh(pool)
    assert pool.pts_draw == 15

def test_champion_default_change_rescores_picks(session, pool, alice, teams):
    default = Champion(pool_id=pool.id, name="Campeão", deadline=utcnow(), result_team_id=teams[0].id)
    fixed = Champion(pool_id=pool.id, name="Vice", deadline=utcnow(), result_team_id=teams[0].id, points=7)
    session.add(default)
    session.add(fixed)
    session.commit()
    default_pick = ChampionPick(user_id=alice.id, champion_id=default.id, team_id=teams[0].id, points=20)
    fixed_pick = ChampionPick(user_id=alice.id, champion_id=fixed.id, team_id=teams[0].id, points=7)
    session.add(default_pick)
    session.add(fixed_pick)
    session.commit()

    match_ids = update_point_config(session, pool.id, PointConfigUpdate(champion=35))

    assert match_ids == []
    session.refresh(default_pick)
    session.refresh(fixed_pick)
    assert default_pick.points == 35
    assert fixed_pick.points == 7

def test_unknown_pool(session):
    with pytest.raises(NotFound):
        update_point_config(session, 123, PointConfigUpdate(draw=1))
