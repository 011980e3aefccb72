from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from main import app
from bolao.database import get_session
from bolao.models import (
    Match,
    Pool,
    PoolParticipant,
    PoolRound,
    PoolTeam,
    Round,
    Team,
    User,
)
from bolao.utils import utcnow

# Create in-memory database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

@pytest.fixture(name="session")
def session_fixture():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)

@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()

@pytest.fixture(name="teams")
def teams_fixture(session: Session):
    teams = [Team(name=name) for name in ("Flamengo", "Palmeiras", "Santos")]
    for team in teams:
        session.add(team)
    session.commit()
    for team in teams:
        session.refresh(team)
    return teams

@pytest.fixture(name="round_")
def round_fixture(session: Session):
    round_ = Round(name="Rodada 1", sort_order=1)
    session.add(round_)
    session.commit()
    session.refresh(round_)
    return round_

@pytest.fixture(name="pool")
def pool_fixture(session: Session, teams, round_):
    """A pool with default points, linked to every team and the first round."""
    pool = Pool(name="Brasileirão 2026")
    session.add(pool)
    session.commit()
    session.refresh(pool)

    for team in teams:
        session.add(PoolTeam(pool_id=pool.id, team_id=team.id))
    session.add(PoolRound(pool_id=pool.id, round_id=round_.id))
    session.commit()
    return pool

@pytest.fixture(name="users")
def users_fixture(session: Session, pool):
    """Two participants (alice joined first) plus an admin, all in the pool."""
    joined = utcnow() - timedelta(days=10)
    users = [
        User(username="alice", name="Alice"),
        User(username="bob", name="Bob"),
        User(username="admin", name="Admin", is_admin=True),
    ]
    for index, user in enumerate(users):
        session.add(user)
        session.commit()
        session.refresh(user)
        session.add(PoolParticipant(pool_id=pool.id, user_id=user.id, joined_at=joined + timedelta(minutes=index)))
    session.commit()
    return users

@pytest.fixture(name="alice")
def alice_fixture(users):
    return users[0]

@pytest.fixture(name="bob")
def bob_fixture(users):
    return users[1]

@pytest.fixture(name="admin")
def admin_fixture(users):
    return users[2]

@pytest.fixture(name="make_match")
def make_match_fixture(session: Session, pool, teams, round_):
    """Factory for matches in the pool, kicking off in two days by default."""
    def make_match(**kwargs):
        values = {
            "pool_id": pool.id,
            "round_id": round_.id,
            "home_team_id": teams[0].id,
            "away_team_id": teams[1].id,
            "scheduled_datetime": utcnow() + timedelta(days=2),
        }
        values.update(kwargs)
        match = Match(**values)
        session.add(match)
        session.commit()
        session.refresh(match)
        return match

    return make_match
