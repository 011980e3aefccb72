from datetime import timedelta

from bolao.models import Prediction
from bolao.models.enums import MatchStatus
from bolao.utils import utcnow


def as_user(user):
    return {"X-User-Id": str(user.id)}


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}

def test_unauthenticated_request(client, make_match):
    match = make_match()
    response = client.get(f"/api/matches/{match.id}")
    assert response.status_code == 401

def test_prediction_flow(client, session, alice, admin, make_match):
    match = make_match()

    response = client.post(
        "/api/predictions",
        json={"match_id": match.id, "predicted_home_score": 2, "predicted_away_score": 1},
        headers=as_user(alice),
    )
    assert response.status_code == 201
    prediction_id = response.json()["id"]

    response = client.post(
        "/api/predictions",
        json={"match_id": match.id, "predicted_home_score": 0, "predicted_away_score": 0},
        headers=as_user(alice),
    )
    assert response.status_code == 409
    assert response.json()["rule"] == "duplicate_prediction"

    response = client.post(
        f"/api/matches/{match.id}/status",
        json={"status": "ENCERRADO", "home_score": 2, "away_score": 1},
        headers=as_user(admin),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "ENCERRADO"

    prediction = session.get(Prediction, prediction_id)
    session.refresh(prediction)
    assert prediction.points_earned == 25

    response = client.get(f"/api/matches/{match.id}/predictions", headers=as_user(alice))
    assert response.status_code == 200
    assert response.json()[0]["score_type"] == "placar_exato"

def test_status_change_requires_admin(client, alice, make_match):
    match = make_match()
    response = client.post(
        f"/api/matches/{match.id}/status",
        json={"status": "FECHADO"},
        headers=as_user(alice),
    )
    assert response.status_code == 403

def test_invalid_transition_response(client, admin, make_match):
    match = make_match(status=MatchStatus.LOCKED)
    response = client.post(
        f"/api/matches/{match.id}/status",
        json={"status": "PALPITES"},
        headers=as_user(admin),
    )
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "InvalidTransition"
    assert body["field"] == "status"

def test_finalize_validation_response(client, admin, make_match):
    match = make_match(is_knockout=True)
    response = client.post(
        f"/api/matches/{match.id}/status",
        json={"status": "ENCERRADO", "home_score": 1, "away_score": 1},
        headers=as_user(admin),
    )
    assert response.status_code == 400
    assert response.json()["rule"] == "penalties_required"

def test_read_match_effective_status(client, alice, make_match):
    match = make_match(scheduled_datetime=utcnow() + timedelta(minutes=5))
    response = client.get(f"/api/matches/{match.id}", headers=as_user(alice))
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "PALPITES"
    assert data["effective_status"] == "FECHADO"

def test_unknown_match(client, alice):
    response = client.get("/api/matches/999", headers=as_user(alice))
    assert response.status_code == 404
    assert response.json()["rule"] == "not_found"

def test_champion_flow(client, pool, alice, admin, teams):
    deadline = (utcnow() + timedelta(days=1)).isoformat()
    response = client.post(
        "/api/champions",
        json={"pool_id": pool.id, "name": "Campeão", "deadline": deadline},
        headers=as_user(admin),
    )
    assert response.status_code == 201
    champion = response.json()
    assert champion["status"] == "ABERTO"

    response = client.post(
        "/api/champions/picks",
        json={"champion_id": champion["id"], "team_id": teams[0].id},
        headers=as_user(alice),
    )
    assert response.status_code == 201
    pick_id = response.json()["id"]

    response = client.patch(
        f"/api/champions/{champion['id']}",
        json={"result_team_id": teams[0].id},
        headers=as_user(admin),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "RESULTADO_DEFINIDO"

    response = client.get(f"/api/champions/{champion['id']}/picks", headers=as_user(alice))
    picks = response.json()
    assert [pick["id"] for pick in picks] == [pick_id]
    assert picks[0]["points"] == 20

    response = client.get(f"/api/ranking/{pool.id}", headers=as_user(alice))
    assert response.status_code == 200
    assert response.json()[0]["champion_points"] == 20

def test_point_config_endpoints(client, pool, alice, admin):
    response = client.get(f"/api/pools/{pool.id}/points", headers=as_user(alice))
    assert response.json()["exact_score"] == 25

    response = client.patch(f"/api/pools/{pool.id}/points", json={"exact_score": 30}, headers=as_user(alice))
    assert response.status_code == 403

    response = client.patch(f"/api/pools/{pool.id}/points", json={"exact_score": 30}, headers=as_user(admin))
    assert response.status_code == 200
    assert response.json()["points"]["exact_score"] == 30
    assert response.json()["rescored_matches"] == 0

def test_ranking_endpoints(client, pool, alice, bob):
    response = client.get(f"/api/ranking/{pool.id}", params={"status": ["ENCERRADO"]}, headers=as_user(alice))
    assert response.status_code == 200
    assert [row["user_id"] for row in response.json()] == [alice.id, bob.id]

    response = client.get(f"/api/ranking/{pool.id}/users/{bob.id}", headers=as_user(alice))
    assert response.status_code == 200
    assert response.json()["position"] == 2

def test_ranking_user_filter_and_statement(client, pool, alice, bob):
    response = client.get(f"/api/ranking/{pool.id}", params={"user_ids": [bob.id]}, headers=as_user(alice))
    assert response.status_code == 200
    assert [row["user_id"] for row in response.json()] == [bob.id]

    response = client.get(
        f"/api/ranking/{pool.id}/users/{alice.id}",
        params={"user_ids": [bob.id]},
        headers=as_user(alice),
    )
    assert response.status_code == 200
    assert response.json()["summary"]["user_id"] == alice.id
    assert response.json()["position"] == 1
