"""End to end over HTTP: 8 players, two groups, semi-finals, final."""
import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from tests.factories import create_tournament


@pytest.fixture
def registered_cup(client: TestClient, admin_headers):
    """Capacity-8 group_knockout tournament with 8 players registered through the API."""
    tournament = client.post(
        "/api/tournaments", json={"name": "Office Cup", "capacity": 8}, headers=admin_headers
    ).json()
    for i in range(8):
        team = client.post("/api/teams", json={"name": f"Club {i}"}, headers=admin_headers).json()
        player = client.post("/api/players/login", json={"username": f"p{i}", "contact": f"+1555{i}"}).json()
        response = client.post(
            f"/api/tournaments/{tournament['id']}/register",
            json={"player_id": player["player"]["id"], "team_id": team["id"]},
        )
        assert response.status_code == 201
    return tournament["id"]


def _score_all(client: TestClient, tid: int, stage: str):
    """Lower registration id wins 2-0."""
    for m in client.get(f"/api/tournaments/{tid}/matches", params={"stage": stage}).json():
        if m["confirmed"] or m["is_bye"]:
            continue
        home_wins = m["home_registration_id"] < m["away_registration_id"]
        response = client.put(
            f"/api/tournaments/{tid}/matches/{m['id']}/score",
            json={"home_score": 2 if home_wins else 0, "away_score": 0 if home_wins else 2},
        )
        assert response.status_code == 200


def test_full_tournament_flow(client: TestClient, admin_headers, registered_cup):
    tid = registered_cup

    response = client.post(f"/api/tournaments/{tid}/groups/generate", json={}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["groups"] == 2
    assert response.json()["matches"] == 12

    groups = client.get(f"/api/tournaments/{tid}/groups").json()
    assert [g["label"] for g in groups] == ["A", "B"]
    assert all(len(g["standings"]) == 4 for g in groups)

    matches = client.get(f"/api/tournaments/{tid}/matches").json()
    assert len(matches) == 12
    assert [m["group_label"] for m in matches] == ["A"] * 6 + ["B"] * 6
    assert all(m["home_team_name"].startswith("Club ") for m in matches)

    _score_all(client, tid, "group")
    first = matches[0]["id"]
    assert client.post(f"/api/tournaments/{tid}/matches/{first}/confirm", headers=admin_headers).status_code == 200
    assert client.post(f"/api/tournaments/{tid}/matches/{first}/confirm", headers=admin_headers).status_code == 409

    response = client.post(f"/api/tournaments/{tid}/matches/confirm-all", json={}, headers=admin_headers)
    assert response.json() == {"confirmed": 11, "skipped": 0}

    groups = client.get(f"/api/tournaments/{tid}/groups").json()
    for group in groups:
        assert [row["points"] for row in group["standings"]] == [9, 6, 3, 0]
        assert [row["position"] for row in group["standings"]] == [1, 2, 3, 4]
    winner = {g["label"]: g["standings"][0]["registration_id"] for g in groups}
    runner_up = {g["label"]: g["standings"][1]["registration_id"] for g in groups}

    response = client.post(f"/api/tournaments/{tid}/knockout/generate", json={}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["first_stage"] == "semi-final"

    bracket = client.get(f"/api/tournaments/{tid}/bracket").json()
    assert bracket["status"] == "knockout"
    assert [r["stage"] for r in bracket["rounds"]] == ["semi-final", "final"]
    semi_finals = bracket["rounds"][0]["matches"]
    assert [(m["home_registration_id"], m["away_registration_id"]) for m in semi_finals] == [
        (winner["A"], runner_up["B"]),
        (winner["B"], runner_up["A"]),
    ]
    final = bracket["rounds"][1]["matches"][0]
    assert final["home_team_name"] == final["away_team_name"] == "TBD"

    for stage in ("semi-final", "final"):
        _score_all(client, tid, stage)
        response = client.post(
            f"/api/tournaments/{tid}/matches/confirm-all", json={"stage": stage}, headers=admin_headers
        )
        assert response.json()["confirmed"] == (2 if stage == "semi-final" else 1)

    assert client.get(f"/api/tournaments/{tid}").json()["status"] == "completed"


def test_score_rules(client: TestClient, session: Session, admin_headers, registered_cup):
    tid = registered_cup
    client.post(f"/api/tournaments/{tid}/groups/generate", json={}, headers=admin_headers)
    match_id = client.get(f"/api/tournaments/{tid}/matches").json()[0]["id"]

    response = client.put(f"/api/tournaments/{tid}/matches/{match_id}/score", json={"home_score": -1, "away_score": 0})
    assert response.status_code == 422

    response = client.post(f"/api/tournaments/{tid}/matches/{match_id}/confirm", headers=admin_headers)
    assert response.status_code == 400

    client.put(f"/api/tournaments/{tid}/matches/{match_id}/score", json={"home_score": 1, "away_score": 0})
    client.post(f"/api/tournaments/{tid}/matches/{match_id}/confirm", headers=admin_headers)
    response = client.put(f"/api/tournaments/{tid}/matches/{match_id}/score", json={"home_score": 5, "away_score": 0})
    assert response.status_code == 409

    other = create_tournament(session, name="Other")
    assert client.put(
        f"/api/tournaments/{other.id}/matches/{match_id}/score", json={"home_score": 1, "away_score": 0}
    ).status_code == 404


def test_confirm_requires_admin(client: TestClient, admin_headers, registered_cup):
    tid = registered_cup
    client.post(f"/api/tournaments/{tid}/groups/generate", json={}, headers=admin_headers)
    match_id = client.get(f"/api/tournaments/{tid}/matches").json()[0]["id"]
    client.put(f"/api/tournaments/{tid}/matches/{match_id}/score", json={"home_score": 1, "away_score": 0})

    assert client.post(f"/api/tournaments/{tid}/matches/{match_id}/confirm").status_code == 401
    assert client.get(f"/api/tournaments/{tid}/matches").json()[0]["confirmed"] is False


def test_regenerating_groups_after_results_needs_confirmation(client: TestClient, admin_headers, registered_cup):
    tid = registered_cup
    client.post(f"/api/tournaments/{tid}/groups/generate", json={}, headers=admin_headers)
    _score_all(client, tid, "group")
    client.post(f"/api/tournaments/{tid}/matches/confirm-all", json={"group_label": "A"}, headers=admin_headers)

    response = client.post(f"/api/tournaments/{tid}/groups/generate", json={}, headers=admin_headers)
    assert response.status_code == 409

    response = client.post(
        f"/api/tournaments/{tid}/groups/generate", json={"confirm_regenerate": True}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["groups_version"] == 2


def test_manual_group_edit(client: TestClient, admin_headers, registered_cup):
    tid = registered_cup
    client.post(f"/api/tournaments/{tid}/groups/generate", json={}, headers=admin_headers)
    groups = client.get(f"/api/tournaments/{tid}/groups").json()
    moved = groups[0]["standings"][0]

    response = client.put(
        f"/api/tournaments/{tid}/groups", json={"assignments": {str(moved["id"]): "B"}}, headers=admin_headers
    )
    assert response.status_code == 400

    response = client.put(
        f"/api/tournaments/{tid}/groups", json={"assignments": {str(moved["id"]): "C"}}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["matches"] == 3 + 6

    groups = {g["label"]: g for g in client.get(f"/api/tournaments/{tid}/groups").json()}
    assert [len(groups[label]["standings"]) for label in ("A", "B", "C")] == [3, 4, 1]
    assert groups["C"]["standings"][0]["registration_id"] == moved["registration_id"]
