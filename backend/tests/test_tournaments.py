import warnings

from fastapi.testclient import TestClient
from sqlmodel import Session, select

from cupbracket.models.group_standing import GroupStanding
from cupbracket.models.match import Match
from cupbracket.models.registration import Registration
from cupbracket.services import read_models
from tests.factories import create_tournament, fill_tournament


def test_create_tournament(client: TestClient, admin_headers):
    response = client.post(
        "/api/tournaments",
        json={"name": "  Spring Cup  ", "capacity": 16, "format": "knockout", "description": "Friday nights"},
        headers=admin_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Spring Cup"
    assert data["capacity"] == 16
    assert data["format"] == "knockout"
    assert data["status"] == "registration"
    assert data["registered_count"] == 0
    assert data["groups_version"] == 0 and data["bracket_version"] == 0


def test_create_tournament_validation(client: TestClient, admin_headers):
    for body in (
        {"name": "Cup", "capacity": 10},
        {"name": "   ", "capacity": 8},
        {"name": "Cup", "capacity": 8, "format": "swiss"},
        {"capacity": 8},
    ):
        response = client.post("/api/tournaments", json=body, headers=admin_headers)
        assert response.status_code == 422, body


def test_list_tournaments_counts_registrations(client: TestClient, session: Session):
    busy = create_tournament(session, name="Busy")
    create_tournament(session, name="Empty")
    fill_tournament(session, busy, 3)

    response = client.get("/api/tournaments")

    assert response.status_code == 200
    counts = {t["name"]: t["registered_count"] for t in response.json()}
    assert counts == {"Busy": 3, "Empty": 0}


def test_get_tournament_with_registrations(client: TestClient, session: Session):
    tournament = create_tournament(session)
    fill_tournament(session, tournament, 2)

    response = client.get(f"/api/tournaments/{tournament.id}")

    assert response.status_code == 200
    data = response.json()
    assert data["registered_count"] == 2
    assert [r["username"] for r in data["registrations"]] == [f"player{tournament.id}_0", f"player{tournament.id}_1"]
    assert [r["team_name"] for r in data["registrations"]] == [f"Team {tournament.id}-0", f"Team {tournament.id}-1"]


def test_get_unknown_tournament(client: TestClient):
    assert client.get("/api/tournaments/999").status_code == 404


def test_update_status_stamps_timestamps(client: TestClient, session: Session, admin_headers):
    tournament = create_tournament(session)

    response = client.put(
        f"/api/tournaments/{tournament.id}/status", json={"status": "group_stage"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "group_stage"
    assert response.json()["started_at"] is not None
    assert response.json()["completed_at"] is None

    response = client.put(
        f"/api/tournaments/{tournament.id}/status", json={"status": "completed"}, headers=admin_headers
    )
    assert response.json()["completed_at"] is not None

    response = client.put(f"/api/tournaments/{tournament.id}/status", json={"status": "paused"}, headers=admin_headers)
    assert response.status_code == 422


def test_delete_tournament_removes_everything(client: TestClient, session: Session, admin_headers):
    tournament = create_tournament(session)
    fill_tournament(session, tournament, 4)
    assert client.post(
        f"/api/tournaments/{tournament.id}/groups/generate", json={}, headers=admin_headers
    ).status_code == 200

    response = client.delete(f"/api/tournaments/{tournament.id}", headers=admin_headers)

    assert response.status_code == 204
    assert client.get(f"/api/tournaments/{tournament.id}").status_code == 404
    session.expire_all()
    assert session.exec(select(Registration)).all() == []
    assert session.exec(select(Match)).all() == []


def test_registration_cannot_reopen_after_groups(client: TestClient, session: Session, admin_headers):
    tournament = create_tournament(session)
    registrations = fill_tournament(session, tournament, 8)
    client.post(f"/api/tournaments/{tournament.id}/groups/generate", json={}, headers=admin_headers)

    response = client.put(
        f"/api/tournaments/{tournament.id}/status", json={"status": "registration"}, headers=admin_headers
    )
    assert response.status_code == 409
    assert client.get(f"/api/tournaments/{tournament.id}").json()["status"] == "group_stage"

    response = client.post(
        f"/api/tournaments/{tournament.id}/withdraw", json={"player_id": registrations[0].player_id}
    )
    assert response.status_code == 400

    session.expire_all()
    registration_ids = {r.id for r in session.exec(select(Registration)).all()}
    standing_ids = {s.registration_id for s in session.exec(select(GroupStanding)).all()}
    assert standing_ids == registration_ids
    for m in session.exec(select(Match)).all():
        assert {m.home_registration_id, m.away_registration_id} <= registration_ids


def test_registration_can_reopen_before_any_draw(client: TestClient, session: Session, admin_headers):
    tournament = create_tournament(session)
    client.put(f"/api/tournaments/{tournament.id}/status", json={"status": "group_stage"}, headers=admin_headers)

    response = client.put(
        f"/api/tournaments/{tournament.id}/status", json={"status": "registration"}, headers=admin_headers
    )

    assert response.status_code == 200
    assert response.json()["status"] == "registration"


def test_tournament_rows_dump_without_serializer_warnings(session: Session):
    tournament = create_tournament(session, format="knockout")
    fill_tournament(session, tournament, 2)

    with warnings.catch_warnings():
        warnings.filterwarnings("error", message="Pydantic serializer warnings")
        listed = read_models.list_tournaments(session)
        detail = read_models.tournament_detail(session, tournament)

    assert listed[0]["format"] == detail["format"] == "knockout"
    assert listed[0]["status"] == detail["status"] == "registration"
