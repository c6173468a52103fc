"""Registration rules: capacity, one slot per player, one player per team, open status only."""
from fastapi.testclient import TestClient
from sqlmodel import Session, func, select

from cupbracket.models.registration import Registration
from tests.factories import create_player, create_team, create_tournament, fill_tournament


def _count(session: Session, tournament_id: int) -> int:
    session.expire_all()
    return session.exec(select(func.count(Registration.id)).where(Registration.tournament_id == tournament_id)).one()


def _register(client: TestClient, tournament_id: int, player_id: int, team_id: int):
    return client.post(
        f"/api/tournaments/{tournament_id}/register", json={"player_id": player_id, "team_id": team_id}
    )


def test_register(client: TestClient, session: Session):
    tournament = create_tournament(session)
    player = create_player(session, "alice")
    team = create_team(session, "Lions")

    response = _register(client, tournament.id, player.id, team.id)

    assert response.status_code == 201
    assert response.json()["player_id"] == player.id
    assert response.json()["team_id"] == team.id
    assert _count(session, tournament.id) == 1


def test_taken_team_is_a_conflict(client: TestClient, session: Session):
    tournament = create_tournament(session)
    alice = create_player(session, "alice")
    bob = create_player(session, "bob")
    team = create_team(session, "Lions")
    assert _register(client, tournament.id, alice.id, team.id).status_code == 201

    response = _register(client, tournament.id, bob.id, team.id)

    assert response.status_code == 409
    assert _count(session, tournament.id) == 1


def test_player_registers_once(client: TestClient, session: Session):
    tournament = create_tournament(session)
    alice = create_player(session, "alice")
    lions = create_team(session, "Lions")
    tigers = create_team(session, "Tigers")
    assert _register(client, tournament.id, alice.id, lions.id).status_code == 201

    assert _register(client, tournament.id, alice.id, tigers.id).status_code == 409
    assert _count(session, tournament.id) == 1


def test_same_team_in_another_tournament_is_fine(client: TestClient, session: Session):
    first = create_tournament(session, name="First")
    second = create_tournament(session, name="Second")
    alice = create_player(session, "alice")
    team = create_team(session, "Lions")

    assert _register(client, first.id, alice.id, team.id).status_code == 201
    assert _register(client, second.id, alice.id, team.id).status_code == 201


def test_full_tournament_is_a_conflict(client: TestClient, session: Session):
    tournament = create_tournament(session, capacity=8)
    fill_tournament(session, tournament, 8)
    late = create_player(session, "late")
    team = create_team(session, "Late FC")

    response = _register(client, tournament.id, late.id, team.id)

    assert response.status_code == 409
    assert _count(session, tournament.id) == 8


def test_registration_closed_after_groups(client: TestClient, session: Session, admin_headers):
    tournament = create_tournament(session)
    fill_tournament(session, tournament, 4)
    client.post(f"/api/tournaments/{tournament.id}/groups/generate", json={}, headers=admin_headers)
    late = create_player(session, "late")
    team = create_team(session, "Late FC")

    response = _register(client, tournament.id, late.id, team.id)

    assert response.status_code == 400
    assert response.json()["detail"] == "Registration is closed"


def test_unknown_rows_are_not_found(client: TestClient, session: Session):
    tournament = create_tournament(session)
    player = create_player(session, "alice")
    team = create_team(session, "Lions")

    assert _register(client, 999, player.id, team.id).status_code == 404
    assert _register(client, tournament.id, 999, team.id).status_code == 404
    assert _register(client, tournament.id, player.id, 999).status_code == 404


def test_withdraw_returns_team_to_pool(client: TestClient, session: Session):
    tournament = create_tournament(session)
    alice = create_player(session, "alice")
    lions = create_team(session, "Lions")
    create_team(session, "Tigers")
    assert _register(client, tournament.id, alice.id, lions.id).status_code == 201

    available = client.get(f"/api/tournaments/{tournament.id}/available-teams").json()
    assert [t["name"] for t in available] == ["Tigers"]

    response = client.post(f"/api/tournaments/{tournament.id}/withdraw", json={"player_id": alice.id})
    assert response.status_code == 204

    available = client.get(f"/api/tournaments/{tournament.id}/available-teams").json()
    assert [t["name"] for t in available] == ["Lions", "Tigers"]
    assert _count(session, tournament.id) == 0


def test_withdraw_unknown_registration(client: TestClient, session: Session):
    tournament = create_tournament(session)
    alice = create_player(session, "alice")

    response = client.post(f"/api/tournaments/{tournament.id}/withdraw", json={"player_id": alice.id})
    assert response.status_code == 404
