"""
Manual end-to-end run against a live server.
Start the server first: uvicorn cupbracket.main:app --reload
Then: ADMIN_PASSWORD=... python smoke_manual.py

Creates an 8-team group_knockout tournament, plays it to completion and
prints each step. Not collected by pytest.
"""

import json
import os
import random
import sys

import requests

BASE_URL = os.getenv("CUPBRACKET_URL", "http://localhost:8000/api")


def print_response(title, response):
    """Pretty print API response"""
    print(f"\n{'=' * 60}")
    print(f"{title}")
    print(f"{'=' * 60}")
    print(f"Status: {response.status_code}")
    try:
        print(json.dumps(response.json(), indent=2))
    except (json.JSONDecodeError, ValueError):
        print(response.text)
    print()


def expect(response, status, title):
    print_response(title, response)
    if response.status_code != status:
        print(f"❌ {title}: expected {status}")
        sys.exit(1)
    return response.json() if response.content else None


def play_all(headers, tournament_id, stage):
    matches = requests.get(f"{BASE_URL}/tournaments/{tournament_id}/matches", params={"stage": stage}).json()
    for m in matches:
        if m["confirmed"] or m["is_bye"] or m["home_registration_id"] is None or m["away_registration_id"] is None:
            continue
        home, away = random.sample(range(0, 5), 2)
        requests.put(
            f"{BASE_URL}/tournaments/{tournament_id}/matches/{m['id']}/score",
            json={"home_score": home, "away_score": away},
        )
    return expect(
        requests.post(
            f"{BASE_URL}/tournaments/{tournament_id}/matches/confirm-all", json={"stage": stage}, headers=headers
        ),
        200,
        f"Confirm all ({stage})",
    )


def main():
    token = expect(
        requests.post(f"{BASE_URL}/admin/login", json={"password": os.getenv("ADMIN_PASSWORD", "")}),
        200,
        "Admin login",
    )["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    tournament = expect(
        requests.post(
            f"{BASE_URL}/tournaments",
            json={"name": "Smoke Cup", "capacity": 8, "format": "group_knockout"},
            headers=headers,
        ),
        201,
        "Create tournament",
    )
    tournament_id = tournament["id"]

    teams = requests.get(f"{BASE_URL}/tournaments/{tournament_id}/available-teams").json()
    if len(teams) < 8:
        print("❌ Need at least 8 teams in the catalog (run seed_teams.py)")
        sys.exit(1)

    for i, team in enumerate(teams[:8]):
        player = expect(
            requests.post(f"{BASE_URL}/players/login", json={"username": f"smoke{i}", "contact": f"+10000{i}"}),
            200,
            f"Player login smoke{i}",
        )["player"]
        expect(
            requests.post(
                f"{BASE_URL}/tournaments/{tournament_id}/register",
                json={"player_id": player["id"], "team_id": team["id"]},
            ),
            201,
            f"Register smoke{i} with {team['name']}",
        )

    expect(
        requests.post(f"{BASE_URL}/tournaments/{tournament_id}/groups/generate", json={}, headers=headers),
        200,
        "Generate groups",
    )
    play_all(headers, tournament_id, "group")
    expect(requests.get(f"{BASE_URL}/tournaments/{tournament_id}/groups"), 200, "Standings")

    expect(
        requests.post(f"{BASE_URL}/tournaments/{tournament_id}/knockout/generate", json={}, headers=headers),
        200,
        "Generate knockout",
    )
    for stage in ("semi-final", "final"):
        play_all(headers, tournament_id, stage)

    bracket = expect(requests.get(f"{BASE_URL}/tournaments/{tournament_id}/bracket"), 200, "Bracket")
    print(f"✅ Tournament {tournament_id} finished with status {bracket['status']}")


if __name__ == "__main__":
    main()
