#!/usr/bin/env python3
"""Create the tables if needed and load the default team catalog.

Usage: python seed_teams.py [team names...]
"""

import sys

from sqlalchemy import inspect
from sqlmodel import Session, select

from cupbracket.database import engine, init_db
from cupbracket.models.team import Team

DEFAULT_TEAMS = [
    "Arsenal",
    "Barcelona",
    "Bayern Munich",
    "Borussia Dortmund",
    "Chelsea",
    "Inter",
    "Juventus",
    "Liverpool",
    "Manchester City",
    "Manchester United",
    "AC Milan",
    "Napoli",
    "Paris Saint-Germain",
    "Porto",
    "Real Madrid",
    "Atletico Madrid",
]

REQUIRED_TABLES = ["player", "team", "tournament", "registration", "groupstanding", "match"]


def check_tables() -> bool:
    existing_tables = inspect(engine).get_table_names()
    missing = [t for t in REQUIRED_TABLES if t not in existing_tables]
    for table in REQUIRED_TABLES:
        print(f"{'✓' if table not in missing else '✗'} {table}")
    return not missing


def seed(names) -> int:
    added = 0
    with Session(engine) as session:
        existing = set(session.exec(select(Team.name)).all())
        for name in names:
            name = name.strip()
            if not name or name in existing:
                continue
            session.add(Team(name=name))
            existing.add(name)
            added += 1
        session.commit()
    return added


if __name__ == "__main__":
    print(f"Database: {engine.url}")
    init_db()
    if not check_tables():
        print("ERROR: Missing tables detected!")
        sys.exit(1)

    added = seed(sys.argv[1:] or DEFAULT_TEAMS)
    print(f"Added {added} teams")
