import importlib
from datetime import datetime

import pytest
from click.testing import CliRunner

from pickpool import db
from pickpool.models import Pick, Player, Week


@pytest.fixture
def manage(monkeypatch):
    monkeypatch.setenv("FLASK_CONFIG", "testing")
    module = importlib.import_module("manage")
    with module.app.app_context():
        db.drop_all()
        db.create_all()
        yield module
        db.session.remove()


@pytest.fixture
def run(manage):
    runner = CliRunner()

    def _run(*args, **kwargs):
        result = runner.invoke(manage.cli, list(args), catch_exceptions=False, **kwargs)
        assert result.exit_code == 0, result.output
        return result.output

    return _run


def test_player_add_and_list(run):
    assert "Added player joey (Joey)" in run("player", "add", "Joey")
    assert "already exists" in run("player", "add", "joey")
    run("player", "add", "kevin", "--name", "Kevin B")

    output = run("player", "list")
    assert "joey: Joey" in output
    assert "kevin: Kevin B" in output


def test_week_create_lock_and_list(run):
    output = run(
        "week", "create", "--season", "2025", "--quarter", "q1", "--label", "w1",
        "--start", "2025-09-04", "--end", "2025-09-08 23:59",
    )
    assert "Created week" in output

    week = Week.query.one()
    assert week.full_label == "Q1-W1"
    # entered in the pool timezone (America/New_York), stored as UTC
    assert week.start_time.hour == 4

    assert "already exists" in run(
        "week", "create", "--season", "2025", "--quarter", "Q1", "--label", "W1",
        "--start", "2025-09-04", "--end", "2025-09-08",
    )

    assert "now LOCKED" in run("week", "lock", str(week.id))
    assert "LOCKED" in run("week", "list")
    assert "now OPEN" in run("week", "unlock", str(week.id))
    assert "not found" in run("week", "lock", "999")


def _seed_week():
    for player_id in ("joey", "kevin"):
        Player.create_player(player_id)
    week = Week(season=2025, quarter="Q1", label="W1",
                start_time=datetime(2025, 9, 1),
                end_time=datetime(2025, 9, 8))
    db.session.add(week)
    db.session.commit()
    return week


def test_check_integrity(run):
    week = _seed_week()
    db.session.add(Pick(week_id=week.id, player_id="joey", slot="A", league="nfl",
                        team="Alabama", spread=-3))
    db.session.commit()
    assert "no faults" in run("check", "integrity", str(week.id))


def test_score_week_and_standings(run):
    week = _seed_week()
    db.session.add(Pick(week_id=week.id, player_id="joey", slot="A",
                        league="college-football", team="Alabama", spread=-3))
    db.session.commit()

    output = run("score", "week", str(week.id), "--live")
    assert "Week Q1-W1 (live)" in output
    assert "joey" in output

    assert "Standings 2025 (0 scored weeks)" in run("standings")


def test_status(run):
    _seed_week()
    output = run("status")
    assert "Database: Connected" in output
    assert "Players: 2" in output
    assert "Weeks: 1 (1 open)" in output
