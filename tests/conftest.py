from datetime import datetime
from types import SimpleNamespace

import pytest

from pickpool import create_app, db
from pickpool.models import GameResult, Player, Week

SEED = ["joey", "chris", "dan", "nick", "kevin", "aaron"]


@pytest.fixture
def app():
    app = create_app("testing")
    app.config["PRIORITY_SEED"] = list(SEED)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def roster(app):
    for player_id in SEED:
        Player.create_player(player_id)
    db.session.commit()
    return list(SEED)


@pytest.fixture
def make_week(app):
    def _make(label="W1", quarter="Q1", season=2025, start=None, end=None, **kwargs):
        week = Week(
            season=season,
            quarter=quarter,
            label=label,
            start_time=start or datetime(2025, 9, 1),
            end_time=end or datetime(2025, 9, 8),
            **kwargs,
        )
        db.session.add(week)
        db.session.commit()
        return week

    return _make


@pytest.fixture
def make_result(app):
    def _make(event_id, home_team, away_team, home_score, away_score,
              kickoff=None, completed=True, league="college-football"):
        result = GameResult(
            event_id=event_id,
            league=league,
            home_team=home_team,
            away_team=away_team,
            home_score=home_score,
            away_score=away_score,
            kickoff=kickoff or datetime(2025, 9, 6, 18, 0),
            completed=completed,
        )
        db.session.add(result)
        db.session.commit()
        return result

    return _make


def pick(player_id, team, spread=0.0, slot="A", bonus=None, pressed=False,
         week_id=1, stolen=False, steal=False, event_id=None, league=None,
         quarter="Q1"):
    """Plain pick record for the pure engine"""
    return SimpleNamespace(
        player_id=player_id,
        team=team,
        spread=spread,
        slot=slot,
        bonus=bonus,
        pressed=pressed,
        week_id=week_id,
        stolen=stolen,
        steal=steal,
        event_id=event_id,
        league=league,
        quarter=quarter,
    )


def result(event_id, home_team, away_team, home_score, away_score,
           completed=True, league=None):
    return SimpleNamespace(
        event_id=event_id,
        home_team=home_team,
        away_team=away_team,
        home_score=home_score,
        away_score=away_score,
        completed=completed,
        league=league,
    )


def game(player_id, slot, mine, theirs, spread=0.0, completed=True, **kwargs):
    """A pick on the home side of its own pinned game"""
    event_id = f"{player_id}-{slot}"
    team = f"{player_id.title()} {slot} Hawks"
    return (
        pick(player_id, team, spread=spread, slot=slot, event_id=event_id, **kwargs),
        result(event_id, team, f"Visitors {event_id}", mine, theirs, completed=completed),
    )


@pytest.fixture
def games():
    """Build (picks, results) from ``{(player, slot): (mine, theirs, spread)}``"""

    def _build(scores, **kwargs):
        picks, results = [], []
        for (player_id, slot), values in scores.items():
            mine, theirs = values[0], values[1]
            spread = values[2] if len(values) > 2 else 0.0
            p, r = game(player_id, slot, mine, theirs, spread=spread, **kwargs)
            picks.append(p)
            results.append(r)
        return picks, results

    return _build
