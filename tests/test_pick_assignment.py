from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from pickpool import db
from pickpool.errors import (
    ClaimDenied,
    StoreUnavailableError,
    TeamUnavailableError,
    ValidationError,
)
from pickpool.models import Pick
from pickpool.services import standings_service
from pickpool.services.pick_assignment import assign_pick, erase_pick, preview_claim
from pickpool.services.pick_store import pick_store

# Seed ladder with nothing scored: joey 0, chris 1, dan 2, nick 3, kevin 4, aaron 5


@pytest.fixture
def week(roster, make_week):
    return make_week()


def active(week_id):
    return {(p.player_id, p.slot): p for p in pick_store.active_picks(week_id)}


def test_claim_unowned_team(week):
    outcome = assign_pick(week.id, "joey", "A", "Alabama", -3.5, odds=-110, bonus="LOQ")

    assert outcome["steal"] is False
    assert outcome["victim_id"] is None
    stored = active(week.id)[("joey", "A")]
    assert stored.team == "Alabama"
    assert stored.league == "college-football"
    assert stored.combo.loq
    assert stored.bonus == "LOQ"


def test_slot_b_league_follows_the_week(roster, make_week):
    pro = make_week()
    double = make_week(label="W2", start=datetime(2025, 9, 8), end=datetime(2025, 9, 15),
                       same_league_slots=True)
    assert assign_pick(pro.id, "joey", "B", "Buffalo Bills", 2.5)["pick"]["league"] == "nfl"
    assert assign_pick(double.id, "joey", "B", "Ohio State", -7)["pick"]["league"] == "college-football"


def test_changing_your_own_pick_replaces_it(week):
    assign_pick(week.id, "joey", "A", "Alabama", -3.5)
    assign_pick(week.id, "joey", "A", "Georgia", -7)

    picks = Pick.query.filter_by(week_id=week.id, player_id="joey").all()
    assert [p.team for p in picks] == ["Georgia"]


def test_steal_without_tokens_needs_confirmation(week):
    assign_pick(week.id, "kevin", "A", "Alabama", -3.5)

    with pytest.raises(ValidationError) as exc:
        assign_pick(week.id, "aaron", "A", "Alabama", -3.5)
    assert exc.value.code == "STEAL_CONFIRMATION_REQUIRED"
    assert active(week.id)[("kevin", "A")].team == "Alabama"

    outcome = assign_pick(week.id, "aaron", "A", "alabama", -3.5, steal_confirmed=True)
    assert outcome["steal"] is True
    assert outcome["victim_id"] == "kevin"

    picks = active(week.id)
    assert ("kevin", "A") not in picks
    assert picks[("aaron", "A")].steal
    history = Pick.query.filter_by(week_id=week.id, player_id="kevin").one()
    assert history.stolen and history.stolen_by == "aaron"


def test_better_standing_loses_the_tokenless_ladder(week):
    assign_pick(week.id, "kevin", "A", "Alabama", -3.5)
    with pytest.raises(ClaimDenied) as exc:
        assign_pick(week.id, "joey", "A", "Alabama", -3.5, steal_confirmed=True)
    assert exc.value.reason == "LADDER_PRIORITY"
    assert exc.value.status_code == 403


def test_loq_steal_needs_no_confirmation(week):
    assign_pick(week.id, "kevin", "A", "Alabama", -3.5)
    outcome = assign_pick(week.id, "joey", "A", "Alabama", -3.5, bonus="LOQ")
    assert outcome["steal"] is True


def test_loy_owner_is_protected(week):
    assign_pick(week.id, "kevin", "A", "Alabama", -3.5, bonus="LOY")
    with pytest.raises(ClaimDenied) as exc:
        assign_pick(week.id, "aaron", "A", "Alabama", -3.5, bonus="LOQ")
    assert exc.value.reason == "LOY_REQUIRED"


def test_same_team_in_other_slot_is_a_different_claim(week):
    assign_pick(week.id, "kevin", "A", "Alabama", -3.5)
    outcome = assign_pick(week.id, "joey", "B", "Alabama", -3.5)
    assert outcome["steal"] is False


def test_lost_race_when_owner_changed(week):
    assign_pick(week.id, "kevin", "A", "Alabama", -3.5)
    with pytest.raises(TeamUnavailableError):
        assign_pick(week.id, "joey", "A", "Alabama", -3.5, bonus="LOQ", expected_victim_id=None)
    assert active(week.id)[("kevin", "A")].team == "Alabama"

    outcome = assign_pick(
        week.id, "joey", "A", "Alabama", -3.5, bonus="LOQ", expected_victim_id="Kevin"
    )
    assert outcome["victim_id"] == "kevin"


def test_concurrent_insert_is_rolled_back(week, monkeypatch):
    assign_pick(week.id, "kevin", "A", "Alabama", -3.5)
    # Simulate a reader that missed kevin's row: the unique index refuses the commit
    monkeypatch.setattr(pick_store, "find_owner", lambda *args, **kwargs: None)

    with pytest.raises(TeamUnavailableError):
        assign_pick(week.id, "joey", "A", "Alabama", -3.5)

    monkeypatch.undo()
    picks = active(week.id)
    assert ("joey", "A") not in picks
    assert picks[("kevin", "A")].team == "Alabama"


def test_locked_week_refuses_claims(week):
    week.lock()
    db.session.commit()
    with pytest.raises(ValidationError) as exc:
        assign_pick(week.id, "joey", "A", "Alabama", -3.5)
    assert exc.value.code == "WEEK_LOCKED"


@pytest.mark.parametrize(
    "kwargs, code",
    [
        ({"player_id": "nobody"}, "UNKNOWN_PLAYER"),
        ({"slot": "C"}, "INVALID_SLOT"),
        ({"team": "  "}, "MISSING_FIELD"),
        ({"spread": "minus three"}, "INVALID_SPREAD"),
        ({"spread": None}, "MISSING_FIELD"),
    ],
)
def test_validation_errors(week, kwargs, code):
    claim = {"player_id": "joey", "slot": "A", "team": "Alabama", "spread": -3.5}
    claim.update(kwargs)
    with pytest.raises(ValidationError) as exc:
        assign_pick(week.id, claim["player_id"], claim["slot"], claim["team"], claim["spread"])
    assert exc.value.code == code


def test_unknown_week(roster):
    with pytest.raises(ValidationError) as exc:
        assign_pick(999, "joey", "A", "Alabama", -3.5)
    assert exc.value.code == "UNKNOWN_WEEK"


def test_token_veto_within_scope(roster, make_week):
    w1 = make_week()
    w2 = make_week(label="W2", start=datetime(2025, 9, 8), end=datetime(2025, 9, 15))
    q2 = make_week(label="W1", quarter="Q2", start=datetime(2025, 11, 1), end=datetime(2025, 11, 8))

    assign_pick(w1.id, "joey", "A", "Alabama", -3.5, bonus="LOY+LOQ")

    with pytest.raises(ValidationError) as exc:
        assign_pick(w2.id, "joey", "A", "Georgia", -7, bonus="LOY")
    assert exc.value.code == "TOKEN_ALREADY_USED"
    assert exc.value.details["tokens"] == ["LOY"]

    with pytest.raises(ValidationError):
        assign_pick(w2.id, "joey", "B", "Buffalo Bills", 2.5, bonus="LOQ")

    # replacing the pick that holds the token is fine
    assign_pick(w1.id, "joey", "A", "Georgia", -7, bonus="LOY")
    # and LOQ comes back in a new quarter
    assign_pick(q2.id, "joey", "A", "Texas", -3, bonus="LOQ")


def test_stolen_token_is_returned(week):
    assign_pick(week.id, "kevin", "A", "Alabama", -3.5, bonus="LOQ")
    assign_pick(week.id, "aaron", "A", "Alabama", -3.5, bonus="LOY")

    outcome = assign_pick(week.id, "kevin", "A", "Georgia", -7, bonus="LOQ")
    assert outcome["pick"]["bonus"] == "LOQ"


def test_dog_needs_a_big_enough_spread(week):
    with pytest.raises(ValidationError) as exc:
        assign_pick(week.id, "joey", "A", "Vanderbilt", 3, bonus="DOG")
    assert exc.value.code == "DOG_SPREAD_TOO_SMALL"
    assert assign_pick(week.id, "joey", "A", "Vanderbilt", 7, bonus="DOG")["pick"]["bonus"] == "DOG"


def test_press_requires_a_losing_standing(week, app):
    with pytest.raises(ValidationError) as exc:
        assign_pick(week.id, "joey", "A", "Alabama", -3.5, pressed=True)
    assert exc.value.code == "PRESS_NOT_ALLOWED"

    app.config["PRESS_MAX_STANDING"] = 0.0
    assert assign_pick(week.id, "joey", "A", "Alabama", -3.5, pressed=True)["pick"]["pressed"]


def test_press_opens_after_a_bad_week(roster, make_week, make_result):
    w1 = make_week()
    w2 = make_week(label="W2", start=datetime(2025, 9, 8), end=datetime(2025, 9, 15))
    make_result("e1", "Alabama Crimson Tide", "Auburn Tigers", 30, 10)
    assign_pick(w1.id, "joey", "A", "Alabama Crimson Tide", -3)
    assign_pick(w1.id, "kevin", "A", "Auburn Tigers", 3)

    # kevin: 6 * -17 askip against a pool total of 7
    standing = standings_service.standing_for("kevin", w2)
    assert standing.dollars == pytest.approx(6 * -17 - 7)

    ladder = standings_service.ladder_for_week(w2)
    assert not ladder.from_seed
    assert ladder.rank_of("joey") == 0
    assert ladder.rank_of("kevin") == 5

    assert assign_pick(w2.id, "kevin", "A", "Texas", -3, pressed=True)["pick"]["pressed"]
    with pytest.raises(ValidationError):
        assign_pick(w2.id, "chris", "A", "Georgia", -7, pressed=True)


def test_preview_claim(week):
    assign_pick(week.id, "kevin", "A", "Alabama", -3.5, bonus="LOQ")

    open_team = preview_claim(week.id, "kevin", "A", "Georgia", None)
    assert open_team == {"ok": True, "victim_id": None, "victim_bonus": None, "requires_confirmation": False}

    preview = preview_claim(week.id, "chris", "A", "Alabama", None)
    assert preview["ok"] is False
    assert preview["reason"] == "LOY_REQUIRED"
    assert preview["victim_id"] == "kevin"
    assert preview["victim_bonus"] == "LOQ"

    # nothing was written
    assert ("chris", "A") not in active(week.id)


def test_erase_pick(week):
    assign_pick(week.id, "joey", "A", "Alabama", -3.5)
    assert erase_pick(week.id, "joey", "A") is True
    assert erase_pick(week.id, "joey", "A") is False
    assert active(week.id) == {}


def _connection_refused(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("connection refused"))


def test_store_outage_during_token_check(week, monkeypatch):
    monkeypatch.setattr(pick_store, "season_picks", _connection_refused)
    with pytest.raises(StoreUnavailableError):
        assign_pick(week.id, "joey", "A", "Alabama", -3, bonus="LOQ")

    monkeypatch.undo()
    assert active(week.id) == {}


def test_store_outage_during_press_check(week, monkeypatch):
    monkeypatch.setattr(standings_service, "standing_for", _connection_refused)
    with pytest.raises(StoreUnavailableError):
        assign_pick(week.id, "joey", "A", "Alabama", -3, pressed=True)


def test_store_outage_while_building_the_ladder(week, monkeypatch):
    monkeypatch.setattr(standings_service, "ladder_for_week", _connection_refused)
    with pytest.raises(StoreUnavailableError):
        assign_pick(week.id, "joey", "A", "Alabama", -3)
    with pytest.raises(StoreUnavailableError):
        preview_claim(week.id, "joey", "A", "Alabama", None)


def test_abbreviated_name_is_the_same_claim(week):
    assign_pick(week.id, "kevin", "A", "Ohio State", -7)

    with pytest.raises(ValidationError) as exc:
        assign_pick(week.id, "aaron", "A", "Ohio St.", -7)
    assert exc.value.code == "STEAL_CONFIRMATION_REQUIRED"

    outcome = assign_pick(week.id, "aaron", "A", "Ohio St.", -7, steal_confirmed=True)
    assert outcome["victim_id"] == "kevin"
