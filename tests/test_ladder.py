from pickpool.utils.ladder import UNRANKED, PriorityLadder
from pickpool.utils.standings import Standing

SEED = ["joey", "chris", "dan", "nick", "kevin", "aaron"]


def test_seed_order_before_any_results():
    ladder = PriorityLadder(seed=SEED, roster=sorted(SEED))
    assert ladder.from_seed
    assert ladder.order == SEED
    assert ladder.rank_of("joey") == 0
    assert ladder.rank_of("Aaron") == 5


def test_players_missing_from_seed_go_last():
    ladder = PriorityLadder(seed=["joey", "chris"], roster=["zed", "chris", "joey", "amy"])
    assert ladder.order == ["joey", "chris", "amy", "zed"]


def test_standings_order_by_dollars():
    standings = {"joey": -20.0, "kevin": 55.5, "dan": 0.0}
    ladder = PriorityLadder(standings=standings, seed=SEED, roster=["dan", "joey", "kevin"])
    assert not ladder.from_seed
    assert ladder.order == ["kevin", "dan", "joey"]


def test_equal_standings_fall_back_to_seed():
    standings = {"aaron": 10.0, "chris": 10.0}
    ladder = PriorityLadder(standings=standings, seed=SEED, roster=["aaron", "chris"])
    assert ladder.order == ["chris", "aaron"]


def test_accepts_standing_objects():
    standings = {
        "joey": Standing(player_id="joey", dollars=-5),
        "nick": Standing(player_id="nick", dollars=5),
    }
    ladder = PriorityLadder(standings=standings, seed=SEED, roster=["joey", "nick"])
    assert ladder.rank_of("nick") == 0


def test_unknown_player_is_unranked():
    ladder = PriorityLadder(seed=SEED, roster=SEED)
    assert ladder.rank_of("stranger") == UNRANKED
    assert ladder.rank_of(None) == UNRANKED
