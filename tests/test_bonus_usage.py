from conftest import pick

from pickpool.utils.bonus_usage import (
    bonus_usage,
    quarter_of,
    usage_by_quarter,
    vetoed_tokens,
    week_token_summary,
)


def test_quarter_of():
    assert quarter_of("Q1") == "Q1"
    assert quarter_of("q3-W2") == "Q3"
    assert quarter_of("W2") is None
    assert quarter_of(None) is None


def test_loy_stays_used_for_the_season():
    picks = [
        pick("kevin", "Alabama", bonus="LOY", week_id=3, quarter="Q1"),
        pick("kevin", "Georgia", week_id=6, quarter="Q1"),
    ]
    assert bonus_usage("kevin", picks, "Q1").loy_used
    assert bonus_usage("kevin", picks, "Q4").loy_used


def test_new_season_starts_fresh():
    assert bonus_usage("kevin", [], "Q1").loy_used is False


def test_loq_and_dog_reset_each_quarter():
    picks = [pick("joey", "Alabama", 10, bonus="LOQ+DOG", week_id=1, quarter="Q1")]
    q1 = bonus_usage("joey", picks, "Q1")
    q2 = bonus_usage("joey", picks, "Q2")
    assert q1.loq_used_this_quarter and q1.dog_used_this_quarter
    assert not q2.loq_used_this_quarter and not q2.dog_used_this_quarter


def test_stolen_pick_gives_the_token_back():
    picks = [pick("kevin", "Alabama", bonus="LOQ", stolen=True)]
    assert not bonus_usage("kevin", picks, "Q1").loq_used_this_quarter


def test_other_players_do_not_count():
    picks = [pick("joey", "Alabama", bonus="LOY")]
    assert not bonus_usage("kevin", picks, "Q1").loy_used


def test_pick_being_replaced_is_ignored():
    picks = [pick("joey", "Alabama", bonus="LOY", week_id=4, slot="B")]
    assert bonus_usage("joey", picks, "Q1").loy_used
    assert not bonus_usage("joey", picks, "Q1", ignore=(4, "B")).loy_used
    assert bonus_usage("joey", picks, "Q1", ignore=(4, "A")).loy_used


def test_vetoed_tokens():
    usage = bonus_usage("joey", [pick("joey", "Alabama", bonus="LOY+LOQ")], "Q1")
    assert vetoed_tokens(usage, "LOY+DOG") == ("LOY",)
    assert vetoed_tokens(usage, "LOQ") == ("LOQ",)
    assert vetoed_tokens(usage, "DOG") == ()


def test_usage_by_quarter():
    picks = [
        pick("joey", "Alabama", bonus="LOQ", quarter="Q2"),
        pick("joey", "Georgia", bonus="LOY", quarter="Q1", slot="B"),
    ]
    assert usage_by_quarter("joey", picks) == {
        "Q1": {"LOY": True, "LOQ": False, "DOG": False},
        "Q2": {"LOY": False, "LOQ": True, "DOG": False},
    }


def test_week_token_summary():
    picks = [
        pick("joey", "Alabama", bonus="LOY", steal=True),
        pick("kevin", "Georgia", bonus="LOQ+DOG", pressed=True),
        pick("dan", "Alabama", bonus="LOQ", stolen=True),
    ]
    summary = week_token_summary(picks)
    assert summary == {
        "LOY": ["joey"],
        "LOQ": ["kevin"],
        "DOG": ["kevin"],
        "STEAL": ["joey"],
        "PRESS": ["kevin"],
    }
