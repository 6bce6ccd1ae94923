import itertools

import pytest

from pickpool.utils.authorization import (
    LADDER_PRIORITY,
    LOQ_OR_LOY_REQUIRED,
    LOY_REQUIRED,
    authorize_claim,
    beats_on_ladder,
    ladder_index,
    requires_steal_confirmation,
)
from pickpool.utils.ladder import PriorityLadder

SEED = ["joey", "chris", "dan", "nick", "kevin", "aaron"]


@pytest.fixture
def ladder():
    # joey 0, chris 1, dan 2, nick 3, kevin 4, aaron 5
    return PriorityLadder(seed=SEED, roster=SEED)


def test_unowned_team_is_always_allowed(ladder):
    verdict = authorize_claim("joey", None, None, "NONE", ladder)
    assert verdict.ok
    assert verdict.reason is None


def test_own_team_is_always_allowed(ladder):
    assert authorize_claim("kevin", "kevin", "LOY", None, ladder).ok


def test_loq_owner_with_better_standing_needs_loq_or_loy(ladder):
    verdict = authorize_claim("kevin", "chris", "LOQ", "NONE", ladder)
    assert not verdict.ok
    assert verdict.reason == LOQ_OR_LOY_REQUIRED
    assert verdict.to_dict()["reason"] == LOQ_OR_LOY_REQUIRED

    assert authorize_claim("kevin", "chris", "LOQ", "LOQ", ladder).ok
    assert authorize_claim("kevin", "chris", "LOQ", "LOY", ladder).ok


def test_loq_owner_with_worse_standing_needs_loy(ladder):
    verdict = authorize_claim("joey", "kevin", "LOQ", "LOQ", ladder)
    assert verdict.reason == LOY_REQUIRED
    assert authorize_claim("joey", "kevin", "LOQ", "LOY", ladder).ok


def test_loy_owner_needs_loy(ladder):
    for proposal in ("NONE", "LOQ", "DOG", "LOQ+DOG"):
        verdict = authorize_claim("aaron", "joey", "LOY", proposal, ladder)
        assert verdict.reason == LOY_REQUIRED
    assert authorize_claim("aaron", "joey", "LOY", "LOY+LOQ", ladder).ok


def test_dog_only_claim_on_unowned_team(ladder):
    assert authorize_claim("joey", None, None, "DOG", ladder).ok


def test_dog_only_claim_loses_ladder_to_worse_standing(ladder):
    verdict = authorize_claim("joey", "aaron", None, "DOG", ladder)
    assert not verdict.ok
    assert verdict.reason == LADDER_PRIORITY
    assert verdict.message


def test_dog_only_winning_steal_still_needs_confirmation(ladder):
    assert authorize_claim("aaron", "joey", None, "DOG", ladder).ok
    assert requires_steal_confirmation("aaron", "joey", "DOG")


def test_token_tier_beats_standing(ladder):
    assert authorize_claim("joey", "aaron", None, "LOQ", ladder).ok
    assert not authorize_claim("aaron", "joey", "LOQ+DOG", "NONE", ladder).ok


def test_no_token_ladder_is_anti_symmetric(ladder):
    for a, b in itertools.permutations(SEED, 2):
        forward = authorize_claim(a, b, None, None, ladder).ok
        backward = authorize_claim(b, a, None, None, ladder).ok
        assert forward != backward, (a, b)


def test_worse_standing_sits_higher_within_a_tier():
    assert ladder_index(5, None) < ladder_index(0, None)
    assert ladder_index(0, "LOQ") < ladder_index(5, None)


def test_exact_tie_favors_owner():
    assert not beats_on_ladder(2, None, 2, None)


def test_large_pool_keeps_ranks_distinct():
    roster = [f"p{i:02d}" for i in range(12)]
    big = PriorityLadder(seed=roster, roster=roster)
    assert authorize_claim("p11", "p08", None, None, big).ok
    assert not authorize_claim("p08", "p11", None, None, big).ok


def test_confirmation_not_needed_with_protection_or_without_victim():
    assert not requires_steal_confirmation("aaron", "joey", "LOQ")
    assert not requires_steal_confirmation("aaron", "joey", "LOY+DOG")
    assert not requires_steal_confirmation("aaron", None, "NONE")
    assert not requires_steal_confirmation("aaron", "aaron", "NONE")
    assert requires_steal_confirmation("aaron", "joey", None)
