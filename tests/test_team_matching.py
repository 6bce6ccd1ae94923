from conftest import pick, result

from pickpool.utils.team_matching import (
    claim_key,
    normalize_name,
    resolve_result,
    side_of,
    similarity,
)


def test_normalize_name():
    assert normalize_name("Ohio St.") == "ohio state"
    assert "a and m" in normalize_name("Texas A&M Aggies")
    assert normalize_name("San José State") == "san jose state"
    assert normalize_name("The University of Alabama") == "alabama"


def test_similarity_bounds():
    assert similarity("Georgia Bulldogs", "Georgia Bulldogs") == 1.0
    assert similarity("Georgia Bulldogs", "Oregon Ducks") < 0.5


def test_side_of():
    game = result("e1", "Kansas City Chiefs", "Buffalo Bills", 20, 17)
    assert side_of("Buffalo Bills", game) == "away"
    assert side_of("Kansas City Chiefs", game) == "home"


def test_pinned_event_wins_over_names():
    games = [
        result("e1", "Alabama", "Auburn", 24, 20),
        result("e2", "Alabama A&M", "Jackson State", 10, 3),
    ]
    assert resolve_result(pick("joey", "Alabama", event_id="e2"), games).event_id == "e2"


def test_exact_normalized_name_before_fuzzy():
    games = [
        result("e1", "Ohio Bobcats", "Kent State", 21, 20),
        result("e2", "Ohio State", "Michigan", 30, 24),
    ]
    assert resolve_result(pick("joey", "Ohio St."), games).event_id == "e2"


def test_fuzzy_match_on_sportsbook_spelling():
    games = [
        result("e1", "Miami OH", "Toledo", 14, 17),
        result("e2", "Miami Hurricanes", "Florida State", 35, 10),
    ]
    assert resolve_result(pick("joey", "Miami (OH) RedHawks"), games).event_id == "e1"


def test_no_match():
    games = [result("e1", "Alabama", "Auburn", 24, 20)]
    assert resolve_result(pick("joey", "Nowhere Tech"), games) is None
    assert resolve_result(pick("joey", ""), games) is None


def test_claim_key():
    assert claim_key("  Ohio   State ") == "ohio state"
    assert claim_key("OHIO STATE") == claim_key("ohio state")
    assert claim_key("Ohio St.") == claim_key("Ohio State")
    assert claim_key("Texas A&M") == claim_key("texas a & m")
    assert claim_key("Ohio State") != claim_key("Ohio")
