from pickpool.utils.tokens import (
    TIER_LOQ,
    TIER_LOY,
    TIER_LOY_LOQ,
    TIER_NONE,
    BonusCombo,
)


def test_parse_compact_string():
    combo = BonusCombo.parse("LOY+LOQ+DOG")
    assert combo.loy and combo.loq and combo.dog
    assert combo.tokens == ("LOY", "LOQ", "DOG")


def test_parse_is_order_and_case_insensitive():
    assert BonusCombo.parse("dog+loy") == BonusCombo(loy=True, dog=True)
    assert BonusCombo.parse(["LOQ", "DOG"]) == BonusCombo(loq=True, dog=True)


def test_parse_empty_forms():
    for value in (None, "", "NONE", []):
        assert BonusCombo.parse(value).is_empty


def test_parse_ignores_unknown_tokens():
    assert BonusCombo.parse("LOY+BOGUS") == BonusCombo(loy=True)


def test_storage_form():
    assert BonusCombo(loq=True, dog=True).to_db() == "LOQ+DOG"
    assert BonusCombo().to_db() is None
    assert str(BonusCombo()) == "NONE"


def test_tiers():
    assert BonusCombo.parse("LOY+LOQ").tier == TIER_LOY_LOQ
    assert BonusCombo.parse("LOY").tier == TIER_LOY
    assert BonusCombo.parse("LOQ+DOG").tier == TIER_LOQ
    assert BonusCombo.parse("DOG").tier == TIER_NONE


def test_dog_is_not_protection():
    assert not BonusCombo.parse("DOG").is_protected
    assert BonusCombo.parse("LOQ").is_protected
    assert BonusCombo.parse("LOY+DOG").without_dog() == BonusCombo(loy=True)
