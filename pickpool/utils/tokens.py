"""
Bonus token combinations (LOY / LOQ / DOG).

Picks carry a set of tokens. In code that set is a ``BonusCombo``; it is only
turned into the compact ``"LOY+LOQ+DOG"`` string at the database boundary.
"""

from dataclasses import dataclass

LOY = "LOY"
LOQ = "LOQ"
DOG = "DOG"

TOKEN_ORDER = (LOY, LOQ, DOG)

# Ladder tiers, lower index = stronger claim
TIER_LOY_LOQ = 0
TIER_LOY = 1
TIER_LOQ = 2
TIER_NONE = 3


@dataclass(frozen=True)
class BonusCombo:
    loy: bool = False
    loq: bool = False
    dog: bool = False

    @classmethod
    def parse(cls, value):
        """Build a combo from a stored string, an iterable of tokens, or a combo.

        Unknown tokens are ignored; ``None``, ``""`` and ``"NONE"`` mean no tokens.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls()
        if isinstance(value, str):
            parts = value.replace(",", "+").split("+")
        else:
            parts = list(value)
        tokens = {str(p).strip().upper() for p in parts if str(p).strip()}
        return cls(loy=LOY in tokens, loq=LOQ in tokens, dog=DOG in tokens)

    @property
    def tokens(self):
        flags = {LOY: self.loy, LOQ: self.loq, DOG: self.dog}
        return tuple(t for t in TOKEN_ORDER if flags[t])

    @property
    def is_empty(self):
        return not (self.loy or self.loq or self.dog)

    @property
    def is_protected(self):
        """True when the combo holds a protective token (LOY or LOQ)."""
        return self.loy or self.loq

    @property
    def tier(self):
        if self.loy and self.loq:
            return TIER_LOY_LOQ
        if self.loy:
            return TIER_LOY
        if self.loq:
            return TIER_LOQ
        return TIER_NONE

    def without_dog(self):
        return BonusCombo(loy=self.loy, loq=self.loq)

    def to_db(self):
        """Compact storage form, ``None`` when no tokens are set."""
        return "+".join(self.tokens) or None

    def __str__(self):
        return "+".join(self.tokens) or "NONE"


NONE = BonusCombo()
