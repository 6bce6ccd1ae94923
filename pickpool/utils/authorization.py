"""
Ownership and steal authorization.

``authorize_claim`` is a pure decision function: it never raises for a
denial, it returns a ``Verdict`` the caller branches on.
"""

from dataclasses import dataclass
from typing import Optional

from pickpool.utils.tokens import BonusCombo

LOY_REQUIRED = "LOY_REQUIRED"
LOQ_OR_LOY_REQUIRED = "LOQ_OR_LOY_REQUIRED"
LADDER_PRIORITY = "LADDER_PRIORITY"

DENIAL_MESSAGES = {
    LOY_REQUIRED: "Owner has LOY: you must include LOY (LOY or LOY+LOQ).",
    LOQ_OR_LOY_REQUIRED: "Owner protection/standing requires LOQ or LOY.",
    LADDER_PRIORITY: "You lose on the priority ladder for this combo.",
}

DEFAULT_LADDER_SPAN = 6


@dataclass(frozen=True)
class Verdict:
    ok: bool
    reason: Optional[str] = None

    @property
    def message(self):
        return DENIAL_MESSAGES.get(self.reason) if self.reason else None

    def to_dict(self):
        data = {"ok": self.ok}
        if self.reason:
            data["reason"] = self.reason
            data["message"] = self.message
        return data


ALLOWED = Verdict(ok=True)


def ladder_index(rank, combo, span=DEFAULT_LADDER_SPAN):
    """Composite ladder position, smaller is stronger.

    Token tier dominates; within a tier a worse standing (larger rank) sits
    higher on the ladder.
    """
    combo = BonusCombo.parse(combo)
    tier_width = max(10, span + 1)
    within_tier = max(0, span - int(rank))
    return combo.tier * tier_width + within_tier


def beats_on_ladder(attemptor_rank, attemptor_combo, victim_rank, victim_combo, span=DEFAULT_LADDER_SPAN):
    ia = ladder_index(attemptor_rank, attemptor_combo, span)
    iv = ladder_index(victim_rank, victim_combo, span)
    if ia < iv:
        return True
    if iv < ia:
        return False
    if attemptor_rank != victim_rank:
        return attemptor_rank > victim_rank
    return False


def authorize_claim(attemptor_id, victim_id, victim_bonus, proposed_bonus, ladder):
    """Decide whether ``attemptor_id`` may take a team owned by ``victim_id``.

    Args:
        attemptor_id: player making the claim
        victim_id: current owner, or None for an unowned team
        victim_bonus: owner's token combination (combo, string or None)
        proposed_bonus: attemptor's proposed combination
        ladder: PriorityLadder built from the standings that apply to the week

    Returns:
        Verdict
    """
    if not victim_id or victim_id == attemptor_id:
        return ALLOWED

    victim_combo = BonusCombo.parse(victim_bonus)
    proposed = BonusCombo.parse(proposed_bonus)

    if victim_combo.loy:
        return ALLOWED if proposed.loy else Verdict(False, LOY_REQUIRED)

    attemptor_rank = ladder.rank_of(attemptor_id)
    victim_rank = ladder.rank_of(victim_id)

    if victim_combo.loq:
        if attemptor_rank >= victim_rank:
            if proposed.loq or proposed.loy:
                return ALLOWED
            return Verdict(False, LOQ_OR_LOY_REQUIRED)
        return ALLOWED if proposed.loy else Verdict(False, LOY_REQUIRED)

    span = max(DEFAULT_LADDER_SPAN, getattr(ladder, "size", 0) or 0)
    if beats_on_ladder(attemptor_rank, proposed, victim_rank, victim_combo, span):
        return ALLOWED
    return Verdict(False, LADDER_PRIORITY)


def requires_steal_confirmation(attemptor_id, victim_id, proposed_bonus):
    """A steal made without LOY or LOQ needs an explicit confirmation flag."""
    if not victim_id or victim_id == attemptor_id:
        return False
    return not BonusCombo.parse(proposed_bonus).is_protected
