"""
Bonus token usage tracking.

LOY is spent once per season, LOQ and DOG once per quarter. Usage is derived
from stored picks every time; only active (non-stolen) picks spend a token, so
a player whose LOQ pick is stolen gets the token back.
"""

import re
from dataclasses import dataclass

from pickpool.utils.tokens import DOG, LOQ, LOY, BonusCombo

_QUARTER_RE = re.compile(r"Q\s*(\d)", re.IGNORECASE)


def quarter_of(label):
    """Extract ``"Q<n>"`` from a quarter or week label such as ``"Q1-W2"``."""
    if not label:
        return None
    match = _QUARTER_RE.search(str(label))
    return f"Q{match.group(1)}" if match else None


def _pick_quarter(pick):
    quarter = getattr(pick, "quarter", None)
    if quarter is None:
        week = getattr(pick, "week", None)
        quarter = getattr(week, "quarter", None) if week is not None else None
    return quarter_of(quarter)


@dataclass(frozen=True)
class BonusUsage:
    loy_used: bool = False
    loq_used_this_quarter: bool = False
    dog_used_this_quarter: bool = False

    def to_dict(self):
        return {
            "loy_used": self.loy_used,
            "loq_used_this_quarter": self.loq_used_this_quarter,
            "dog_used_this_quarter": self.dog_used_this_quarter,
        }


def _spending_picks(player_id, picks, ignore=None):
    player_id = str(player_id).lower()
    for pick in picks:
        if pick.stolen or str(pick.player_id).lower() != player_id:
            continue
        if ignore and (pick.week_id, pick.slot) == tuple(ignore):
            continue
        yield pick


def bonus_usage(player_id, picks, current_quarter, ignore=None):
    """Token usage for one player.

    Args:
        player_id: player to inspect
        picks: the season's picks (any players, any weeks)
        current_quarter: quarter label of the week being picked
        ignore: optional ``(week_id, slot)`` whose pick is about to be
            replaced by the player and so does not count

    Returns:
        BonusUsage
    """
    quarter = quarter_of(current_quarter)
    loy = loq = dog = False
    for pick in _spending_picks(player_id, picks, ignore):
        combo = BonusCombo.parse(pick.bonus)
        if combo.loy:
            loy = True
        if quarter and _pick_quarter(pick) == quarter:
            loq = loq or combo.loq
            dog = dog or combo.dog
    return BonusUsage(loy_used=loy, loq_used_this_quarter=loq, dog_used_this_quarter=dog)


def usage_by_quarter(player_id, picks):
    """``{"Q1": {"LOY": bool, "LOQ": bool, "DOG": bool}, ...}`` for display."""
    usage = {}
    for pick in _spending_picks(player_id, picks):
        quarter = _pick_quarter(pick)
        if not quarter:
            continue
        combo = BonusCombo.parse(pick.bonus)
        slot = usage.setdefault(quarter, {LOY: False, LOQ: False, DOG: False})
        for token in combo.tokens:
            slot[token] = True
    return dict(sorted(usage.items()))


def vetoed_tokens(usage, combo):
    """Tokens in ``combo`` the player has already spent in scope."""
    combo = BonusCombo.parse(combo)
    vetoed = []
    if combo.loy and usage.loy_used:
        vetoed.append(LOY)
    if combo.loq and usage.loq_used_this_quarter:
        vetoed.append(LOQ)
    if combo.dog and usage.dog_used_this_quarter:
        vetoed.append(DOG)
    return tuple(vetoed)


def week_token_summary(picks):
    """Who used each token, stole, or pressed among a week's active picks."""
    summary = {LOY: [], LOQ: [], DOG: [], "STEAL": [], "PRESS": []}
    for pick in picks:
        if pick.stolen:
            continue
        combo = BonusCombo.parse(pick.bonus)
        for token in combo.tokens:
            summary[token].append(pick.player_id)
        if pick.steal:
            summary["STEAL"].append(pick.player_id)
        if pick.pressed:
            summary["PRESS"].append(pick.player_id)
    return {key: sorted(set(players)) for key, players in summary.items()}
