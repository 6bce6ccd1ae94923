"""
Scoring & payout engine for the spread pool.

Everything here is a pure function of (picks, results) for one week: no
database access, no caching, no accumulated state. Recomputing a week after
scores move from in-progress to final simply produces the new answer.

Pipeline for a week:

1. resolve each active pick to a result (pinned event id, else team name)
2. cover differential ``(mine - theirs) + spread`` and ATS outcome
3. askip: ``multiplier * diff`` plus the cover kicker on a cover
4. zero-sum base dollars ``(N * A_i - sum(A)) * rate``
5. bonus layer from the ``BONUS_RULES`` registry, every event zero-sum
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from pickpool.errors import DataIntegrityError
from pickpool.utils.team_matching import claim_key, resolve_result, side_of
from pickpool.utils.tokens import BonusCombo

logger = logging.getLogger(__name__)

SLOTS = ("A", "B")
DEFAULT_SLOT_LABELS = {"A": "CFB", "B": "NFL"}

WIN = "W"
LOSS = "L"
PUSH = "P"


@dataclass(frozen=True)
class ScoringRules:
    """Per-pick scoring constants."""

    cover_kicker: float = 7.0
    loy_multiplier: float = 4.0
    loq_multiplier: float = 2.0
    press_multiplier: float = 2.0
    dog_min_spread: float = 7.0
    cooked_goose_max_spread: float = -2.0

    @classmethod
    def from_config(cls, config):
        return cls(
            cover_kicker=float(config.get("COVER_KICKER", 7.0)),
            loy_multiplier=float(config.get("LOY_MULTIPLIER", 4.0)),
            loq_multiplier=float(config.get("LOQ_MULTIPLIER", 2.0)),
            press_multiplier=float(config.get("PRESS_MULTIPLIER", 2.0)),
            dog_min_spread=float(config.get("DOG_MIN_SPREAD", 7.0)),
            cooked_goose_max_spread=float(config.get("COOKED_GOOSE_MAX_SPREAD", -2.0)),
        )


@dataclass(frozen=True)
class BonusCatalog:
    """Bonus amounts and which bonus rules are switched on.

    Amounts are the triggering player's side; the counterparty side is
    derived so each event nets to zero across the pool.
    """

    enabled: Tuple[str, ...] = (
        "sweep",
        "reverse_sweep",
        "quigger",
        "reverse_quigger",
        "dog",
        "goose",
        "cooked_goose",
    )
    sweep_winner: float = 46.88
    reverse_sweep_loser: float = -46.88
    quigger_winner: float = 46.88
    reverse_quigger_loser: float = -46.88
    dog_award: float = 5.0
    goose_award: float = 5.0
    cooked_goose_penalty: float = -5.0
    reverse_quigger_pays_field: bool = True

    @classmethod
    def from_config(cls, config):
        sweep_winner = float(config.get("SWEEP_WINNER", 46.88))
        reverse_sweep_loser = float(config.get("REVERSE_SWEEP_LOSER", -46.88))
        return cls(
            enabled=tuple(config.get("ENABLED_BONUSES", cls.enabled)),
            sweep_winner=sweep_winner,
            reverse_sweep_loser=reverse_sweep_loser,
            quigger_winner=float(config.get("QUIGGER_WINNER", sweep_winner)),
            reverse_quigger_loser=float(
                config.get("REVERSE_QUIGGER_LOSER", reverse_sweep_loser)
            ),
            dog_award=float(config.get("DOG_AWARD", 5.0)),
            goose_award=float(config.get("GOOSE_AWARD", 5.0)),
            cooked_goose_penalty=float(config.get("COOKED_GOOSE_PENALTY", -5.0)),
            reverse_quigger_pays_field=bool(
                config.get("REVERSE_QUIGGER_PAYS_FIELD", True)
            ),
        )


DEFAULT_RULES = ScoringRules()
DEFAULT_CATALOG = BonusCatalog()


@dataclass
class BonusEvent:
    key: str
    label: str
    player_id: str
    deltas: Dict[str, float]

    @property
    def net(self):
        return sum(self.deltas.values())


@dataclass
class PickLine:
    """One scored pick as shown in a week breakdown."""

    slot: str
    team: str
    spread: float
    bonus: BonusCombo
    pressed: bool
    event_id: Optional[str] = None
    my_score: Optional[int] = None
    their_score: Optional[int] = None
    completed: bool = False
    diff: Optional[float] = None
    outcome: Optional[str] = None
    askip: float = 0.0

    def to_dict(self):
        return {
            "slot": self.slot,
            "team": self.team,
            "spread": self.spread,
            "bonus": str(self.bonus),
            "pressed": self.pressed,
            "event_id": self.event_id,
            "score": (
                f"{self.my_score}-{self.their_score}"
                if self.my_score is not None and self.their_score is not None
                else None
            ),
            "completed": self.completed,
            "diff": self.diff,
            "outcome": self.outcome,
            "askip": round(self.askip, 2),
        }


@dataclass
class PlayerWeekBreakdown:
    player_id: str
    askip: float = 0.0
    college_dollars: float = 0.0
    pro_dollars: float = 0.0
    base_dollars: float = 0.0
    bonuses: List[Tuple[str, float]] = field(default_factory=list)
    lines: List[PickLine] = field(default_factory=list)

    @property
    def bonus_total(self):
        return sum(amount for _, amount in self.bonuses)

    @property
    def week_total(self):
        return self.base_dollars + self.bonus_total

    def outcome_for(self, slot):
        for line in self.lines:
            if line.slot == slot:
                return line.outcome
        return None

    def to_dict(self):
        return {
            "player_id": self.player_id,
            "askip": round(self.askip, 2),
            "college_dollars": round(self.college_dollars, 2),
            "pro_dollars": round(self.pro_dollars, 2),
            "base_dollars": round(self.base_dollars, 2),
            "bonuses": [
                {"label": label, "amount": round(amount, 2)}
                for label, amount in self.bonuses
            ],
            "bonus_total": round(self.bonus_total, 2),
            "week_total": round(self.week_total, 2),
            "picks": [line.to_dict() for line in self.lines],
        }


# ---------------------------------------------------------------------------
# Per-pick math
# ---------------------------------------------------------------------------


def combo_of(pick):
    combo = getattr(pick, "combo", None)
    if isinstance(combo, BonusCombo):
        return combo
    return BonusCombo.parse(getattr(pick, "bonus", None))


def scores_for(pick, result, final_only=True):
    """Return ``(my_score, their_score)`` from the picker's side, or None.

    None when there is no result, a score is missing, or ``final_only`` is set
    and the game is not completed.
    """
    if result is None:
        return None
    if result.home_score is None or result.away_score is None:
        return None
    if final_only and not result.completed:
        return None
    if side_of(pick.team, result) == "home":
        return int(result.home_score), int(result.away_score)
    return int(result.away_score), int(result.home_score)


def cover_differential(pick, result, final_only=True):
    """``(mine - theirs) + spread``; None until the result is usable."""
    scores = scores_for(pick, result, final_only=final_only)
    if scores is None:
        return None
    mine, theirs = scores
    return (mine - theirs) + float(pick.spread or 0)


def pick_outcome(diff):
    if diff is None:
        return None
    if diff > 0:
        return WIN
    if diff < 0:
        return LOSS
    return PUSH


def pick_multiplier(combo, pressed, rules=DEFAULT_RULES):
    """LOY x4, else LOQ x2, else x1; press doubles on top. DOG never scales."""
    combo = BonusCombo.parse(combo)
    if combo.loy:
        multiplier = rules.loy_multiplier
    elif combo.loq:
        multiplier = rules.loq_multiplier
    else:
        multiplier = 1.0
    if pressed:
        multiplier *= rules.press_multiplier
    return multiplier


def askip_from_diff(diff, combo, pressed, rules=DEFAULT_RULES):
    if diff is None:
        return 0.0
    kicker = rules.cover_kicker if diff > 0 else 0.0
    return diff * pick_multiplier(combo, pressed, rules) + kicker


def askip_for_pick(pick, result, rules=DEFAULT_RULES, final_only=True):
    diff = cover_differential(pick, result, final_only=final_only)
    return askip_from_diff(diff, combo_of(pick), bool(pick.pressed), rules)


def weekly_dollars_base(askip_by_player, rate=1):
    """Zero-sum redistribution: ``(N * A_i - sum(A)) * rate`` for each player."""
    n = len(askip_by_player)
    total = sum(askip_by_player.values())
    return {
        player_id: (n * askip - total) * rate
        for player_id, askip in askip_by_player.items()
    }


# ---------------------------------------------------------------------------
# Integrity
# ---------------------------------------------------------------------------


def find_integrity_faults(picks):
    """Return descriptions of active-pick invariant violations in ``picks``."""
    faults = []
    by_owner = defaultdict(list)
    by_team = defaultdict(list)
    for pick in picks:
        if pick.stolen:
            continue
        by_owner[(pick.week_id, pick.player_id, pick.slot)].append(pick)
        by_team[(pick.week_id, pick.slot, claim_key(pick.team))].append(pick)

    for (week_id, player_id, slot), rows in by_owner.items():
        if len(rows) > 1:
            faults.append(
                f"week {week_id}: {player_id} has {len(rows)} active picks in slot {slot}"
            )
    for (week_id, slot, team), rows in by_team.items():
        if len(rows) > 1:
            owners = ", ".join(sorted(r.player_id for r in rows))
            faults.append(
                f"week {week_id}: team '{team}' slot {slot} actively held by {owners}"
            )
    return faults


def assert_active_integrity(picks):
    faults = find_integrity_faults(picks)
    if faults:
        for fault in faults:
            logger.error(f"Pick integrity fault: {fault}")
        raise DataIntegrityError(
            "More than one active pick for the same claim", faults=faults
        )


# ---------------------------------------------------------------------------
# Bonus layer
# ---------------------------------------------------------------------------


@dataclass
class WeekContext:
    """Everything a bonus rule may look at for one week."""

    roster: List[str]
    lines: Dict[str, Dict[str, PickLine]]
    catalog: BonusCatalog
    rules: ScoringRules
    slot_labels: Dict[str, str]
    scores: Dict[Tuple[str, str], Tuple[int, int]]

    def outcomes(self, slot):
        outcomes = {}
        for player_id in self.roster:
            line = self.lines[player_id].get(slot)
            outcomes[player_id] = line.outcome if line else None
        return outcomes

    def paired_event(self, key, label, player_id, amount):
        """Give ``amount`` to one player and split its negation over the rest."""
        others = [p for p in self.roster if p != player_id]
        deltas = {player_id: amount}
        if others:
            share = -amount / len(others)
            for other in others:
                deltas[other] = share
        return BonusEvent(key=key, label=label, player_id=player_id, deltas=deltas)


BONUS_RULES = {}


def bonus_rule(key):
    """Register a bonus rule ``(WeekContext) -> list[BonusEvent]`` under ``key``."""

    def decorator(func):
        BONUS_RULES[key] = func
        return func

    return decorator


def _single_out(outcomes, n):
    """Classify a fully resolved, push-free outcome map.

    Returns ``("sweep", player)`` for one W among all L, ``("reverse", player)``
    for one L among all W, else None. Sweep is checked first, so a two-player
    W/L split is a sweep, never both.
    """
    values = list(outcomes.values())
    if n < 2 or len(values) != n or any(v is None for v in values):
        return None
    if PUSH in values:
        return None
    wins = [p for p, o in outcomes.items() if o == WIN]
    losses = [p for p, o in outcomes.items() if o == LOSS]
    if len(wins) == 1 and len(losses) == n - 1:
        return "sweep", wins[0]
    if len(losses) == 1 and len(wins) == n - 1:
        return "reverse", losses[0]
    return None


@bonus_rule("sweep")
def sweep_rule(ctx):
    events = []
    for slot in SLOTS:
        shape = _single_out(ctx.outcomes(slot), len(ctx.roster))
        if shape and shape[0] == "sweep":
            label = f"Sweep ({ctx.slot_labels.get(slot, slot)})"
            events.append(
                ctx.paired_event("sweep", label, shape[1], ctx.catalog.sweep_winner)
            )
    return events


@bonus_rule("reverse_sweep")
def reverse_sweep_rule(ctx):
    events = []
    for slot in SLOTS:
        shape = _single_out(ctx.outcomes(slot), len(ctx.roster))
        if shape and shape[0] == "reverse":
            label = f"Reverse Sweep ({ctx.slot_labels.get(slot, slot)})"
            events.append(
                ctx.paired_event(
                    "reverse_sweep", label, shape[1], ctx.catalog.reverse_sweep_loser
                )
            )
    return events


def _weekly_records(ctx):
    """Per-player (wins, losses) over both slots, None unless the week is
    fully resolved with zero pushes pool-wide."""
    records = {}
    for player_id in ctx.roster:
        outcomes = [ctx.outcomes(slot)[player_id] for slot in SLOTS]
        if any(o is None for o in outcomes) or PUSH in outcomes:
            return None
        records[player_id] = (outcomes.count(WIN), outcomes.count(LOSS))
    return records


def _quigger_shape(ctx):
    if len(ctx.roster) < 2:
        return None
    records = _weekly_records(ctx)
    if not records:
        return None
    perfect = [p for p, (w, _) in records.items() if w == len(SLOTS)]
    winless = [p for p, (_, l) in records.items() if l == len(SLOTS)]
    if len(perfect) == 1:
        return "quigger", perfect[0]
    if len(winless) == 1:
        return "reverse", winless[0]
    return None


@bonus_rule("quigger")
def quigger_rule(ctx):
    shape = _quigger_shape(ctx)
    if shape and shape[0] == "quigger":
        return [
            ctx.paired_event("quigger", "Quigger", shape[1], ctx.catalog.quigger_winner)
        ]
    return []


@bonus_rule("reverse_quigger")
def reverse_quigger_rule(ctx):
    shape = _quigger_shape(ctx)
    if not shape or shape[0] != "reverse":
        return []
    amount = ctx.catalog.reverse_quigger_loser
    if ctx.catalog.reverse_quigger_pays_field:
        return [ctx.paired_event("reverse_quigger", "Reverse Quigger", shape[1], amount)]
    # Legacy payout: the loser is charged and nobody collects
    return [
        BonusEvent(
            key="reverse_quigger",
            label="Reverse Quigger",
            player_id=shape[1],
            deltas={shape[1]: amount},
        )
    ]


@bonus_rule("dog")
def dog_rule(ctx):
    events = []
    for player_id in ctx.roster:
        for slot, line in sorted(ctx.lines[player_id].items()):
            if not line.bonus.dog or line.spread < ctx.rules.dog_min_spread:
                continue
            scores = ctx.scores.get((player_id, slot))
            if scores and scores[0] > scores[1]:
                label = f"Dog ({ctx.slot_labels.get(slot, slot)})"
                events.append(
                    ctx.paired_event("dog", label, player_id, ctx.catalog.dog_award)
                )
    return events


@bonus_rule("goose")
def goose_rule(ctx):
    events = []
    for player_id in ctx.roster:
        for slot, line in sorted(ctx.lines[player_id].items()):
            # A shutout only exists once the game is final
            if not line.completed:
                continue
            scores = ctx.scores.get((player_id, slot))
            if scores and scores[1] == 0:
                label = f"Goose ({ctx.slot_labels.get(slot, slot)})"
                events.append(
                    ctx.paired_event("goose", label, player_id, ctx.catalog.goose_award)
                )
    return events


@bonus_rule("cooked_goose")
def cooked_goose_rule(ctx):
    events = []
    for player_id in ctx.roster:
        for slot, line in sorted(ctx.lines[player_id].items()):
            if not line.completed or line.spread > ctx.rules.cooked_goose_max_spread:
                continue
            scores = ctx.scores.get((player_id, slot))
            if scores and scores[0] == 0:
                label = f"Cooked Goose ({ctx.slot_labels.get(slot, slot)})"
                events.append(
                    ctx.paired_event(
                        "cooked_goose", label, player_id, ctx.catalog.cooked_goose_penalty
                    )
                )
    return events


def evaluate_bonuses(ctx):
    """Run every enabled bonus rule, in registry order."""
    events = []
    for key, rule in BONUS_RULES.items():
        if key in ctx.catalog.enabled:
            events.extend(rule(ctx))
    return events


# ---------------------------------------------------------------------------
# Week computation
# ---------------------------------------------------------------------------


def _candidates(pick, results):
    league = getattr(pick, "league", None)
    if not league:
        return results
    return [r for r in results if not getattr(r, "league", None) or r.league == league]


def compute_week(
    week_id,
    picks,
    results,
    roster=None,
    catalog=None,
    rate=1,
    final_only=True,
    rules=None,
    slot_labels=None,
):
    """Score one week.

    Args:
        week_id: week to score; picks for other weeks are ignored
        picks: pick rows (active and stolen); stolen rows never score
        results: game results for the week window
        roster: player ids in the pool; defaults to everyone holding an active pick
        catalog: BonusCatalog, defaults to the stock catalog
        rate: dollars per askip unit
        final_only: when False, in-progress scores count (live preview)
        rules: ScoringRules, defaults to the stock rules
        slot_labels: display label per slot for bonus names

    Returns:
        list[PlayerWeekBreakdown] in roster order

    Raises:
        DataIntegrityError: two active picks share a claim
    """
    rules = rules or DEFAULT_RULES
    catalog = catalog or DEFAULT_CATALOG
    slot_labels = slot_labels or DEFAULT_SLOT_LABELS
    results = list(results or [])

    week_picks = [
        p for p in picks if getattr(p, "week_id", week_id) == week_id
    ]
    assert_active_integrity(week_picks)
    active = [p for p in week_picks if not p.stolen]

    if roster is None:
        roster = sorted({p.player_id for p in active})
    roster = list(dict.fromkeys(roster))

    lines = {player_id: {} for player_id in roster}
    scores = {}
    for pick in active:
        if pick.player_id not in lines:
            logger.warning(
                f"Week {week_id}: pick by {pick.player_id} is outside the roster, skipped"
            )
            continue
        result = resolve_result(pick, _candidates(pick, results))
        combo = combo_of(pick)
        pair = scores_for(pick, result, final_only=final_only)
        diff = None
        if pair is not None:
            diff = (pair[0] - pair[1]) + float(pick.spread or 0)
            scores[(pick.player_id, pick.slot)] = pair
        line = PickLine(
            slot=pick.slot,
            team=pick.team,
            spread=float(pick.spread or 0),
            bonus=combo,
            pressed=bool(pick.pressed),
            event_id=result.event_id if result is not None else getattr(pick, "event_id", None),
            my_score=pair[0] if pair else None,
            their_score=pair[1] if pair else None,
            completed=bool(result.completed) if result is not None else False,
            diff=diff,
            outcome=pick_outcome(diff),
            askip=askip_from_diff(diff, combo, bool(pick.pressed), rules),
        )
        lines[pick.player_id][pick.slot] = line

    breakdowns = {player_id: PlayerWeekBreakdown(player_id=player_id) for player_id in roster}

    slot_dollars = {}
    for slot in SLOTS:
        slot_askip = {
            player_id: (lines[player_id][slot].askip if slot in lines[player_id] else 0.0)
            for player_id in roster
        }
        slot_dollars[slot] = weekly_dollars_base(slot_askip, rate)

    askip_by_player = {
        player_id: sum(line.askip for line in lines[player_id].values())
        for player_id in roster
    }
    base = weekly_dollars_base(askip_by_player, rate)

    for player_id, breakdown in breakdowns.items():
        breakdown.askip = askip_by_player[player_id]
        breakdown.base_dollars = base[player_id]
        breakdown.college_dollars = slot_dollars["A"][player_id]
        breakdown.pro_dollars = slot_dollars["B"][player_id]
        breakdown.lines = [lines[player_id][slot] for slot in SLOTS if slot in lines[player_id]]

    ctx = WeekContext(
        roster=roster,
        lines=lines,
        catalog=catalog,
        rules=rules,
        slot_labels=slot_labels,
        scores=scores,
    )
    for event in evaluate_bonuses(ctx):
        for player_id, amount in event.deltas.items():
            label = event.label if player_id == event.player_id else f"{event.label}: {event.player_id}"
            breakdowns[player_id].bonuses.append((label, amount))

    return [breakdowns[player_id] for player_id in roster]


def week_outcome_records(breakdowns):
    """ATS W/L/P counts per player for one computed week."""
    records = {}
    for breakdown in breakdowns:
        record = {WIN: 0, LOSS: 0, PUSH: 0}
        for line in breakdown.lines:
            if line.outcome:
                record[line.outcome] += 1
        records[breakdown.player_id] = record
    return records
