"""
Season standings recomputed from raw picks and results.

Standings are never stored; they are the sum of ``compute_week`` over the
weeks supplied.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from pickpool.utils.scoring import LOSS, PUSH, WIN, compute_week, week_outcome_records


@dataclass
class WeekInput:
    week_id: int
    picks: list
    results: list
    slot_labels: Optional[dict] = None


@dataclass
class Standing:
    player_id: str
    dollars: float = 0.0
    wins: int = 0
    losses: int = 0
    pushes: int = 0
    weeks: List[dict] = field(default_factory=list)

    @property
    def record(self):
        return f"{self.wins}-{self.losses}-{self.pushes}"

    def to_dict(self):
        return {
            "player_id": self.player_id,
            "dollars": round(self.dollars, 2),
            "wins": self.wins,
            "losses": self.losses,
            "pushes": self.pushes,
            "record": self.record,
            "weeks": self.weeks,
        }


def compute_standings(week_inputs, roster, catalog=None, rules=None, rate=1):
    """Cumulative dollars and ATS record per player.

    Only final results count. A week contributes once any of its picks has a
    final outcome.

    Returns:
        (standings dict keyed by player id, number of scored weeks)
    """
    standings = {player_id: Standing(player_id=player_id) for player_id in roster}
    scored_weeks = 0

    for week in week_inputs:
        breakdowns = compute_week(
            week.week_id,
            week.picks,
            week.results,
            roster=roster,
            catalog=catalog,
            rules=rules,
            rate=rate,
            final_only=True,
            slot_labels=week.slot_labels,
        )
        if not any(line.outcome for b in breakdowns for line in b.lines):
            continue
        scored_weeks += 1

        records = week_outcome_records(breakdowns)
        for breakdown in breakdowns:
            standing = standings[breakdown.player_id]
            standing.dollars += breakdown.week_total
            record = records[breakdown.player_id]
            standing.wins += record[WIN]
            standing.losses += record[LOSS]
            standing.pushes += record[PUSH]
            standing.weeks.append(
                {"week_id": week.week_id, "total": round(breakdown.week_total, 2)}
            )

    return standings, scored_weeks


def press_allowed(standing, threshold=-100.0):
    """Press is open only to players at or below ``threshold`` dollars."""
    dollars = standing.dollars if hasattr(standing, "dollars") else float(standing or 0)
    return dollars <= threshold


def sorted_standings(standings):
    return sorted(standings.values(), key=lambda s: (-s.dollars, s.player_id))
