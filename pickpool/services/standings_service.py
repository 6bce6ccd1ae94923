"""
Standings, ladders and week summaries built from stored picks and cached
results. All derivations go through the pure engine in ``pickpool.utils``.
"""

import logging

from flask import current_app

from pickpool import db
from pickpool.models import GameResult, Player, Week
from pickpool.services.pick_store import pick_store
from pickpool.utils.bonus_usage import week_token_summary
from pickpool.utils.cache_utils import cached_query
from pickpool.utils.ladder import PriorityLadder
from pickpool.utils.scoring import BonusCatalog, ScoringRules, compute_week
from pickpool.utils.standings import Standing, WeekInput, compute_standings

logger = logging.getLogger(__name__)


def scoring_rules():
    return ScoringRules.from_config(current_app.config)


def bonus_catalog():
    return BonusCatalog.from_config(current_app.config)


def week_results(week, picks=None):
    """Cached results for the week window plus any events pinned by its picks"""
    results = {r.event_id: r for r in GameResult.for_window(week.start_time, week.end_time)}
    pinned = {p.event_id for p in (picks or []) if p.event_id} - set(results)
    if pinned:
        for row in GameResult.query.filter(GameResult.event_id.in_(pinned)).all():
            results[row.event_id] = row
    return list(results.values())


def _week_input(week):
    picks = pick_store.list_picks(week.id)
    return WeekInput(
        week_id=week.id,
        picks=picks,
        results=week_results(week, picks),
        slot_labels=week.slot_labels(),
    )


@cached_query("standings", timeout=300)
def _standings_for(season, before_week_id=None):
    if before_week_id is None:
        weeks = Week.season_weeks(season)
    else:
        weeks = Week.weeks_before(db.session.get(Week, before_week_id))

    standings, scored = compute_standings(
        [_week_input(week) for week in weeks],
        Player.roster_ids(),
        catalog=bonus_catalog(),
        rules=scoring_rules(),
        rate=current_app.config.get("POOL_RATE", 1.0),
    )
    logger.debug(f"Computed standings for {season} over {scored} scored weeks")
    return standings, scored


def season_standings(season):
    """(standings by player id, scored week count) for a whole season"""
    return _standings_for(season)


def standings_before(week):
    """Standings from the weeks of the season that started before ``week``"""
    return _standings_for(week.season, before_week_id=week.id)


def ladder_for_week(week):
    """Priority ladder that applies to claims made for ``week``"""
    standings, scored = standings_before(week)
    return PriorityLadder(
        standings=standings if scored else None,
        seed=current_app.config.get("PRIORITY_SEED", []),
        roster=Player.roster_ids(),
    )


def standing_for(player_id, week):
    standings, _ = standings_before(week)
    return standings.get(player_id) or Standing(player_id=player_id)


def week_summary(week, live=False):
    """Scored breakdown of one week; ``live`` counts in-progress scores"""
    picks = pick_store.list_picks(week.id)
    breakdowns = compute_week(
        week.id,
        picks,
        week_results(week, picks),
        roster=Player.roster_ids(),
        catalog=bonus_catalog(),
        rate=current_app.config.get("POOL_RATE", 1.0),
        final_only=not live,
        rules=scoring_rules(),
        slot_labels=week.slot_labels(),
    )
    return {
        "week": week.to_dict(),
        "live": live,
        "players": [b.to_dict() for b in breakdowns],
        "bonus_summary": week_token_summary(picks),
        "pool_total": round(sum(b.week_total for b in breakdowns), 2),
    }
