import logging
from functools import wraps

import requests
from flask import current_app, jsonify, request

from pickpool import db, limiter
from pickpool.errors import PoolError, ValidationError
from pickpool.models import Player, Week
from pickpool.routes.api import bp
from pickpool.services import standings_service
from pickpool.services.pick_assignment import (
    assign_pick,
    erase_pick,
    preview_claim,
)
from pickpool.services.pick_store import pick_store
from pickpool.utils.bonus_usage import bonus_usage, usage_by_quarter
from pickpool.utils.cache_utils import get_cache_stats
from pickpool.utils.game_feed import ODDS_SPORT_KEYS, FeedError, GameFeed
from pickpool.utils.standings import sorted_standings

logger = logging.getLogger(__name__)


def add_security_headers(f):
    """Add security headers to API responses"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        response = f(*args, **kwargs)
        if hasattr(response, "headers"):
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "DENY"
            response.headers["Cache-Control"] = (
                "no-store, no-cache, must-revalidate, max-age=0"
            )
        return response

    return decorated_function


@bp.errorhandler(PoolError)
def handle_pool_error(error):
    if error.status_code >= 500:
        logger.error(f"{error.code}: {error.message}")
    return jsonify(error.to_dict()), error.status_code


def _week_or_404(week_id):
    week = db.session.get(Week, week_id)
    if week is None:
        return None, (jsonify({"error": "Week not found"}), 404)
    return week, None


def _week_from_query():
    """Week named by ``?week=``, defaulting to the latest week"""
    week_id = request.args.get("week", type=int)
    if week_id is not None:
        return db.session.get(Week, week_id)
    return Week.query.order_by(Week.start_time.desc(), Week.id.desc()).first()


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", code="MISSING_FIELD")
    return data


@bp.route("/players")
def players():
    """Roster with current ladder rank and token usage"""
    week = _week_from_query()
    roster = Player.query.order_by(Player.id).all()
    ladder = standings_service.ladder_for_week(week) if week else None
    season_picks = pick_store.season_picks(week.season) if week else []

    data = []
    for player in roster:
        entry = player.to_dict()
        if week:
            entry["rank"] = ladder.rank_of(player.id)
            entry["bonus_usage"] = bonus_usage(
                player.id, season_picks, week.quarter
            ).to_dict()
        data.append(entry)
    return jsonify({"players": data, "week_id": week.id if week else None})


@bp.route("/standings")
def standings():
    """Cumulative standings for a season (``?season=``, default latest)"""
    season = request.args.get("season", type=int)
    if season is None:
        latest = Week.query.order_by(Week.season.desc()).first()
        if latest is None:
            return jsonify({"season": None, "scored_weeks": 0, "standings": []})
        season = latest.season

    table, scored = standings_service.season_standings(season)
    return jsonify(
        {
            "season": season,
            "scored_weeks": scored,
            "standings": [s.to_dict() for s in sorted_standings(table)],
        }
    )


@bp.route("/players/<player_id>/rank")
def player_rank(player_id):
    week = _week_from_query()
    if week is None:
        return jsonify({"error": "Week not found"}), 404

    ladder = standings_service.ladder_for_week(week)
    return jsonify(
        {
            "player_id": Player.normalize_id(player_id),
            "week_id": week.id,
            "rank": ladder.rank_of(player_id),
            "source": "seed" if ladder.from_seed else "standings",
            "ladder": ladder.order,
        }
    )


@bp.route("/players/<player_id>/bonus-usage")
def player_bonus_usage(player_id):
    player = Player.get(player_id)
    if player is None:
        return jsonify({"error": "Player not found"}), 404
    week = _week_from_query()
    if week is None:
        return jsonify({"error": "Week not found"}), 404

    picks = pick_store.season_picks(week.season)
    usage = bonus_usage(player.id, picks, week.quarter)
    return jsonify(
        {
            "player_id": player.id,
            "week_id": week.id,
            "quarter": week.quarter,
            **usage.to_dict(),
            "by_quarter": usage_by_quarter(player.id, picks),
        }
    )


@bp.route("/weeks")
def weeks():
    query = Week.query
    season = request.args.get("season", type=int)
    if season is not None:
        query = query.filter_by(season=season)
    return jsonify([w.to_dict() for w in query.order_by(Week.start_time).all()])


@bp.route("/weeks/<int:week_id>/picks")
@add_security_headers
def week_picks(week_id):
    week, error = _week_or_404(week_id)
    if error:
        return error

    picks = pick_store.list_picks(week.id)
    return jsonify(
        {
            "week": week.to_dict(),
            "active": [p.to_dict() for p in picks if not p.stolen],
            "history": [p.to_dict() for p in picks if p.stolen],
        }
    )


@bp.route("/weeks/<int:week_id>/authorize", methods=["POST"])
@add_security_headers
def authorize(week_id):
    """Dry-run a claim: would it be allowed, and is confirmation needed"""
    data = _json_body()
    result = preview_claim(
        week_id,
        data.get("player_id"),
        data.get("slot"),
        data.get("team"),
        data.get("bonus"),
    )
    return jsonify(result)


@bp.route("/weeks/<int:week_id>/claims", methods=["POST"])
@limiter.limit("60 per minute")
@add_security_headers
def claim(week_id):
    data = _json_body()
    kwargs = {}
    if "expected_victim_id" in data:
        kwargs["expected_victim_id"] = data.get("expected_victim_id")

    result = assign_pick(
        week_id,
        data.get("player_id"),
        data.get("slot"),
        data.get("team"),
        data.get("spread"),
        odds=data.get("odds"),
        bonus=data.get("bonus"),
        pressed=bool(data.get("pressed", False)),
        steal_confirmed=bool(data.get("steal_confirmed", False)),
        event_id=data.get("event_id"),
        **kwargs,
    )
    return jsonify(result), 201


@bp.route("/weeks/<int:week_id>/picks/<player_id>/<slot>", methods=["DELETE"])
@add_security_headers
def delete_pick(week_id, player_id, slot):
    if not erase_pick(week_id, player_id, slot):
        return jsonify({"error": "Pick not found"}), 404
    return jsonify({"deleted": True})


@bp.route("/weeks/<int:week_id>/summary")
def week_summary(week_id):
    week, error = _week_or_404(week_id)
    if error:
        return error

    live = request.args.get("live", "0").lower() in ("1", "true", "yes")
    return jsonify(standings_service.week_summary(week, live=live))


@bp.route("/lines/<league>")
@limiter.limit("30 per minute")
def lines(league):
    """Current spreads for a league from the odds feed"""
    if league not in ODDS_SPORT_KEYS:
        return jsonify({"error": f"Unknown league {league}"}), 404

    feed = GameFeed.from_config(current_app.config)
    try:
        data = feed.get_lines(league)
    except (FeedError, requests.exceptions.RequestException) as e:
        logger.error(f"Lines feed failed for {league}: {e}")
        return jsonify({"error": "Lines feed unavailable"}), 503
    return jsonify({"league": league, "lines": [line.to_dict() for line in data]})


@bp.route("/feed/status")
def feed_status():
    from pickpool.services.scheduler_service import scheduler_service

    status = scheduler_service.get_status()
    if scheduler_service.feed is not None:
        status["feed"] = scheduler_service.feed.get_rate_limit_status()
    status["cache"] = get_cache_stats()
    return jsonify(status)
