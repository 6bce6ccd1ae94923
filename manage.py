#!/usr/bin/env python3
"""
Spread Pool Management CLI

Command-line management for the spread pool: players, weeks, feed syncs,
scoring and integrity checks.
"""

import logging
import os

import click
from flask.cli import with_appcontext
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

# CLI commands never poll the feed in the background
os.environ.setdefault("SCHEDULER_ENABLED", "False")

from pickpool import create_app, db  # noqa: E402
from pickpool.errors import DataIntegrityError  # noqa: E402
from pickpool.models import GameResult, Pick, Player, Week  # noqa: E402
from pickpool.models.week import OPEN  # noqa: E402
from pickpool.services import standings_service  # noqa: E402
from pickpool.utils.cache_utils import invalidate_standings  # noqa: E402
from pickpool.utils.game_feed import GameFeed, sync_week_results  # noqa: E402
from pickpool.utils.scoring import find_integrity_faults  # noqa: E402
from pickpool.utils.standings import sorted_standings  # noqa: E402
from pickpool.utils.timezone_utils import (  # noqa: E402
    format_game_time,
    local_to_utc_naive,
)

app = create_app()


def _money(value):
    return f"{'+' if value >= 0 else '-'}${abs(value):.2f}"


def _get_week(week_id):
    week = db.session.get(Week, week_id)
    if week is None:
        click.echo(f"❌ Week {week_id} not found!")
    return week


@click.group()
def cli():
    """Spread Pool Management CLI"""
    pass


# Player Management Commands
@cli.group()
def player():
    """Player management commands"""
    pass


@player.command("add")
@click.argument("player_id")
@click.option("--name", "display_name", help="Display name")
@with_appcontext
def add_player(player_id, display_name):
    """Add a player to the pool"""
    try:
        if Player.get(player_id):
            click.echo(f"Player {player_id} already exists!")
            return

        new_player = Player.create_player(player_id, display_name)
        db.session.commit()
        invalidate_standings()
        click.echo(f"✅ Added player {new_player.id} ({new_player.display_name})")

    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error adding player: {str(e)}")
        logging.error(f"Player creation failed - SQL error: {e}")


@player.command("list")
@with_appcontext
def list_players():
    """List all players"""
    players = Player.query.order_by(Player.id).all()

    if not players:
        click.echo("No players found.")
        return

    click.echo("Players:")
    for p in players:
        click.echo(f"  {p.id}: {p.display_name}")


# Week Management Commands
@cli.group()
def week():
    """Week management commands"""
    pass


@week.command("create")
@click.option("--season", type=int, required=True, help="Season year")
@click.option("--quarter", required=True, help="Quarter label, e.g. Q1")
@click.option("--label", required=True, help="Week label within the quarter, e.g. W2")
@click.option(
    "--start",
    type=click.DateTime(formats=["%Y-%m-%d %H:%M", "%Y-%m-%d"]),
    required=True,
    help="Window start in the pool timezone",
)
@click.option(
    "--end",
    type=click.DateTime(formats=["%Y-%m-%d %H:%M", "%Y-%m-%d"]),
    required=True,
    help="Window end in the pool timezone",
)
@click.option("--same-league", is_flag=True, help="Both slots drawn from college")
@with_appcontext
def create_week(season, quarter, label, start, end, same_league):
    """Create a new week"""
    try:
        new_week = Week(
            season=season,
            quarter=quarter.upper(),
            label=label.upper(),
            start_time=local_to_utc_naive(start),
            end_time=local_to_utc_naive(end),
            status=OPEN,
            same_league_slots=same_league,
        )
        db.session.add(new_week)
        db.session.commit()
        click.echo(
            f"✅ Created week {new_week.id}: {season} {new_week.full_label} "
            f"({format_game_time(new_week.start_time)} to {format_game_time(new_week.end_time)})"
        )

    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ Week {quarter}-{label} already exists for {season}!")
        logging.error(f"Week creation failed - integrity error: {e}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating week: {str(e)}")
        logging.error(f"Week creation failed - SQL error: {e}")


def _set_week_status(week_id, locked):
    target = _get_week(week_id)
    if not target:
        return
    if locked:
        target.lock()
    else:
        target.unlock()
    db.session.commit()
    click.echo(f"✅ Week {target.full_label} is now {target.status}")


@week.command("lock")
@click.argument("week_id", type=int)
@with_appcontext
def lock_week(week_id):
    """Freeze a week's picks"""
    _set_week_status(week_id, True)


@week.command("unlock")
@click.argument("week_id", type=int)
@with_appcontext
def unlock_week(week_id):
    """Reopen a week for picks"""
    _set_week_status(week_id, False)


@week.command("list")
@click.option("--season", type=int, help="Only this season")
@with_appcontext
def list_weeks(season):
    """List weeks"""
    query = Week.query
    if season:
        query = query.filter_by(season=season)
    weeks = query.order_by(Week.start_time).all()

    if not weeks:
        click.echo("No weeks found.")
        return

    click.echo("Weeks:")
    for w in weeks:
        status = "🔒 LOCKED" if w.is_locked else "🟢 OPEN"
        double = " (two college picks)" if w.same_league_slots else ""
        click.echo(
            f"  {w.id}: {w.season} {w.full_label} {status} "
            f"{format_game_time(w.start_time)}{double}"
        )


# Data Sync Commands
@cli.group()
def sync():
    """Game feed synchronization commands"""
    pass


@sync.command("results")
@click.argument("week_id", type=int)
@with_appcontext
def sync_results(week_id):
    """Refresh cached results for a week"""
    target = _get_week(week_id)
    if not target:
        return

    click.echo(f"Syncing results for week {target.full_label}...")
    success, message, changed = sync_week_results(target)
    if success:
        if changed:
            invalidate_standings()
        click.echo(f"✅ {message}")
    else:
        click.echo(f"❌ {message}")


@sync.command("lines")
@click.argument("league", type=click.Choice(["nfl", "college-football"]))
@with_appcontext
def sync_lines(league):
    """Show current spreads for a league"""
    try:
        lines = GameFeed.from_config(app.config).get_lines(league)
    except Exception as e:
        click.echo(f"❌ Error fetching lines: {str(e)}")
        return

    for line in lines:
        click.echo(
            f"  {format_game_time(line.commence)}  {line.away_team} {line.away_spread:+g} "
            f"@ {line.home_team} {line.home_spread:+g}  [{line.bookmaker}]"
        )
    click.echo(f"✅ {len(lines)} games")


# Scoring Commands
@cli.group()
def score():
    """Scoring commands"""
    pass


@score.command("week")
@click.argument("week_id", type=int)
@click.option("--live", is_flag=True, help="Count in-progress scores")
@with_appcontext
def score_week(week_id, live):
    """Show a week's payout breakdown"""
    target = _get_week(week_id)
    if not target:
        return

    try:
        summary = standings_service.week_summary(target, live=live)
    except DataIntegrityError as e:
        click.echo(f"❌ {e.message}")
        for fault in e.details.get("faults", []):
            click.echo(f"   {fault}")
        return

    click.echo(f"🏈 Week {target.full_label}{' (live)' if live else ''}")
    click.echo("=" * 40)
    for row in summary["players"]:
        picks = ", ".join(
            f"{p['slot']}:{p['team']} {p['spread']:+g} {p['outcome'] or '-'}"
            for p in row["picks"]
        )
        click.echo(
            f"  {row['player_id']:<8} askip {row['askip']:>8.2f}  "
            f"base {_money(row['base_dollars']):>9}  bonus {_money(row['bonus_total']):>8}  "
            f"total {_money(row['week_total']):>9}  [{picks}]"
        )
        for bonus in row["bonuses"]:
            click.echo(f"           {bonus['label']}: {_money(bonus['amount'])}")


@cli.command()
@click.option("--season", type=int, help="Season year (default: latest)")
@with_appcontext
def standings(season):
    """Show cumulative standings"""
    if season is None:
        latest = Week.query.order_by(Week.season.desc()).first()
        if latest is None:
            click.echo("No weeks found.")
            return
        season = latest.season

    table, scored = standings_service.season_standings(season)
    click.echo(f"🏆 Standings {season} ({scored} scored weeks)")
    for rank, row in enumerate(sorted_standings(table)):
        click.echo(f"  {rank}. {row.player_id:<8} {_money(row.dollars):>10}  ATS {row.record}")


# Integrity Commands
@cli.group()
def check():
    """Data integrity checks"""
    pass


@check.command("integrity")
@click.argument("week_id", type=int)
@with_appcontext
def check_integrity(week_id):
    """Report active-pick invariant violations for a week"""
    target = _get_week(week_id)
    if not target:
        return

    picks = Pick.query.filter_by(week_id=target.id).all()
    faults = find_integrity_faults(picks)
    if not faults:
        click.echo(f"✅ Week {target.full_label}: {len(picks)} picks, no faults")
        return

    click.echo(f"❌ Week {target.full_label}: {len(faults)} fault(s)")
    for fault in faults:
        click.echo(f"   {fault}")


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error initializing database: {str(e)}")


@db_cmd.command()
@with_appcontext
def reset():
    """⚠️  DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        invalidate_standings()
        click.echo("✅ Database reset successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error resetting database: {str(e)}")


@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("🏈 Spread Pool Status")
    click.echo("=" * 40)

    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    click.echo(f"👥 Players: {Player.query.count()}")
    open_weeks = Week.query.filter_by(status=OPEN).count()
    click.echo(f"📅 Weeks: {Week.query.count()} ({open_weeks} open)")
    final = GameResult.query.filter_by(completed=True).count()
    click.echo(f"🏈 Cached results: {final}/{GameResult.query.count()} final")


if __name__ == "__main__":
    with app.app_context():
        cli()
