import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Optional

import requests
from flask import current_app

from pickpool import db
from pickpool.models import GameResult

logger = logging.getLogger(__name__)

# The Odds API sport keys for the leagues the pool draws from
ODDS_SPORT_KEYS = {
    "nfl": "americanfootball_nfl",
    "college-football": "americanfootball_ncaaf",
}

DEFAULT_ODDS = -110


class FeedError(Exception):
    """The game feed could not be reached after retries"""


@dataclass
class FeedGame:
    event_id: str
    league: str
    home_team: str
    away_team: str
    home_score: Optional[int]
    away_score: Optional[int]
    kickoff: Optional[datetime]
    completed: bool


@dataclass
class FeedLine:
    event_id: str
    league: str
    commence: Optional[datetime]
    bookmaker: str
    home_team: str
    home_spread: float
    home_odds: int
    away_team: str
    away_spread: float
    away_odds: int

    def to_dict(self):
        return {
            "event_id": self.event_id,
            "league": self.league,
            "commence": self.commence.isoformat() if self.commence else None,
            "bookmaker": self.bookmaker,
            "home": {
                "name": self.home_team,
                "spread": self.home_spread,
                "odds": self.home_odds,
            },
            "away": {
                "name": self.away_team,
                "spread": self.away_spread,
                "odds": self.away_odds,
            },
        }


def rate_limit_decorator(max_retries=3, base_delay=1.0, backoff_factor=2.0):
    """
    Decorator to handle API rate limiting with exponential backoff
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            for attempt in range(max_retries):
                try:
                    return func(self, *args, **kwargs)

                except requests.exceptions.HTTPError as e:
                    status = e.response.status_code if e.response is not None else 0
                    if status != 429 and status < 500:
                        raise
                    delay = base_delay * (backoff_factor**attempt)
                    if status == 429 and e.response is not None:
                        delay = float(e.response.headers.get("Retry-After", delay))
                    logger.warning(
                        f"Feed returned {status}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                    if attempt < max_retries - 1:
                        time.sleep(delay)

                except requests.exceptions.RequestException as e:
                    delay = base_delay * (backoff_factor**attempt)
                    logger.warning(
                        f"Request failed: {e}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                    if attempt < max_retries - 1:
                        time.sleep(delay)

            raise FeedError(f"Max retries ({max_retries}) exceeded")

        return wrapper

    return decorator


def _parse_time(value):
    """ISO timestamp from a feed -> naive UTC datetime"""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable feed timestamp: {value}")
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _parse_score(value):
    if value in (None, ""):
        return None
    if isinstance(value, dict):
        value = value.get("value", value.get("displayValue"))
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


class GameFeed:
    """
    Scoreboard (ESPN) and betting lines (The Odds API) client with rate
    limiting and retry
    """

    def __init__(
        self,
        scoreboard_base_url=None,
        odds_base_url=None,
        odds_api_key=None,
        bookmaker="betmgm",
        region="us",
    ):
        self.scoreboard_base_url = (
            scoreboard_base_url
            or "https://site.api.espn.com/apis/site/v2/sports/football"
        ).rstrip("/")
        self.odds_base_url = (odds_base_url or "https://api.the-odds-api.com/v4").rstrip("/")
        self.odds_api_key = odds_api_key
        self.bookmaker = (bookmaker or "betmgm").lower()
        self.region = region or "us"

        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "Spread-Pool/1.0"})

        # Rate limiting configuration
        self.request_count = 0
        self.last_request_time = 0
        self.min_request_interval = 0.5  # Minimum 500ms between requests
        self.max_requests_per_minute = 60  # Conservative limit
        self.request_timestamps = []

    @classmethod
    def from_config(cls, config):
        return cls(
            scoreboard_base_url=config.get("SCOREBOARD_API_BASE_URL"),
            odds_base_url=config.get("ODDS_API_BASE_URL"),
            odds_api_key=config.get("ODDS_API_KEY"),
            bookmaker=config.get("ODDS_BOOKMAKER", "betmgm"),
            region=config.get("ODDS_REGION", "us"),
        )

    def _enforce_rate_limit(self):
        """Enforce rate limiting before making requests"""
        current_time = time.time()

        # Remove timestamps older than 1 minute
        self.request_timestamps = [
            ts for ts in self.request_timestamps if current_time - ts < 60
        ]

        if len(self.request_timestamps) >= self.max_requests_per_minute:
            sleep_time = 60 - (current_time - self.request_timestamps[0])
            if sleep_time > 0:
                logger.info(f"Rate limit reached. Sleeping for {sleep_time:.1f}s")
                time.sleep(sleep_time)
                self.request_timestamps = []

        time_since_last = current_time - self.last_request_time
        if time_since_last < self.min_request_interval:
            time.sleep(self.min_request_interval - time_since_last)

        self.last_request_time = time.time()
        self.request_timestamps.append(self.last_request_time)
        self.request_count += 1

    @rate_limit_decorator(max_retries=3, base_delay=2.0)
    def _make_api_request(self, url, params=None):
        """Make API request with rate limiting and retry logic"""
        self._enforce_rate_limit()

        try:
            response = self.session.get(url, params=params, timeout=30)
            response.raise_for_status()
            return response

        except requests.exceptions.Timeout:
            logger.warning(f"Request timeout for {url}")
            raise
        except requests.exceptions.ConnectionError:
            logger.warning(f"Connection error for {url}")
            raise
        except requests.exceptions.HTTPError as e:
            if e.response is not None and e.response.status_code < 500 and e.response.status_code != 429:
                logger.error(f"HTTP error {e.response.status_code}: {url}")
            raise

    def get_rate_limit_status(self):
        """Get current rate limit status"""
        current_time = time.time()
        self.request_timestamps = [
            ts for ts in self.request_timestamps if current_time - ts < 60
        ]

        return {
            "total_requests": self.request_count,
            "requests_last_minute": len(self.request_timestamps),
            "max_requests_per_minute": self.max_requests_per_minute,
            "time_since_last_request": (
                current_time - self.last_request_time if self.last_request_time else 0
            ),
            "min_request_interval": self.min_request_interval,
        }

    # ------------------------------------------------------------------
    # Scoreboard
    # ------------------------------------------------------------------

    def get_results_for_window(self, league, start, end):
        """
        Fetch matchups for ``league`` kicking off between ``start`` and ``end``

        One scoreboard request is made per calendar day in the window. A day
        that keeps failing is logged and skipped.

        Args:
            league: "nfl" or "college-football"
            start: window start (naive UTC)
            end: window end (naive UTC)

        Returns:
            list[FeedGame] ordered by kickoff
        """
        url = f"{self.scoreboard_base_url}/{league}/scoreboard"
        games = {}

        day = start.date()
        while day <= end.date():
            params = {"dates": day.strftime("%Y%m%d")}
            if league == "college-football":
                params.update({"groups": "80", "limit": "300"})  # all FBS games

            try:
                response = self._make_api_request(url, params=params)
                for game in self._parse_scoreboard(response.json(), league):
                    games[game.event_id] = game
            except (FeedError, requests.exceptions.RequestException, ValueError) as e:
                logger.error(f"Error fetching {league} scoreboard for {day}: {str(e)}")

            day += timedelta(days=1)

        in_window = [
            g for g in games.values() if g.kickoff is None or start <= g.kickoff <= end
        ]
        return sorted(in_window, key=lambda g: (g.kickoff or datetime.max, g.event_id))

    def _parse_scoreboard(self, data, league):
        games = []
        for event in data.get("events", []):
            competitions = event.get("competitions", [])
            if not competitions:
                continue
            competition = competitions[0]

            competitors = competition.get("competitors", [])
            home = next((c for c in competitors if c.get("homeAway") == "home"), None)
            away = next((c for c in competitors if c.get("homeAway") == "away"), None)
            if not home or not away:
                continue

            status = (competition.get("status") or event.get("status") or {}).get(
                "type", {}
            )
            started = status.get("state", "pre") != "pre"

            games.append(
                FeedGame(
                    event_id=str(event.get("id")),
                    league=league,
                    home_team=_team_name(home),
                    away_team=_team_name(away),
                    home_score=_parse_score(home.get("score")) if started else None,
                    away_score=_parse_score(away.get("score")) if started else None,
                    kickoff=_parse_time(event.get("date") or competition.get("date")),
                    completed=bool(status.get("completed", False)),
                )
            )
        return games

    # ------------------------------------------------------------------
    # Betting lines
    # ------------------------------------------------------------------

    def get_lines(self, league):
        """
        Current point spreads for ``league`` from The Odds API

        The configured bookmaker is preferred; otherwise the first bookmaker
        listed for the event is used.

        Returns:
            list[FeedLine] ordered by commence time, empty without an API key
        """
        if not self.odds_api_key:
            logger.warning("ODDS_API_KEY not configured, no lines available")
            return []

        sport_key = ODDS_SPORT_KEYS.get(league)
        if not sport_key:
            logger.warning(f"No odds sport key for league {league}")
            return []

        url = f"{self.odds_base_url}/sports/{sport_key}/odds"
        params = {
            "apiKey": self.odds_api_key,
            "regions": self.region,
            "markets": "spreads",
            "oddsFormat": "american",
        }
        response = self._make_api_request(url, params=params)
        events = response.json()
        if not isinstance(events, list):
            return []
        return self.normalize_lines(events, league)

    def normalize_lines(self, events, league):
        lines = []
        for event in events:
            bookmakers = event.get("bookmakers") or []
            bookmaker = next(
                (b for b in bookmakers if (b.get("key") or "").lower() == self.bookmaker),
                bookmakers[0] if bookmakers else {},
            )
            market = next(
                (m for m in bookmaker.get("markets", []) if m.get("key") == "spreads"),
                {},
            )
            by_team = {
                o.get("name"): (
                    float(o.get("point") or 0),
                    int(o.get("price") or DEFAULT_ODDS),
                )
                for o in market.get("outcomes", [])
            }

            home, away = event.get("home_team", ""), event.get("away_team", "")
            home_spread, home_odds = by_team.get(home, (0.0, DEFAULT_ODDS))
            away_spread, away_odds = by_team.get(away, (0.0, DEFAULT_ODDS))
            lines.append(
                FeedLine(
                    event_id=str(event.get("id")),
                    league=league,
                    commence=_parse_time(event.get("commence_time")),
                    bookmaker=bookmaker.get("key") or self.bookmaker,
                    home_team=home,
                    home_spread=home_spread,
                    home_odds=home_odds,
                    away_team=away,
                    away_spread=away_spread,
                    away_odds=away_odds,
                )
            )

        lines.sort(key=lambda l: (l.commence or datetime.max, l.home_team))
        return lines


def _team_name(competitor):
    team = competitor.get("team", {})
    return team.get("displayName") or team.get("name") or ""


def sync_week_results(week, feed=None):
    """
    Refresh cached results for every league the week draws from

    Args:
        week: Week model instance
        feed: GameFeed, built from the app config when omitted

    Returns:
        (success, message, changed_count)
    """
    feed = feed or GameFeed.from_config(current_app.config)
    leagues = sorted({week.league_for_slot(slot) for slot in ("A", "B")})

    try:
        changed = 0
        seen = 0
        for league in leagues:
            for game in feed.get_results_for_window(league, week.start_time, week.end_time):
                seen += 1
                if GameResult.upsert(game):
                    changed += 1
        db.session.commit()
        logger.info(
            f"Synced results for week {week.id} ({week.full_label}): {seen} games, {changed} changed"
        )
        return True, f"Synced {seen} games ({changed} changed)", changed

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error syncing results for week {week.id}: {str(e)}")
        return False, str(e), 0
