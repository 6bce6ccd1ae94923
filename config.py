import os
import secrets
import warnings

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


def _env_float(name, default):
    value = os.environ.get(name)
    return float(value) if value not in (None, "") else default


def _env_list(name, default):
    raw = os.environ.get(name)
    if not raw:
        return list(default)
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


class Config:
    # Generate a secure key if not provided (with warning)
    _secret_key = os.environ.get("SECRET_KEY")

    if not _secret_key:
        _secret_key = secrets.token_urlsafe(32)
        warnings.warn(
            "🔐 SECRET_KEY not set! Using auto-generated key. "
            "Run 'python3 generate_secrets.py' to generate a secure key.",
            UserWarning,
        )

    SECRET_KEY = _secret_key

    # Database configuration - built from environment at initialization
    def __init__(self):
        """Initialize configuration with dynamic database URI"""
        self.SQLALCHEMY_DATABASE_URI = self._build_database_uri()

    def _build_database_uri(self):
        """Build database URI from environment variables"""
        database_url = os.environ.get("DATABASE_URL")

        if database_url:
            return database_url

        db_type = os.environ.get("DB_TYPE", "sqlite")

        if db_type.lower() == "postgresql":
            db_host = os.environ.get("DB_HOST") or "localhost"
            db_port = os.environ.get("DB_PORT") or "5432"
            db_name = os.environ.get("DB_NAME") or "spread_pool_db"
            db_user = os.environ.get("DB_USER") or "pool_user"
            db_password = os.environ.get("DB_PASSWORD") or "pool_password"

            return f"postgresql+psycopg://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"
        else:
            # Default to SQLite for development
            return "sqlite:///" + os.path.join(basedir, "pool.db")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Pool rules
    POOL_RATE = _env_float("POOL_RATE", 1.0)  # dollars per askip unit
    COVER_KICKER = _env_float("COVER_KICKER", 7.0)
    LOY_MULTIPLIER = _env_float("LOY_MULTIPLIER", 4.0)
    LOQ_MULTIPLIER = _env_float("LOQ_MULTIPLIER", 2.0)
    PRESS_MULTIPLIER = _env_float("PRESS_MULTIPLIER", 2.0)
    DOG_MIN_SPREAD = _env_float("DOG_MIN_SPREAD", 7.0)
    COOKED_GOOSE_MAX_SPREAD = _env_float("COOKED_GOOSE_MAX_SPREAD", -2.0)
    PRESS_MAX_STANDING = _env_float("PRESS_MAX_STANDING", -100.0)

    # Seed ladder used before any week has been scored
    PRIORITY_SEED = _env_list(
        "PRIORITY_SEED", ["joey", "chris", "dan", "nick", "kevin", "aaron"]
    )

    # Bonus catalog
    ENABLED_BONUSES = _env_list(
        "ENABLED_BONUSES",
        [
            "sweep",
            "reverse_sweep",
            "quigger",
            "reverse_quigger",
            "dog",
            "goose",
            "cooked_goose",
        ],
    )
    SWEEP_WINNER = _env_float("SWEEP_WINNER", 46.88)
    REVERSE_SWEEP_LOSER = _env_float("REVERSE_SWEEP_LOSER", -46.88)
    QUIGGER_WINNER = _env_float("QUIGGER_WINNER", SWEEP_WINNER)
    REVERSE_QUIGGER_LOSER = _env_float("REVERSE_QUIGGER_LOSER", REVERSE_SWEEP_LOSER)
    DOG_AWARD = _env_float("DOG_AWARD", 5.0)
    GOOSE_AWARD = _env_float("GOOSE_AWARD", 5.0)
    COOKED_GOOSE_PENALTY = _env_float("COOKED_GOOSE_PENALTY", -5.0)
    REVERSE_QUIGGER_PAYS_FIELD = (
        os.environ.get("REVERSE_QUIGGER_PAYS_FIELD", "True").lower() == "true"
    )

    # Slot leagues (slot B switches to college on same-league weeks)
    SLOT_A_LEAGUE = os.environ.get("SLOT_A_LEAGUE", "college-football")
    SLOT_B_LEAGUE = os.environ.get("SLOT_B_LEAGUE", "nfl")

    # Game feed configuration
    SCOREBOARD_API_BASE_URL = (
        os.environ.get("SCOREBOARD_API_BASE_URL")
        or "https://site.api.espn.com/apis/site/v2/sports/football"
    )
    ODDS_API_BASE_URL = (
        os.environ.get("ODDS_API_BASE_URL") or "https://api.the-odds-api.com/v4"
    )
    ODDS_API_KEY = os.environ.get("ODDS_API_KEY")
    ODDS_BOOKMAKER = os.environ.get("ODDS_BOOKMAKER", "betmgm").lower()
    ODDS_REGION = os.environ.get("ODDS_REGION", "us")
    FEED_POLL_SECONDS = int(os.environ.get("FEED_POLL_SECONDS") or 90)

    TIMEZONE = os.environ.get("TIMEZONE", "America/New_York")

    # Caching configuration
    CACHE_TYPE = os.environ.get("CACHE_TYPE", "RedisCache")
    CACHE_DEFAULT_TIMEOUT = int(
        os.environ.get("CACHE_DEFAULT_TIMEOUT", 300)
    )  # 5 minutes
    CACHE_REDIS_URL = os.environ.get("CACHE_REDIS_URL", "redis://localhost:6379/0")
    CACHE_KEY_PREFIX = "spread_pool:"

    # Rate limiting
    RATELIMIT_ENABLED = True

    # Scheduler configuration
    SCHEDULER_ENABLED = os.environ.get("SCHEDULER_ENABLED", "True").lower() == "true"

    # Logging configuration
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_CONSOLE = os.environ.get("LOG_TO_CONSOLE", "True").lower() == "true"
    LOG_TO_FILE = os.environ.get("LOG_TO_FILE", "True").lower() == "true"
    LOG_DIR = os.environ.get("LOG_DIR", "logs")

    # Environment detection
    FLASK_ENV = os.environ.get("FLASK_ENV", "development")
    DEBUG = FLASK_ENV == "development"
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration with helpful defaults"""

    DEBUG = True
    SQLALCHEMY_ECHO = os.environ.get("SQLALCHEMY_ECHO", "False").lower() == "true"

    def __init__(self):
        super().__init__()
        # Fallback to SimpleCache if Redis isn't available in development
        try:
            import redis

            redis_client = redis.Redis.from_url(self.CACHE_REDIS_URL)
            redis_client.ping()
        except Exception:
            self.CACHE_TYPE = "SimpleCache"
            warnings.warn(
                "🔶 Redis not available, falling back to SimpleCache for development.",
                UserWarning,
            )


class ProductionConfig(Config):
    """Production configuration with security focus"""

    DEBUG = False

    def __init__(self):
        super().__init__()

        if not os.environ.get("SECRET_KEY"):
            warnings.warn(
                "🚨 PRODUCTION WARNING: SECRET_KEY not explicitly set! "
                "Using auto-generated key is not recommended for production.",
                UserWarning,
            )
        if not os.environ.get("ODDS_API_KEY"):
            warnings.warn(
                "🚨 PRODUCTION WARNING: ODDS_API_KEY not set, lines feed disabled.",
                UserWarning,
            )


class TestingConfig(Config):
    """Testing configuration"""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    CACHE_TYPE = "NullCache"
    RATELIMIT_ENABLED = False
    SCHEDULER_ENABLED = False
    LOG_TO_FILE = False
    LOG_TO_CONSOLE = False

    def __init__(self):
        # Keep the in-memory database regardless of DATABASE_URL
        pass


# Configuration mapping
config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
