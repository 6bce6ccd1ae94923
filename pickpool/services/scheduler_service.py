"""
Spread Pool Feed Polling Scheduler Service

Polls the scoreboard feed in the background with APScheduler and refreshes
cached game results for weeks whose game window is open. Scoring never
depends on this cadence; it reads whatever results are cached.
"""

import atexit
import logging
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from pickpool import db
from pickpool.models import Week
from pickpool.utils.cache_utils import invalidate_standings
from pickpool.utils.game_feed import GameFeed, sync_week_results
from pickpool.utils.timezone_utils import utc_now

logger = logging.getLogger(__name__)

# Late stat corrections still land a few days after a window closes
CORRECTION_WINDOW = timedelta(days=3)


class SchedulerService:
    """Manages background polling of the game feed"""

    def __init__(self, app=None):
        self.scheduler = None
        self.app = app
        self.feed = None
        self.is_running = False
        self.sync_stats = self._empty_stats()

        if app:
            self.init_app(app)

    @staticmethod
    def _empty_stats():
        return {
            "last_sync": None,
            "total_syncs": 0,
            "successful_syncs": 0,
            "failed_syncs": 0,
            "last_error": None,
            "games_updated": 0,
        }

    def init_app(self, app):
        """Initialize scheduler with Flask app"""
        self.app = app
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")
        self.feed = GameFeed.from_config(app.config)

        atexit.register(self.shutdown)

        if app.config.get("SCHEDULER_ENABLED", True):
            self.start()

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        try:
            self.scheduler.remove_all_jobs()
            self._add_core_jobs()
            self.scheduler.start()
            self.is_running = True
            logger.info("Scheduler started successfully")

        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            raise

    def stop(self):
        """Stop the background scheduler"""
        if not self.is_running:
            return

        try:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Scheduler stopped")

        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

    def shutdown(self):
        """Graceful shutdown"""
        self.stop()

    def _add_core_jobs(self):
        """Add scheduled jobs"""
        poll_seconds = int(self.app.config.get("FEED_POLL_SECONDS", 90))

        self.scheduler.add_job(
            func=self._poll_open_weeks,
            trigger=IntervalTrigger(seconds=poll_seconds),
            id="poll_open_weeks",
            name="Poll Results For Open Windows",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=30,
        )

        # Daily correction sweep (9 AM UTC)
        self.scheduler.add_job(
            func=self._sync_recent_weeks,
            trigger=CronTrigger(hour=9, minute=0),
            id="sync_recent_weeks",
            name="Sync Recently Closed Weeks",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )

        logger.info(f"Feed polling every {poll_seconds}s")

    def _poll_open_weeks(self):
        """Refresh results for every week whose game window contains now"""
        with self.app.app_context():
            self._sync_weeks(Week.in_window(utc_now()))

    def _sync_recent_weeks(self):
        """Refresh weeks that closed within the correction window"""
        with self.app.app_context():
            now = utc_now()
            weeks = Week.query.filter(
                Week.end_time < now, Week.end_time >= now - CORRECTION_WINDOW
            ).all()
            self._sync_weeks(weeks)

    def _sync_weeks(self, weeks):
        if not weeks:
            return

        changed = 0
        failed = False
        try:
            for week in weeks:
                success, message, week_changed = sync_week_results(week, feed=self.feed)
                if not success:
                    failed = True
                    self.sync_stats["last_error"] = message
                    logger.warning(f"Result sync for week {week.id} failed: {message}")
                    continue
                changed += week_changed

            if changed:
                invalidate_standings()
            self._update_stats(not failed, changed)

        except Exception as e:
            db.session.rollback()
            self._update_stats(False)
            self.sync_stats["last_error"] = str(e)
            logger.error(f"Error in feed polling: {e}", exc_info=True)

    def _update_stats(self, success, games_updated=0):
        """Update sync statistics"""
        self.sync_stats["last_sync"] = datetime.now(timezone.utc)
        self.sync_stats["total_syncs"] += 1

        if success:
            self.sync_stats["successful_syncs"] += 1
            self.sync_stats["games_updated"] += games_updated
        else:
            self.sync_stats["failed_syncs"] += 1

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler:
            for job in self.scheduler.get_jobs():
                next_run = getattr(job, "next_run_time", None)
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                        "trigger": str(job.trigger),
                    }
                )

        stats = dict(self.sync_stats)
        if stats["last_sync"]:
            stats["last_sync"] = stats["last_sync"].isoformat()
        return {"is_running": self.is_running, "jobs": jobs, "stats": stats}


# Global scheduler instance
scheduler_service = SchedulerService()
