"""
F1 Tipping Background Scheduler Service

Runs the periodic jobs with APScheduler: a nightly full score
recalculation and a weekly race calendar sync for the active season.
"""

import atexit
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from tipping import db
from tipping.models import Season

logger = logging.getLogger(__name__)


class SchedulerService:
    """Manages the background jobs"""

    def __init__(self, app=None):
        self.scheduler = None
        self.app = app
        self.is_running = False
        self.job_stats = {
            "last_run": None,
            "total_runs": 0,
            "successful_runs": 0,
            "failed_runs": 0,
            "last_error": None,
        }

        if app:
            self.init_app(app)

    def init_app(self, app):
        """Initialize scheduler with Flask app"""
        self.app = app
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

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
        recalculation_hour = self.app.config.get("RECALCULATION_HOUR", 4)

        # Nightly recalculation; idempotent, so a missed or doubled run is harmless
        self.scheduler.add_job(
            func=self._nightly_recalculation,
            trigger=CronTrigger(hour=recalculation_hour, minute=0),
            id="nightly_recalculation",
            name="Nightly Score Recalculation",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )

        # Weekly calendar sync (Monday 3 AM UTC)
        self.scheduler.add_job(
            func=self._weekly_calendar_sync,
            trigger=CronTrigger(day_of_week="mon", hour=3, minute=0),
            id="weekly_calendar_sync",
            name="Weekly Race Calendar Sync",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )

        logger.info("Core scheduler jobs added")

    def _nightly_recalculation(self):
        with self.app.app_context():
            try:
                from tipping.services.scoring_service import recalculate_all

                logger.info("Running nightly score recalculation...")
                report = recalculate_all()
                self._update_stats(not report.failures)
                if report.failures:
                    self.job_stats["last_error"] = (
                        f"{len(report.failures)} predictions failed to rescore"
                    )

            except Exception as e:
                db.session.rollback()
                self._update_stats(False)
                self.job_stats["last_error"] = str(e)
                logger.error(f"Error in nightly recalculation: {e}", exc_info=True)

    def _weekly_calendar_sync(self):
        with self.app.app_context():
            try:
                from tipping.utils.data_sync import DataSync

                current_season = Season.get_current_season()
                if not current_season:
                    return

                logger.info(f"Running weekly calendar sync for {current_season.year}...")
                success, message = DataSync().sync_calendar(current_season.year)
                self._update_stats(success)
                if success:
                    db.session.expire_all()
                else:
                    self.job_stats["last_error"] = message
                    logger.warning(f"Weekly calendar sync issues: {message}")

            except Exception as e:
                db.session.rollback()
                self._update_stats(False)
                self.job_stats["last_error"] = str(e)
                logger.error(f"Error in weekly calendar sync: {e}", exc_info=True)

    def _update_stats(self, success):
        self.job_stats["last_run"] = datetime.now(timezone.utc)
        self.job_stats["total_runs"] += 1

        if success:
            self.job_stats["successful_runs"] += 1
            self.job_stats["last_error"] = None
        else:
            self.job_stats["failed_runs"] += 1

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler:
            for job in self.scheduler.get_jobs():
                next_run = job.next_run_time
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                        "trigger": str(job.trigger),
                    }
                )

        return {"is_running": self.is_running, "jobs": jobs, "stats": self.job_stats}


# Global scheduler instance
scheduler_service = SchedulerService()
