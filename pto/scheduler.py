"""
Delayed one-shot jobs on a shared APScheduler BackgroundScheduler.

End-of-PTO alerts are keyed by user id: scheduling a user who already has a
pending alert replaces it. Nothing is persisted; pending alerts are rebuilt
from the request channel history on startup.
"""
from datetime import timedelta
import logging

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from django.utils import timezone

logger = logging.getLogger(__name__)

PTO_END_JOB_PREFIX = 'pto_end:'

background_scheduler = BackgroundScheduler(
    timezone='UTC',
    # a late alert still goes out
    job_defaults={'misfire_grace_time': None, 'coalesce': True},
)


def start_scheduler():
    if not background_scheduler.running:
        background_scheduler.start()
        logger.info("⏱️ Scheduler started")


def stop_scheduler():
    if background_scheduler.running:
        background_scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


def run_later(delay_seconds, func, *args):
    """Run func(*args) once, delay_seconds from now"""
    run_date = timezone.now() + timedelta(seconds=delay_seconds)
    return background_scheduler.add_job(func, 'date', run_date=run_date, args=args)


class PTOEndScheduler:
    """One pending end-of-PTO job per user"""

    def __init__(self, scheduler=None):
        self.scheduler = scheduler if scheduler is not None else background_scheduler

    @staticmethod
    def job_id(user_id):
        return f"{PTO_END_JOB_PREFIX}{user_id}"

    def schedule(self, user_id, run_date, callback, *args, now=None):
        now = now or timezone.now()
        if run_date <= now:
            logger.info(f"PTO for {user_id} already ended, nothing to schedule")
            return None

        job = self.scheduler.add_job(
            callback, 'date',
            run_date=run_date,
            args=args,
            id=self.job_id(user_id),
            replace_existing=True,
        )
        logger.info(f"Scheduled PTO end alert for {user_id} at {run_date.isoformat()}")
        return job

    def cancel(self, user_id):
        try:
            self.scheduler.remove_job(self.job_id(user_id))
        except JobLookupError:
            return False
        return True

    def get(self, user_id):
        return self.scheduler.get_job(self.job_id(user_id))

    def pending(self):
        return {
            job.id[len(PTO_END_JOB_PREFIX):]
            for job in self.scheduler.get_jobs()
            if job.id.startswith(PTO_END_JOB_PREFIX)
        }


pto_end_scheduler = PTOEndScheduler()
