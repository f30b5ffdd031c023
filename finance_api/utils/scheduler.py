"""
Scheduler Service
Runs the recurring-transaction processor and the budget monitor using APScheduler
"""
import logging
from typing import Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from finance_api.core.config import settings
from finance_api.utils.budgets import monitor_budgets
from finance_api.utils.recurring import process_recurring_transactions

logger = logging.getLogger(__name__)

RECURRING_JOB_ID = "recurring_transactions"
BUDGET_MONITOR_JOB_ID = "budget_monitor"

# Scheduler instance (exported for use in the jobs router)
scheduler: Optional[BackgroundScheduler] = None


def recurring_transactions_job() -> Dict[str, int]:
    """Job function for the daily recurring-transaction run"""
    try:
        return process_recurring_transactions()
    except Exception as e:
        logger.exception("Recurring transactions job failed")
        return {"error": str(e)}


def budget_monitor_job() -> Dict[str, int]:
    """Job function for the periodic budget monitor"""
    try:
        return monitor_budgets()
    except Exception as e:
        logger.exception("Budget monitor job failed")
        return {"error": str(e)}


def start_scheduler():
    """Start the background scheduler with both periodic jobs"""
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler is already running")
        return

    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        recurring_transactions_job,
        trigger=CronTrigger.from_crontab(settings.RECURRING_TRANSACTIONS_CRON, timezone="UTC"),
        id=RECURRING_JOB_ID,
        name="Recurring Transactions",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.add_job(
        budget_monitor_job,
        trigger=CronTrigger.from_crontab(settings.BUDGET_MONITOR_CRON, timezone="UTC"),
        id=BUDGET_MONITOR_JOB_ID,
        name="Budget Monitor",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started: recurring='{settings.RECURRING_TRANSACTIONS_CRON}', "
        f"budget monitor='{settings.BUDGET_MONITOR_CRON}'"
    )


def stop_scheduler():
    """Stop the background scheduler"""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown()
        scheduler = None
        logger.info("Scheduler stopped")


def get_scheduler_status():
    """Get current scheduler status"""
    if scheduler is None:
        return {"running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": str(job.next_run_time) if job.next_run_time else None
        })

    return {
        "running": scheduler.running,
        "jobs": jobs
    }
