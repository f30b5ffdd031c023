"""
Recurring Transaction Service
Materializes due recurring transactions and raises upcoming/missed notifications.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from dateutil.relativedelta import relativedelta

from finance_api.core.config import settings
from finance_api.db import dynamo
from finance_api.models.common import utcnow
from finance_api.models.notification import NotificationInDB
from finance_api.models.transaction import TransactionCriteria, TransactionInDB
from finance_api.utils import goals

logger = logging.getLogger(__name__)

PERIODS = {
    "daily": relativedelta(days=1),
    "weekly": relativedelta(weeks=1),
    "monthly": relativedelta(months=1),
    "yearly": relativedelta(years=1),
}


def next_due_date(frequency: str, now: datetime) -> datetime:
    return now + PERIODS[frequency]


def should_process(frequency: str, last_processed: Optional[datetime], now: datetime) -> bool:
    """
    Daily and weekly recurrences compare elapsed time; monthly and yearly
    only compare the calendar month/year.
    """
    if last_processed is None:
        return True
    if frequency == "daily":
        return now - last_processed >= timedelta(days=1)
    if frequency == "weekly":
        return now - last_processed >= timedelta(weeks=1)
    if frequency == "monthly":
        return (now.year, now.month) > (last_processed.year, last_processed.month)
    return now.year > last_processed.year


def is_overdue(frequency: str, last_processed: Optional[datetime], now: datetime) -> bool:
    """More than one full period has passed since the last materialization."""
    return last_processed is not None and now > last_processed + PERIODS[frequency]


def is_due_soon(due_date: datetime, now: datetime, notice_days: int = settings.UPCOMING_NOTICE_DAYS) -> bool:
    return now <= due_date <= now + timedelta(days=notice_days)


def materialize(template: TransactionInDB, now: datetime) -> TransactionInDB:
    return TransactionInDB(
        user_id=template.user_id,
        type=template.type,
        amount=template.amount,
        currency=template.currency,
        category=template.category,
        description=template.description,
        tags=list(template.tags),
        date=now,
    )


def process_transaction(template: TransactionInDB, now: datetime) -> List[NotificationInDB]:
    """Handle a single recurring template. Returns the notifications raised."""
    details = template.recurring_details
    frequency = details.frequency
    last_processed = details.last_processed
    due = next_due_date(frequency, now)
    due_now = should_process(frequency, last_processed, now)
    notifications: List[NotificationInDB] = []

    if is_due_soon(due, now):
        notifications.append(
            dynamo.put_notification(
                NotificationInDB(
                    user_id=template.user_id,
                    transaction_id=template.transaction_id,
                    type="upcoming",
                    message=(
                        f"Upcoming {template.type}: {template.description} for ${template.amount:.2f} "
                        f"due on {due:%Y-%m-%d}"
                    ),
                    due_date=due,
                )
            )
        )

    if due_now and is_overdue(frequency, last_processed, now):
        notifications.append(
            dynamo.put_notification(
                NotificationInDB(
                    user_id=template.user_id,
                    transaction_id=template.transaction_id,
                    type="missed",
                    message=(
                        f"Missed {template.type}: {template.description} for ${template.amount:.2f} "
                        f"was due on {last_processed:%Y-%m-%d}"
                    ),
                    severity="medium",
                    due_date=last_processed,
                )
            )
        )

    if due_now:
        created = dynamo.put_transaction(materialize(template, now))
        goals.allocate_income_to_goals(template.user_id, created)
        details.last_processed = now
        details.next_due_date = due
        dynamo.update_transaction(
            template.user_id,
            template.transaction_id,
            {"recurring_details": details.model_dump(mode="json")},
        )
        logger.info(f"Materialized recurring transaction {template.transaction_id} as {created.transaction_id}")

    return notifications


def process_recurring_transactions(now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Daily job. Safe to rerun within a period: once ``last_processed`` is
    advanced the template is not materialized again until the next period.
    """
    now = now or utcnow()
    logger.info(f"Processing recurring transactions at {now.isoformat()}")
    summary = {"scanned": 0, "processed": 0, "notifications": 0, "failed": 0}

    templates = dynamo.find_transactions(TransactionCriteria(is_recurring=True))
    for template in templates:
        if template.recurring_details is None or not template.recurring_details.is_active(now):
            continue
        summary["scanned"] += 1
        before = template.recurring_details.last_processed
        try:
            notifications = process_transaction(template, now)
        except Exception:
            summary["failed"] += 1
            logger.exception(f"Error processing recurring transaction {template.transaction_id}")
            continue
        summary["notifications"] += len(notifications)
        if template.recurring_details.last_processed != before:
            summary["processed"] += 1

    logger.info(f"Recurring transactions finished: {summary}")
    return summary
