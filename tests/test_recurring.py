from datetime import datetime, timedelta

import pytest

from finance_api.db import dynamo
from finance_api.models.goal import GoalInDB
from finance_api.models.transaction import RecurringDetails
from finance_api.utils import recurring

NOW = datetime(2025, 6, 15, 0, 0)


@pytest.fixture
def make_recurring(make_transaction):
    def factory(frequency, last_processed=None, amount=50.0, **details):
        return make_transaction(
            amount,
            category="Subscriptions",
            description="Streaming",
            date=datetime(2025, 1, 1),
            tags=["media"],
            is_recurring=True,
            recurring_details=RecurringDetails(frequency=frequency, last_processed=last_processed, **details),
        )

    return factory


def materialized(store):
    return [t for t in store.transactions.values() if not t.is_recurring]


def test_should_process_elapsed_time_for_daily_and_weekly():
    assert recurring.should_process("daily", None, NOW)
    assert recurring.should_process("daily", NOW - timedelta(hours=24), NOW)
    assert not recurring.should_process("daily", NOW - timedelta(hours=23), NOW)
    assert recurring.should_process("weekly", NOW - timedelta(days=7), NOW)
    assert not recurring.should_process("weekly", NOW - timedelta(days=6), NOW)


def test_should_process_calendar_comparison_for_monthly_and_yearly():
    assert recurring.should_process("monthly", datetime(2025, 5, 31, 23), NOW)
    assert not recurring.should_process("monthly", datetime(2025, 6, 1), NOW)
    assert recurring.should_process("monthly", datetime(2024, 12, 20), datetime(2025, 1, 2))
    assert recurring.should_process("yearly", datetime(2024, 12, 31), NOW)
    assert not recurring.should_process("yearly", datetime(2025, 1, 1), NOW)


def test_next_due_date_uses_calendar_periods():
    assert recurring.next_due_date("daily", NOW) == datetime(2025, 6, 16)
    assert recurring.next_due_date("weekly", NOW) == datetime(2025, 6, 22)
    assert recurring.next_due_date("monthly", datetime(2025, 1, 31)) == datetime(2025, 2, 28)
    assert recurring.next_due_date("yearly", NOW) == datetime(2026, 6, 15)


def test_is_due_soon_window():
    assert recurring.is_due_soon(NOW + timedelta(days=2), NOW, notice_days=3)
    assert recurring.is_due_soon(NOW + timedelta(days=3), NOW, notice_days=3)
    assert not recurring.is_due_soon(NOW + timedelta(days=10), NOW, notice_days=3)
    assert not recurring.is_due_soon(NOW - timedelta(days=1), NOW, notice_days=3)


def test_daily_materializes_once_per_period(store, make_recurring):
    template = make_recurring("daily", last_processed=NOW - timedelta(hours=25))

    summary = recurring.process_recurring_transactions(now=NOW)

    created = materialized(store)
    assert len(created) == 1
    assert created[0].amount == 50.0
    assert created[0].category == "Subscriptions"
    assert created[0].tags == ["media"]
    assert created[0].date == NOW
    assert summary["processed"] == 1

    stored = store.get_transaction(template.user_id, template.transaction_id)
    assert stored.recurring_details.last_processed == NOW
    assert stored.recurring_details.next_due_date == NOW + timedelta(days=1)

    again = recurring.process_recurring_transactions(now=NOW + timedelta(minutes=5))
    assert len(materialized(store)) == 1
    assert again["processed"] == 0


def test_late_daily_raises_missed_notification(store, make_recurring):
    last = NOW - timedelta(hours=25)
    template = make_recurring("daily", last_processed=last)

    recurring.process_recurring_transactions(now=NOW)

    [missed] = store.notifications_of_type("missed")
    assert missed.transaction_id == template.transaction_id
    assert missed.due_date == last


def test_first_run_has_no_missed_notification(store, make_recurring):
    make_recurring("weekly")
    recurring.process_recurring_transactions(now=NOW)
    assert store.notifications_of_type("missed") == []
    assert len(materialized(store)) == 1


def test_upcoming_notification_only_for_near_due_dates(store, make_recurring):
    daily = make_recurring("daily", last_processed=NOW - timedelta(hours=2))
    make_recurring("weekly", last_processed=NOW - timedelta(days=1))

    recurring.process_recurring_transactions(now=NOW)

    [upcoming] = store.notifications_of_type("upcoming")
    assert upcoming.transaction_id == daily.transaction_id
    assert upcoming.due_date == NOW + timedelta(days=1)
    assert materialized(store) == []


def test_ended_and_future_templates_are_skipped(store, make_recurring):
    make_recurring("daily", end_date=NOW - timedelta(days=1))
    make_recurring("daily", start_date=NOW + timedelta(days=5))

    summary = recurring.process_recurring_transactions(now=NOW)

    assert summary["scanned"] == 0
    assert materialized(store) == []


def test_failure_on_one_template_does_not_stop_the_run(store, make_recurring, monkeypatch):
    broken = make_recurring("daily", amount=10.0)
    make_recurring("daily", amount=20.0)
    real_put = dynamo.put_transaction

    def flaky_put(transaction):
        if transaction.amount == 10.0 and not transaction.is_recurring:
            raise RuntimeError("write failed")
        return real_put(transaction)

    monkeypatch.setattr(dynamo, "put_transaction", flaky_put)

    summary = recurring.process_recurring_transactions(now=NOW)

    assert summary["failed"] == 1
    assert summary["processed"] == 1
    assert [t.amount for t in materialized(store)] == [20.0]
    untouched = store.get_transaction(broken.user_id, broken.transaction_id)
    assert untouched.recurring_details.last_processed is None


def test_materialized_income_feeds_auto_allocating_goals(store, make_transaction):
    store.put_goal(
        GoalInDB(
            user_id="user-1",
            title="Emergency fund",
            target_amount=10000,
            target_date=datetime(2026, 1, 1),
            category="Safety",
            auto_allocate=True,
            allocation_percentage=10,
        )
    )
    make_transaction(
        2000.0,
        category="Salary",
        type="income",
        is_recurring=True,
        recurring_details=RecurringDetails(frequency="monthly"),
    )

    recurring.process_recurring_transactions(now=NOW)

    [goal] = store.list_goals("user-1")
    assert goal.current_amount == 200.0
    allocations = [t for t in store.transactions.values() if "automatic" in t.tags]
    assert [(t.type, t.amount, t.category) for t in allocations] == [("expense", 200.0, "Savings")]
