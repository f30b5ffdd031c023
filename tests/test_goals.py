from datetime import datetime

import pytest

from finance_api.core.exceptions import InvalidRequestError, NotFoundError
from finance_api.models.goal import GoalInDB, GoalPublic
from finance_api.models.transaction import TransactionInDB
from finance_api.utils import goals
from finance_api.utils.reporting import build_trends


def make_goal(**kwargs):
    defaults = dict(
        user_id="user-1",
        title="Holiday",
        target_amount=1000.0,
        target_date=datetime(2030, 1, 1),
        category="Travel",
    )
    defaults.update(kwargs)
    return GoalInDB(**defaults)


def test_withdrawal_clamps_at_zero():
    goal = make_goal(current_amount=500.0)
    goal.add_transaction("t-1", -1000.0)
    assert goal.current_amount == 0
    assert goal.transactions == ["t-1"]


def test_status_completes_and_reopens():
    goal = make_goal(current_amount=900.0)
    goal.add_transaction("t-1", 100.0)
    assert goal.status == "completed"
    goal.add_transaction("t-2", -50.0)
    assert goal.status == "active"
    assert goal.current_amount == 950.0


def test_cancelled_goal_stays_cancelled_below_target():
    goal = make_goal(status="cancelled")
    goal.add_transaction("t-1", 10.0)
    assert goal.status == "cancelled"


def test_public_view_derived_fields():
    public = GoalPublic(**make_goal(current_amount=250.0).model_dump())
    assert public.progress_percentage == 25.0
    assert public.remaining_amount == 750.0
    assert public.days_remaining > 0

    zero = GoalPublic(**make_goal(target_amount=0, target_date=datetime(2000, 1, 1)).model_dump())
    assert zero.progress_percentage == 0.0
    assert zero.days_remaining == 0


def test_add_contribution_records_savings_expense(store):
    goal = store.put_goal(make_goal())

    updated = goals.add_contribution("user-1", goal.goal_id, 200.0)

    assert updated.current_amount == 200.0
    [transaction] = store.transactions.values()
    assert transaction.type == "expense"
    assert transaction.category == "Savings"
    assert transaction.tags == ["goal", "Travel"]
    assert updated.transactions == [transaction.transaction_id]
    assert store.get_goal("user-1", goal.goal_id).current_amount == 200.0


def test_negative_contribution_is_recorded_as_income(store):
    goal = store.put_goal(make_goal(current_amount=500.0))

    updated = goals.add_contribution("user-1", goal.goal_id, -200.0)

    assert updated.current_amount == 300.0
    [transaction] = store.transactions.values()
    assert (transaction.type, transaction.amount) == ("income", 200.0)
    assert "withdrawal" in transaction.tags


def test_withdrawal_beyond_balance_records_only_the_balance(store):
    goal = store.put_goal(make_goal(current_amount=500.0))

    updated = goals.add_contribution("user-1", goal.goal_id, -1000.0)

    assert updated.current_amount == 0
    [transaction] = store.transactions.values()
    assert (transaction.type, transaction.amount) == ("income", 500.0)
    report = build_trends(list(store.transactions.values()))
    assert report["summary"]["total_income"] == 500.0


def test_withdrawal_from_empty_goal_is_rejected(store):
    goal = store.put_goal(make_goal())

    with pytest.raises(InvalidRequestError):
        goals.add_contribution("user-1", goal.goal_id, -250.0)

    assert store.transactions == {}
    assert build_trends(list(store.transactions.values()))["summary"]["total_income"] == 0
    assert store.get_goal("user-1", goal.goal_id).transactions == []


def test_add_contribution_validates_input(store):
    goal = store.put_goal(make_goal())
    with pytest.raises(InvalidRequestError):
        goals.add_contribution("user-1", goal.goal_id, 0)
    with pytest.raises(NotFoundError):
        goals.add_contribution("user-2", goal.goal_id, 10.0)


def test_allocation_only_for_income_and_active_auto_goals(store):
    auto = store.put_goal(make_goal(auto_allocate=True, allocation_percentage=25))
    store.put_goal(make_goal(title="Manual"))
    store.put_goal(make_goal(title="Done", status="completed", auto_allocate=True, allocation_percentage=50))

    expense = TransactionInDB(user_id="user-1", type="expense", amount=400.0, category="Food")
    assert goals.allocate_income_to_goals("user-1", expense) == []

    income = TransactionInDB(user_id="user-1", type="income", amount=400.0, category="Salary")
    [allocated] = goals.allocate_income_to_goals("user-1", income)

    assert allocated.goal_id == auto.goal_id
    assert allocated.current_amount == 100.0
    [allocation] = [t for t in store.transactions.values() if "automatic" in t.tags]
    assert allocation.amount == 100.0
    assert allocation.description == "Automatic allocation to Holiday (25% of income)"


def test_allocation_errors_are_swallowed_and_logged(store, monkeypatch, caplog):
    from finance_api.db import dynamo

    def broken(*args, **kwargs):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(dynamo, "list_goals", broken)
    income = TransactionInDB(user_id="user-1", type="income", amount=400.0, category="Salary")

    assert goals.allocate_income_to_goals("user-1", income) == []
    assert "Error allocating income to goals" in caplog.text
