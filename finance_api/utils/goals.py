import logging
from typing import List, Optional

from finance_api.core.exceptions import InvalidRequestError, NotFoundError
from finance_api.db import dynamo
from finance_api.models.common import utcnow
from finance_api.models.goal import GoalInDB
from finance_api.models.transaction import TransactionInDB

logger = logging.getLogger(__name__)

SAVINGS_CATEGORY = "Savings"


def get_goal_or_404(user_id: str, goal_id: str) -> GoalInDB:
    goal = dynamo.get_goal(user_id, goal_id)
    if goal is None:
        raise NotFoundError("Goal not found", details={"goal_id": goal_id})
    return goal


def add_contribution(user_id: str, goal_id: str, amount: float, description: Optional[str] = None) -> GoalInDB:
    """
    Record a manual contribution (positive) or withdrawal (negative) and
    apply it to the goal.
    """
    if amount == 0:
        raise InvalidRequestError("Contribution amount must be non-zero")
    goal = get_goal_or_404(user_id, goal_id)

    if amount > 0:
        applied = amount
        transaction = TransactionInDB(
            user_id=user_id,
            type="expense",
            amount=amount,
            currency=goal.currency,
            category=SAVINGS_CATEGORY,
            description=description or f"Contribution to {goal.title}",
            date=utcnow(),
            tags=["goal", goal.category],
        )
    else:
        # The balance never goes negative, so only what the goal holds can leave it.
        withdrawn = min(-amount, goal.current_amount)
        if withdrawn <= 0:
            raise InvalidRequestError("Goal has no funds to withdraw", details={"goal_id": goal_id})
        applied = -withdrawn
        transaction = TransactionInDB(
            user_id=user_id,
            type="income",
            amount=withdrawn,
            currency=goal.currency,
            category=SAVINGS_CATEGORY,
            description=description or f"Withdrawal from {goal.title}",
            date=utcnow(),
            tags=["goal", "withdrawal", goal.category],
        )

    dynamo.put_transaction(transaction)
    goal.add_transaction(transaction.transaction_id, applied)
    return dynamo.put_goal(goal)


def allocate_income_to_goals(user_id: str, transaction: TransactionInDB) -> List[GoalInDB]:
    """
    Move ``allocation_percentage`` of an income transaction into every active
    auto-allocating goal. Errors are logged, never raised, so the income
    itself is always recorded.
    """
    if transaction.type != "income":
        return []
    # Withdrawals from a goal are income too; they must not feed goals back.
    if "withdrawal" in transaction.tags:
        return []

    allocated: List[GoalInDB] = []
    try:
        goals = dynamo.list_goals(user_id, status="active")
        for goal in goals:
            if not goal.auto_allocate:
                continue
            allocation = transaction.amount * goal.allocation_percentage / 100
            if allocation <= 0:
                continue
            allocation_transaction = TransactionInDB(
                user_id=user_id,
                type="expense",
                amount=allocation,
                currency=transaction.currency,
                category=SAVINGS_CATEGORY,
                description=f"Automatic allocation to {goal.title} ({goal.allocation_percentage:g}% of income)",
                date=utcnow(),
                tags=["goal", "automatic", goal.category],
            )
            dynamo.put_transaction(allocation_transaction)
            goal.add_transaction(allocation_transaction.transaction_id, allocation)
            allocated.append(dynamo.put_goal(goal))
    except Exception:
        logger.exception(f"Error allocating income to goals for user {user_id}")
    return allocated
