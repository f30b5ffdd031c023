"""
Budget Service
Evaluates budgets against the ledger, recommends adjustments, and runs the
periodic budget monitor that raises warning/exceeded notifications.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from dateutil.relativedelta import relativedelta

from finance_api.core.config import settings
from finance_api.db import dynamo
from finance_api.models.budget import BudgetAnalytics, BudgetEvaluation, BudgetInDB, BudgetRecommendation
from finance_api.models.common import utcnow
from finance_api.models.notification import NotificationInDB
from finance_api.models.transaction import TransactionCriteria
from finance_api.utils.analyzer import FinanceAnalyzer

logger = logging.getLogger(__name__)

finance_analyzer = FinanceAnalyzer(window_months=settings.RECOMMENDATION_WINDOW_MONTHS)


def spent_against(budget: BudgetInDB) -> float:
    transactions = dynamo.find_transactions(finance_analyzer.budget_criteria(budget))
    return finance_analyzer.total_spent(transactions)


def evaluate_budget(budget: BudgetInDB) -> BudgetEvaluation:
    return finance_analyzer.evaluate(budget, spent_against(budget))


def budget_analytics(user_id: str) -> List[BudgetAnalytics]:
    analytics = []
    for budget in dynamo.list_budgets(user_id):
        evaluation = evaluate_budget(budget)
        analytics.append(BudgetAnalytics(budget=budget, **evaluation.model_dump()))
    return analytics


def recommend_budgets(user_id: str, now: Optional[datetime] = None) -> List[BudgetRecommendation]:
    """Recommendations from the user's trailing window of spend."""
    now = now or utcnow()
    since = now - relativedelta(months=finance_analyzer.window_months)
    try:
        transactions = dynamo.find_transactions(TransactionCriteria(user_id=user_id, start_date=since))
        budgets = dynamo.list_budgets(user_id)
    except Exception:
        logger.exception(f"Error generating budget recommendations for user {user_id}")
        raise
    return finance_analyzer.recommend(transactions, budgets)


def _alert_message(kind: str, budget: BudgetInDB, evaluation: BudgetEvaluation) -> str:
    if kind == "budget_exceeded":
        return (
            f"Alert: Budget Exceeded! You've spent ${evaluation.total_spent:.2f} of your "
            f"${budget.amount:.2f} {budget.label} budget."
        )
    return (
        f"Warning: You've used {evaluation.percentage_used:.1f}% of your {budget.label} budget. "
        f"(${evaluation.total_spent:.2f} of ${budget.amount:.2f})"
    )


def check_budget(budget: BudgetInDB) -> Optional[NotificationInDB]:
    """Recompute one budget's spend, alert on a threshold crossing, refresh the cache."""
    total_spent = spent_against(budget)
    evaluation = finance_analyzer.evaluate(budget, total_spent)
    kind = finance_analyzer.alert_for(budget, total_spent)

    notification = None
    if kind is not None:
        notification = dynamo.put_notification(
            NotificationInDB(
                user_id=budget.user_id,
                budget_id=budget.budget_id,
                type=kind,
                message=_alert_message(kind, budget, evaluation),
                severity="high" if kind == "budget_exceeded" else "medium",
            )
        )

    dynamo.update_budget(budget.user_id, budget.budget_id, {"current_spending": total_spent})
    budget.current_spending = total_spent
    return notification


def monitor_budgets() -> Dict[str, int]:
    """Run the budget monitor over every user's budgets."""
    logger.info("Starting budget monitor run")
    summary = {"scanned": 0, "notifications": 0, "failed": 0}

    for budget in dynamo.list_budgets():
        summary["scanned"] += 1
        try:
            if check_budget(budget) is not None:
                summary["notifications"] += 1
        except Exception:
            summary["failed"] += 1
            logger.exception(f"Budget monitoring failed for budget {budget.budget_id} (user {budget.user_id})")

    logger.info(f"Budget monitor finished: {summary}")
    return summary
