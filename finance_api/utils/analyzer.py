from __future__ import annotations

import math
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from dateutil.relativedelta import relativedelta

from finance_api.models.budget import BudgetEvaluation, BudgetInDB, BudgetRecommendation
from finance_api.models.transaction import TransactionCriteria, TransactionInDB


def _money(value: float) -> Decimal:
    return Decimal(str(value))


def _round_half_up(value: Decimal) -> int:
    return math.floor(value + Decimal("0.5"))


class FinanceAnalyzer:
    """
    Budget analytics shared by the FastAPI routes and the background jobs.
    Methods here never touch the store; callers fetch the transactions.
    """

    def __init__(
        self,
        window_months: int = 3,
        increase_buffer: float = 0.1,
        decrease_buffer: float = 0.2,
        underspend_ratio: float = 0.7,
    ) -> None:
        self._window_months = window_months
        self._increase_factor = 1 + _money(increase_buffer)
        self._decrease_factor = 1 + _money(decrease_buffer)
        self._underspend_ratio = _money(underspend_ratio)

    @property
    def window_months(self) -> int:
        return self._window_months

    @staticmethod
    def budget_criteria(budget: BudgetInDB) -> TransactionCriteria:
        """Expense transactions that count against ``budget``."""
        criteria = TransactionCriteria(user_id=budget.user_id, type="expense")
        if budget.type == "monthly":
            criteria.start_date = budget.month
            criteria.end_date = budget.month + relativedelta(months=1)
            criteria.end_inclusive = False
        else:
            criteria.category = budget.category
        return criteria

    @staticmethod
    def total_spent(transactions: Iterable[TransactionInDB]) -> float:
        return float(sum((_money(t.amount) for t in transactions), Decimal("0")))

    @staticmethod
    def percentage_used(amount: float, total_spent: float) -> float:
        # A zero ceiling is fully used by any spend at all.
        if amount == 0:
            return 100.0 if total_spent > 0 else 0.0
        return total_spent / amount * 100

    def evaluate(self, budget: BudgetInDB, total_spent: float) -> BudgetEvaluation:
        percentage = self.percentage_used(budget.amount, total_spent)
        if percentage >= 100:
            status = "exceeded"
        elif percentage >= budget.warning_threshold:
            status = "warning"
        else:
            status = "safe"
        return BudgetEvaluation(
            total_spent=total_spent,
            percentage_used=percentage,
            remaining=budget.amount - total_spent,
            status=status,
        )

    def alert_for(self, budget: BudgetInDB, total_spent: float) -> Optional[str]:
        """
        Notification type to raise when spend moves from the cached
        ``current_spending`` to ``total_spent``. Only threshold crossings
        alert, so repeated monitor runs stay quiet.
        """
        percentage = self.percentage_used(budget.amount, total_spent)
        previous = self.percentage_used(budget.amount, budget.current_spending)
        if percentage >= 100:
            return "budget_exceeded" if previous < 100 else None
        if percentage >= budget.warning_threshold:
            return "budget_warning" if previous < budget.warning_threshold else None
        return None

    def monthly_category_totals(
        self,
        transactions: Iterable[TransactionInDB],
    ) -> Dict[str, Dict[str, Decimal]]:
        """Expense totals per category per ``YYYY-MM``."""
        totals: Dict[str, Dict[str, Decimal]] = defaultdict(lambda: defaultdict(Decimal))
        for transaction in transactions:
            if transaction.type != "expense":
                continue
            month = transaction.date.strftime("%Y-%m")
            totals[transaction.category][month] += _money(transaction.amount)
        return totals

    def recommend(
        self,
        transactions: List[TransactionInDB],
        budgets: List[BudgetInDB],
    ) -> List[BudgetRecommendation]:
        """
        Compare trailing-window category spend with the user's category
        budgets. The average always divides by the full window length, even
        when some months have no spend.
        """
        category_budgets: Dict[str, BudgetInDB] = {}
        for budget in budgets:
            if budget.type == "category" and budget.category not in category_budgets:
                category_budgets[budget.category] = budget

        recommendations: List[BudgetRecommendation] = []
        monthly = self.monthly_category_totals(transactions)
        for category in sorted(monthly):
            average = sum(monthly[category].values(), Decimal("0")) / self._window_months
            recommendation = self._recommend_category(category, average, category_budgets.get(category))
            if recommendation is not None:
                recommendations.append(recommendation)
        return recommendations

    def _recommend_category(
        self,
        category: str,
        average: Decimal,
        budget: Optional[BudgetInDB],
    ) -> Optional[BudgetRecommendation]:
        if budget is None:
            return BudgetRecommendation(
                category=category,
                type="new",
                recommended_budget=math.ceil(average * self._increase_factor),
                average_spending=round(float(average), 2),
                reason="No budget set for active spending category",
            )

        current = _money(budget.amount)
        if current < average:
            if current > 0:
                overage = _round_half_up((average / current - 1) * 100)
                reason = f"Consistently exceeding budget by {overage}%"
            else:
                reason = "Spending recorded against a zero budget"
            return BudgetRecommendation(
                category=category,
                type="increase",
                current_budget=budget.amount,
                recommended_budget=math.ceil(average * self._increase_factor),
                average_spending=round(float(average), 2),
                reason=reason,
            )
        if average < current * self._underspend_ratio:
            return BudgetRecommendation(
                category=category,
                type="decrease",
                current_budget=budget.amount,
                recommended_budget=math.ceil(average * self._decrease_factor),
                average_spending=round(float(average), 2),
                reason="Significant underspending, budget could be optimized",
            )
        return None
