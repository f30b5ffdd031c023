"""
Reporting Service
Monthly income/expense buckets, summary figures, and month-over-month trends.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from finance_api.db import dynamo
from finance_api.models.transaction import TransactionCriteria, TransactionInDB

logger = logging.getLogger(__name__)

TOP_N = 5


@dataclass
class ReportFilters:
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    category: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    def to_criteria(self, user_id: str) -> TransactionCriteria:
        return TransactionCriteria(
            user_id=user_id,
            category=self.category,
            tags=list(self.tags),
            start_date=self.start_date,
            end_date=self.end_date,
        ).validate()


def _empty_bucket() -> Dict[str, Any]:
    return {"income": 0.0, "expenses": 0.0, "categories": defaultdict(float), "tags": defaultdict(float)}


def monthly_buckets(transactions: List[TransactionInDB]) -> Dict[str, Dict[str, Any]]:
    buckets: Dict[str, Dict[str, Any]] = defaultdict(_empty_bucket)
    for transaction in transactions:
        bucket = buckets[transaction.date.strftime("%Y-%m")]
        if transaction.type == "income":
            bucket["income"] += transaction.amount
            continue
        bucket["expenses"] += transaction.amount
        bucket["categories"][transaction.category] += transaction.amount
        for tag in transaction.tags:
            bucket["tags"][tag] += transaction.amount

    return {
        month: {
            "income": round(bucket["income"], 2),
            "expenses": round(bucket["expenses"], 2),
            "categories": {k: round(v, 2) for k, v in bucket["categories"].items()},
            "tags": {k: round(v, 2) for k, v in bucket["tags"].items()},
        }
        for month, bucket in sorted(buckets.items())
    }


def summarize(monthly_data: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    months = len(monthly_data)
    total_income = sum(bucket["income"] for bucket in monthly_data.values())
    total_expenses = sum(bucket["expenses"] for bucket in monthly_data.values())
    return {
        "total_income": round(total_income, 2),
        "total_expenses": round(total_expenses, 2),
        "net_savings": round(total_income - total_expenses, 2),
        # No buckets means nothing to average over; report zero.
        "average_monthly_income": round(total_income / months, 2) if months else 0.0,
        "average_monthly_expenses": round(total_expenses / months, 2) if months else 0.0,
        "months_analyzed": months,
    }


def _growth(current: float, previous: float) -> Optional[float]:
    if previous == 0:
        return None
    return round((current - previous) / previous * 100, 2)


def _top(monthly_data: Dict[str, Dict[str, Any]], key: str) -> Dict[str, float]:
    totals: Dict[str, float] = defaultdict(float)
    for bucket in monthly_data.values():
        for name, amount in bucket[key].items():
            totals[name] += amount
    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))[:TOP_N]
    return {name: round(amount, 2) for name, amount in ranked}


def analyze_trends(monthly_data: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    months = sorted(monthly_data)
    income_growth = []
    expense_growth = []
    for previous, current in zip(months, months[1:]):
        income_growth.append(
            {"month": current, "growth": _growth(monthly_data[current]["income"], monthly_data[previous]["income"])}
        )
        expense_growth.append(
            {"month": current, "growth": _growth(monthly_data[current]["expenses"], monthly_data[previous]["expenses"])}
        )
    return {
        "income_growth": income_growth,
        "expense_growth": expense_growth,
        "top_categories": _top(monthly_data, "categories"),
        "top_tags": _top(monthly_data, "tags"),
    }


def build_trends(transactions: List[TransactionInDB]) -> Dict[str, Any]:
    monthly_data = monthly_buckets(transactions)
    return {
        "monthly_data": monthly_data,
        "summary": summarize(monthly_data),
        "trends": analyze_trends(monthly_data),
    }


def generate_trends(user_id: str, filters: Optional[ReportFilters] = None) -> Dict[str, Any]:
    filters = filters or ReportFilters()
    transactions = dynamo.find_transactions(filters.to_criteria(user_id))
    logger.info(f"Generating trends for user {user_id} over {len(transactions)} transactions")
    return build_trends(transactions)
