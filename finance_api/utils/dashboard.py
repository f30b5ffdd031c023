from collections import defaultdict
from typing import Any, Dict, List

from dateutil.relativedelta import relativedelta

from finance_api.db import dynamo
from finance_api.models.common import utcnow
from finance_api.models.transaction import TransactionCriteria, TransactionInDB
from finance_api.utils import budgets, reporting


def _month_start():
    now = utcnow()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _stats(transactions: List[TransactionInDB]) -> Dict[str, float]:
    if not transactions:
        return {"total": 0.0, "average": 0.0, "count": 0}
    total = sum(t.amount for t in transactions)
    return {"total": round(total, 2), "average": round(total / len(transactions), 2), "count": len(transactions)}


def user_dashboard(user_id: str) -> Dict[str, Any]:
    now = utcnow()
    transactions = dynamo.find_transactions(TransactionCriteria(user_id=user_id))
    recent = sorted(transactions, key=lambda t: t.date, reverse=True)[:5]

    last_month = reporting.ReportFilters(start_date=now - relativedelta(months=1), end_date=now).to_criteria(user_id)
    month_start = _month_start()
    this_month = [t for t in transactions if t.date >= month_start]
    income = round(sum(t.amount for t in this_month if t.type == "income"), 2)
    expenses = round(sum(t.amount for t in this_month if t.type == "expense"), 2)

    return {
        "recent_transactions": recent,
        "budget_summary": budgets.budget_analytics(user_id),
        "goals": sorted(dynamo.list_goals(user_id), key=lambda g: g.target_date),
        "spending_trends": reporting.build_trends([t for t in transactions if last_month.matches(t)]),
        "notifications": dynamo.list_notifications(user_id, unread_only=True)[:5],
        "monthly_financials": {"income": income, "expenses": expenses, "balance": round(income - expenses, 2)},
    }


def admin_dashboard() -> Dict[str, Any]:
    month_start = _month_start()
    users = dynamo.list_users()
    transactions = dynamo.find_transactions(TransactionCriteria())

    category_totals: Dict[str, Dict[str, float]] = defaultdict(lambda: {"total": 0.0, "count": 0})
    for transaction in transactions:
        if transaction.type == "expense":
            category_totals[transaction.category]["total"] += transaction.amount
            category_totals[transaction.category]["count"] += 1
    top_categories = sorted(
        ({"category": name, "total": round(v["total"], 2), "count": v["count"]} for name, v in category_totals.items()),
        key=lambda item: item["total"],
        reverse=True,
    )[:5]

    return {
        "user_stats": {
            "total_users": len(users),
            "new_users_this_month": len([u for u in users if u.created_at >= month_start]),
        },
        "activity_stats": {
            "total_transactions": len(transactions),
            "transactions_this_month": len([t for t in transactions if t.date >= month_start]),
            "active_goals": len(dynamo.list_goals(status="active")),
            "unread_notifications": len(dynamo.list_notifications(unread_only=True)),
        },
        "financial_summary": {
            "income": _stats([t for t in transactions if t.type == "income"]),
            "expenses": _stats([t for t in transactions if t.type == "expense"]),
            "top_categories": top_categories,
        },
        "recent_activity": sorted(transactions, key=lambda t: t.date, reverse=True)[:10],
    }
