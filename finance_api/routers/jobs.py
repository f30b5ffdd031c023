"""
Jobs Router
Admin endpoints for inspecting the scheduler and running the background jobs on demand
"""
import logging
from typing import Dict

from fastapi import APIRouter, Depends

from finance_api.core.security import Principal, require_roles
from finance_api.utils.budgets import monitor_budgets
from finance_api.utils.recurring import process_recurring_transactions
from finance_api.utils.scheduler import get_scheduler_status

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/status")
def scheduler_status(principal: Principal = Depends(require_roles("admin"))) -> Dict:
    return get_scheduler_status()


@router.post("/recurring")
def run_recurring_transactions(principal: Principal = Depends(require_roles("admin"))) -> Dict:
    """Run the recurring-transaction processor now. Safe to repeat within a period."""
    logger.info(f"Recurring transactions run triggered by {principal.user_id}")
    return {"success": True, "summary": process_recurring_transactions()}


@router.post("/budgets")
def run_budget_monitor(principal: Principal = Depends(require_roles("admin"))) -> Dict:
    """Run the budget monitor now."""
    logger.info(f"Budget monitor run triggered by {principal.user_id}")
    return {"success": True, "summary": monitor_budgets()}
