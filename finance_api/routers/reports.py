import logging
from datetime import date
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query

from finance_api.core.security import get_current_user_id
from finance_api.routers.transactions import day_end, day_start, split_tags
from finance_api.utils.reporting import ReportFilters, generate_trends

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/")
def get_financial_report(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category: Optional[str] = None,
    tags: Optional[str] = Query(None, description="Comma-separated; matches any"),
    user_id: str = Depends(get_current_user_id),
) -> Dict:
    """
    Monthly income/expense buckets with category and tag breakdowns, summary
    figures and month-over-month growth.
    """
    filters = ReportFilters(
        start_date=day_start(start_date),
        end_date=day_end(end_date),
        category=category,
        tags=split_tags(tags),
    )
    logger.info(f"Generating financial report for user_id: {user_id}")
    return generate_trends(user_id, filters)
