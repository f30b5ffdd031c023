"""
Health Check Router
Simple health check endpoint
"""
import logging

from fastapi import APIRouter

from finance_api.core.config import settings
from finance_api.db import dynamo
from finance_api.models.common import utcnow
from finance_api.utils.scheduler import get_scheduler_status

router = APIRouter()
logger = logging.getLogger(__name__)

TABLES = {
    "users": dynamo.users_table,
    "transactions": dynamo.transactions_table,
    "budgets": dynamo.budgets_table,
    "goals": dynamo.goals_table,
    "notifications": dynamo.notifications_table,
}


@router.get("/health")
async def health_check():
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": utcnow().isoformat()
    }


@router.get("/status")
def services_status():
    """
    Check connectivity of every DynamoDB table and the background scheduler.
    """
    tables = {}
    for name, table in TABLES.items():
        try:
            table.scan(Limit=1)
            tables[name] = {"name": table.name, "status": "accessible"}
        except Exception as e:
            logger.error(f"DynamoDB check failed for {name}: {str(e)}")
            tables[name] = {"name": table.name, "status": "error", "error": str(e)}

    dynamodb_connected = all(t["status"] == "accessible" for t in tables.values())
    return {
        "timestamp": utcnow().isoformat(),
        "services": {
            "dynamodb": {"connected": dynamodb_connected, "region": settings.DYNAMO_REGION, "tables": tables},
            "scheduler": get_scheduler_status(),
        },
        "overall_status": "healthy" if dynamodb_connected else "degraded",
    }
