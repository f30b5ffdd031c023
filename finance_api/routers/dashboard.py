from typing import Dict

from fastapi import APIRouter, Depends

from finance_api.core.security import Principal, require_roles
from finance_api.utils import dashboard

router = APIRouter()


@router.get("/user")
def get_user_dashboard(principal: Principal = Depends(require_roles("user", "admin"))) -> Dict:
    """Personal overview: recent activity, budgets, goals, trends and unread notifications."""
    return dashboard.user_dashboard(principal.user_id)


@router.get("/admin")
def get_admin_dashboard(principal: Principal = Depends(require_roles("admin"))) -> Dict:
    """System-wide overview for administrators."""
    return dashboard.admin_dashboard()
