"""
Notifications Router
Lists the budget and recurring-transaction notifications raised by the
background jobs, and lets the owner mark them read.
"""
from typing import Dict

from fastapi import APIRouter, Depends

from finance_api.core.exceptions import NotFoundError
from finance_api.core.security import get_current_user_id
from finance_api.db import dynamo
from finance_api.models.notification import NotificationPublic

router = APIRouter()


@router.get("/")
def get_notifications(unread_only: bool = False, user_id: str = Depends(get_current_user_id)) -> Dict:
    notifications = dynamo.list_notifications(user_id, unread_only=unread_only)

    # Count by type
    type_counts = {
        kind: len([n for n in notifications if n.type == kind])
        for kind in ("upcoming", "missed", "budget_warning", "budget_exceeded")
    }

    return {
        "notifications": [NotificationPublic(**n.model_dump()) for n in notifications],
        "count": len(notifications),
        "unread": len([n for n in notifications if not n.is_read]),
        "type_counts": type_counts,
    }


@router.put("/{notification_id}/read", response_model=NotificationPublic)
def mark_as_read(notification_id: str, user_id: str = Depends(get_current_user_id)):
    notification = dynamo.mark_notification_read(user_id, notification_id)
    if not notification:
        raise NotFoundError("Notification not found", details={"notification_id": notification_id})
    return notification
