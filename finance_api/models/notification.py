from typing import Literal, Optional

from pydantic import BaseModel, Field

from finance_api.models.common import UTCDateTime, new_id, utcnow

NotificationType = Literal["upcoming", "missed", "budget_warning", "budget_exceeded"]


class NotificationInDB(BaseModel):
    user_id: str
    notification_id: str = Field(default_factory=new_id)
    type: NotificationType
    message: str
    severity: Literal["low", "medium", "high"] = "low"
    transaction_id: Optional[str] = None
    budget_id: Optional[str] = None
    is_read: bool = False
    due_date: Optional[UTCDateTime] = None
    created_at: UTCDateTime = Field(default_factory=utcnow)


class NotificationPublic(NotificationInDB):
    pass
