from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from finance_api.models.common import UTCDateTime, new_id, to_naive_utc, utcnow

BudgetType = Literal["monthly", "category"]
BudgetStatus = Literal["safe", "warning", "exceeded"]


def month_start(value) -> datetime:
    """
    Normalize ``YYYY-MM``, a date or a datetime to the first instant of its
    calendar month.
    """
    if isinstance(value, str) and len(value) == 7:
        value = datetime.strptime(value, "%Y-%m")
    elif isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        value = to_naive_utc(value)
    elif isinstance(value, date):
        value = datetime(value.year, value.month, 1)
    return datetime(value.year, value.month, 1)


class BudgetCreate(BaseModel):
    type: BudgetType
    amount: float = Field(ge=0)
    category: Optional[str] = None
    month: Optional[datetime] = None
    warning_threshold: float = Field(default=80, ge=0, le=100)

    @field_validator("month", mode="before")
    @classmethod
    def _normalize_month(cls, value):
        if value is None or value == "":
            return None
        return month_start(value)

    @model_validator(mode="after")
    def _scope_fields(self):
        if self.type == "monthly" and self.month is None:
            raise ValueError("monthly budgets require a month")
        if self.type == "category" and not self.category:
            raise ValueError("category budgets require a category")
        return self


class BudgetUpdate(BaseModel):
    amount: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = None
    month: Optional[datetime] = None
    warning_threshold: Optional[float] = Field(default=None, ge=0, le=100)

    @field_validator("month", mode="before")
    @classmethod
    def _normalize_month(cls, value):
        if value is None or value == "":
            return None
        return month_start(value)


class BudgetInDB(BudgetCreate):
    user_id: str
    budget_id: str = Field(default_factory=new_id)
    current_spending: float = 0.0
    created_at: UTCDateTime = Field(default_factory=utcnow)

    @property
    def label(self) -> str:
        return "monthly" if self.type == "monthly" else self.category


class BudgetEvaluation(BaseModel):
    total_spent: float
    percentage_used: float
    remaining: float
    status: BudgetStatus


class BudgetAnalytics(BudgetEvaluation):
    budget: BudgetInDB


class BudgetRecommendation(BaseModel):
    category: str
    type: Literal["increase", "decrease", "new"]
    current_budget: Optional[float] = None
    recommended_budget: int
    average_spending: float
    reason: str
