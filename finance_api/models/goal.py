import math
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from finance_api.models.common import UTCDateTime, new_id, utcnow

GoalStatus = Literal["active", "completed", "cancelled"]


class GoalCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = ""
    target_amount: float = Field(ge=0)
    current_amount: float = Field(default=0, ge=0)
    currency: str = "USD"
    target_date: UTCDateTime
    category: str = Field(min_length=1)
    status: GoalStatus = "active"
    auto_allocate: bool = False
    allocation_percentage: float = Field(default=0, ge=0, le=100)

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.strip().upper()


class GoalUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    target_amount: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = None
    target_date: Optional[UTCDateTime] = None
    category: Optional[str] = None
    status: Optional[GoalStatus] = None
    auto_allocate: Optional[bool] = None
    allocation_percentage: Optional[float] = Field(default=None, ge=0, le=100)

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value is not None else value


class GoalInDB(GoalCreate):
    user_id: str
    goal_id: str = Field(default_factory=new_id)
    transactions: List[str] = Field(default_factory=list)
    created_at: UTCDateTime = Field(default_factory=utcnow)

    def add_transaction(self, transaction_id: str, amount: float) -> "GoalInDB":
        """
        Link a ledger entry and apply its signed amount. The balance never
        drops below zero; a withdrawal below target re-opens a completed goal.
        """
        self.transactions.append(transaction_id)
        self.current_amount = max(self.current_amount + amount, 0)

        if self.current_amount >= self.target_amount:
            self.status = "completed"
        elif self.status == "completed":
            self.status = "active"
        return self


class GoalPublic(GoalInDB):
    @computed_field
    @property
    def progress_percentage(self) -> float:
        if self.target_amount == 0:
            return 0.0
        return min(self.current_amount / self.target_amount * 100, 100.0)

    @computed_field
    @property
    def remaining_amount(self) -> float:
        return max(self.target_amount - self.current_amount, 0.0)

    @computed_field
    @property
    def days_remaining(self) -> int:
        seconds = (self.target_date - utcnow()).total_seconds()
        return max(math.ceil(seconds / 86400), 0)


class ContributionCreate(BaseModel):
    amount: float
    description: Optional[str] = None
