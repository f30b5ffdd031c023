from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from finance_api.core.exceptions import InvalidRequestError
from finance_api.models.common import UTCDateTime, new_id, utcnow

TransactionType = Literal["income", "expense"]
Frequency = Literal["daily", "weekly", "monthly", "yearly"]
TRANSACTION_TYPES = ("income", "expense")


class RecurringDetails(BaseModel):
    frequency: Frequency
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None
    last_processed: Optional[UTCDateTime] = None
    next_due_date: Optional[UTCDateTime] = None

    def is_active(self, now: datetime) -> bool:
        """Started and not yet ended at ``now``. No end date means open-ended."""
        if self.start_date is not None and self.start_date > now:
            return False
        return self.end_date is None or self.end_date >= now


class TransactionCreate(BaseModel):
    type: TransactionType
    amount: float = Field(gt=0)
    currency: str = "USD"
    category: str = Field(min_length=1)
    description: Optional[str] = ""
    date: UTCDateTime = Field(default_factory=utcnow)
    tags: List[str] = Field(default_factory=list)
    is_recurring: bool = False
    recurring_details: Optional[RecurringDetails] = None

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.strip().upper()

    @model_validator(mode="after")
    def _recurrence_needs_details(self):
        if self.is_recurring and self.recurring_details is None:
            raise ValueError("recurring transactions require recurring_details")
        return self


class TransactionUpdate(BaseModel):
    type: Optional[TransactionType] = None
    amount: Optional[float] = Field(default=None, gt=0)
    currency: Optional[str] = None
    category: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    date: Optional[UTCDateTime] = None
    tags: Optional[List[str]] = None
    is_recurring: Optional[bool] = None
    recurring_details: Optional[RecurringDetails] = None

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value is not None else value


class TransactionInDB(TransactionCreate):
    user_id: str
    transaction_id: str = Field(default_factory=new_id)
    created_at: UTCDateTime = Field(default_factory=utcnow)


class TransactionPublic(TransactionInDB):
    pass


@dataclass
class TransactionCriteria:
    """
    Named, optional filters over the transaction ledger.

    ``user_id`` selects a partition; without it the store scans every user's
    transactions (used by the background jobs and the admin dashboard).
    """

    user_id: Optional[str] = None
    type: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    end_inclusive: bool = True
    is_recurring: Optional[bool] = None

    def validate(self) -> "TransactionCriteria":
        if self.type is not None and self.type not in TRANSACTION_TYPES:
            raise InvalidRequestError(f"Unknown transaction type: {self.type}")
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise InvalidRequestError(
                "start_date must not be after end_date",
                details={"start_date": self.start_date.isoformat(), "end_date": self.end_date.isoformat()},
            )
        return self

    def matches(self, transaction: TransactionInDB) -> bool:
        if self.user_id is not None and transaction.user_id != self.user_id:
            return False
        if self.type is not None and transaction.type != self.type:
            return False
        if self.category is not None and transaction.category != self.category:
            return False
        if self.tags and not set(self.tags) & set(transaction.tags):
            return False
        if self.start_date is not None and transaction.date < self.start_date:
            return False
        if self.end_date is not None:
            if self.end_inclusive and transaction.date > self.end_date:
                return False
            if not self.end_inclusive and transaction.date >= self.end_date:
                return False
        if self.is_recurring is not None and transaction.is_recurring != self.is_recurring:
            return False
        return True
