from datetime import date, datetime, time
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from finance_api.core.exceptions import InvalidRequestError, NotFoundError
from finance_api.core.security import get_current_user_id
from finance_api.db import dynamo
from finance_api.models.transaction import (
    TransactionCreate,
    TransactionCriteria,
    TransactionInDB,
    TransactionPublic,
    TransactionUpdate,
)
from finance_api.utils import goals

router = APIRouter()


def day_start(value: Optional[date]) -> Optional[datetime]:
    return datetime.combine(value, time.min) if value else None


def day_end(value: Optional[date]) -> Optional[datetime]:
    return datetime.combine(value, time.max) if value else None


def split_tags(tags: Optional[str]) -> List[str]:
    return [tag.strip() for tag in tags.split(",") if tag.strip()] if tags else []


@router.post("/", response_model=TransactionPublic, status_code=status.HTTP_201_CREATED)
def create_transaction(transaction: TransactionCreate, user_id: str = Depends(get_current_user_id)):
    transaction_db = TransactionInDB(user_id=user_id, **transaction.model_dump())
    dynamo.put_transaction(transaction_db)
    goals.allocate_income_to_goals(user_id, transaction_db)
    return transaction_db


@router.get("/", response_model=List[TransactionPublic])
def list_transactions(
    type: Optional[str] = None,
    category: Optional[str] = None,
    tags: Optional[str] = Query(None, description="Comma-separated; matches any"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    user_id: str = Depends(get_current_user_id),
):
    criteria = TransactionCriteria(
        user_id=user_id,
        type=type,
        category=category,
        tags=split_tags(tags),
        start_date=day_start(start_date),
        end_date=day_end(end_date),
    )
    transactions = dynamo.find_transactions(criteria)
    return sorted(transactions, key=lambda t: t.date, reverse=True)


@router.get("/{transaction_id}", response_model=TransactionPublic)
def get_transaction(transaction_id: str, user_id: str = Depends(get_current_user_id)):
    transaction = dynamo.get_transaction(user_id, transaction_id)
    if not transaction:
        raise NotFoundError("Transaction not found", details={"transaction_id": transaction_id})
    return transaction


@router.put("/{transaction_id}", response_model=TransactionPublic)
def update_transaction(
    transaction_id: str,
    transaction_update: TransactionUpdate,
    user_id: str = Depends(get_current_user_id),
):
    mutable_fields = transaction_update.model_dump(mode="json", exclude_unset=True)
    if not mutable_fields:
        raise InvalidRequestError("No fields to update")

    existing = dynamo.get_transaction(user_id, transaction_id)
    if not existing:
        raise NotFoundError("Transaction not found", details={"transaction_id": transaction_id})
    # Validate the merged record before writing any part of it.
    try:
        TransactionInDB(**{**existing.model_dump(mode="json"), **mutable_fields})
    except ValueError as e:
        raise InvalidRequestError(str(e))

    updated = dynamo.update_transaction(user_id, transaction_id, mutable_fields)
    if not updated:
        raise NotFoundError("Transaction not found", details={"transaction_id": transaction_id})
    return updated


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction(transaction_id: str, user_id: str = Depends(get_current_user_id)):
    deleted = dynamo.delete_transaction(user_id, transaction_id)
    if not deleted:
        raise NotFoundError("Transaction not found", details={"transaction_id": transaction_id})
    return None
