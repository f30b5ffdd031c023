from typing import Dict, List

from fastapi import APIRouter, Depends, status

from finance_api.core.exceptions import InvalidRequestError, NotFoundError
from finance_api.core.security import get_current_user_id
from finance_api.db import dynamo
from finance_api.models.budget import (
    BudgetAnalytics,
    BudgetCreate,
    BudgetEvaluation,
    BudgetInDB,
    BudgetUpdate,
)
from finance_api.utils import budgets

router = APIRouter()


def get_budget_or_404(user_id: str, budget_id: str) -> BudgetInDB:
    budget = dynamo.get_budget(user_id, budget_id)
    if not budget:
        raise NotFoundError("Budget not found", details={"budget_id": budget_id})
    return budget


@router.post("/", response_model=BudgetInDB, status_code=status.HTTP_201_CREATED)
def create_budget(budget: BudgetCreate, user_id: str = Depends(get_current_user_id)):
    return dynamo.put_budget(BudgetInDB(user_id=user_id, **budget.model_dump()))


@router.get("/", response_model=List[BudgetInDB])
def list_budgets(user_id: str = Depends(get_current_user_id)):
    return dynamo.list_budgets(user_id)


@router.get("/analytics", response_model=List[BudgetAnalytics])
def get_budget_analytics(user_id: str = Depends(get_current_user_id)):
    return budgets.budget_analytics(user_id)


@router.get("/recommendations")
def get_budget_recommendations(user_id: str = Depends(get_current_user_id)) -> Dict:
    recommendations = budgets.recommend_budgets(user_id)
    return {
        "recommendations": [r.model_dump() for r in recommendations],
        "message": (
            f"Budget recommendations based on your last "
            f"{budgets.finance_analyzer.window_months} months of spending"
        ),
    }


@router.get("/{budget_id}", response_model=BudgetInDB)
def get_budget(budget_id: str, user_id: str = Depends(get_current_user_id)):
    return get_budget_or_404(user_id, budget_id)


@router.get("/{budget_id}/evaluation", response_model=BudgetEvaluation)
def evaluate_budget(budget_id: str, user_id: str = Depends(get_current_user_id)):
    return budgets.evaluate_budget(get_budget_or_404(user_id, budget_id))


@router.put("/{budget_id}", response_model=BudgetInDB)
def update_budget(budget_id: str, budget_update: BudgetUpdate, user_id: str = Depends(get_current_user_id)):
    mutable_fields = budget_update.model_dump(mode="json", exclude_unset=True)
    if not mutable_fields:
        raise InvalidRequestError("No fields to update")

    existing = get_budget_or_404(user_id, budget_id)
    try:
        BudgetInDB(**{**existing.model_dump(mode="json"), **mutable_fields})
    except ValueError as e:
        raise InvalidRequestError(str(e))

    updated = dynamo.update_budget(user_id, budget_id, mutable_fields)
    if not updated:
        raise NotFoundError("Budget not found", details={"budget_id": budget_id})
    return updated


@router.delete("/{budget_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_budget(budget_id: str, user_id: str = Depends(get_current_user_id)):
    if not dynamo.delete_budget(user_id, budget_id):
        raise NotFoundError("Budget not found", details={"budget_id": budget_id})
    return None
