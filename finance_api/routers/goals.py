from typing import List, Optional

from fastapi import APIRouter, Depends, status

from finance_api.core.exceptions import InvalidRequestError, NotFoundError
from finance_api.core.security import get_current_user_id
from finance_api.db import dynamo
from finance_api.models.goal import ContributionCreate, GoalCreate, GoalInDB, GoalPublic, GoalUpdate
from finance_api.utils import goals

router = APIRouter()


def to_public(goal: GoalInDB) -> GoalPublic:
    return GoalPublic(**goal.model_dump())


@router.post("/", response_model=GoalPublic, status_code=status.HTTP_201_CREATED)
def create_goal(goal: GoalCreate, user_id: str = Depends(get_current_user_id)):
    return to_public(dynamo.put_goal(GoalInDB(user_id=user_id, **goal.model_dump())))


@router.get("/", response_model=List[GoalPublic])
def list_goals(
    status: Optional[str] = None,
    category: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
):
    found = dynamo.list_goals(user_id, status=status, category=category)
    return [to_public(goal) for goal in sorted(found, key=lambda g: g.created_at, reverse=True)]


@router.get("/{goal_id}", response_model=GoalPublic)
def get_goal(goal_id: str, user_id: str = Depends(get_current_user_id)):
    return to_public(goals.get_goal_or_404(user_id, goal_id))


@router.put("/{goal_id}", response_model=GoalPublic)
def update_goal(goal_id: str, goal_update: GoalUpdate, user_id: str = Depends(get_current_user_id)):
    mutable_fields = goal_update.model_dump(mode="json", exclude_unset=True)
    if not mutable_fields:
        raise InvalidRequestError("No fields to update")

    updated = dynamo.update_goal(user_id, goal_id, mutable_fields)
    if not updated:
        raise NotFoundError("Goal not found", details={"goal_id": goal_id})
    return to_public(updated)


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_goal(goal_id: str, user_id: str = Depends(get_current_user_id)):
    if not dynamo.delete_goal(user_id, goal_id):
        raise NotFoundError("Goal not found", details={"goal_id": goal_id})
    return None


@router.post("/{goal_id}/contribute", response_model=GoalPublic)
def contribute(goal_id: str, contribution: ContributionCreate, user_id: str = Depends(get_current_user_id)):
    goal = goals.add_contribution(user_id, goal_id, contribution.amount, contribution.description)
    return to_public(goal)
