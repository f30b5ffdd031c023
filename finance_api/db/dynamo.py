import logging
from decimal import Decimal
from functools import reduce
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from finance_api.core.config import settings
from finance_api.core.exceptions import StoreError
from finance_api.models.budget import BudgetInDB
from finance_api.models.goal import GoalInDB
from finance_api.models.notification import NotificationInDB
from finance_api.models.transaction import TransactionCriteria, TransactionInDB
from finance_api.models.user import UserInDB

logger = logging.getLogger(__name__)

# Initialize DynamoDB resource
dynamodb = boto3.resource(
    "dynamodb",
    region_name=settings.DYNAMO_REGION,
    endpoint_url=settings.DYNAMO_ENDPOINT_URL,
)

# Get table references. Every table is keyed by user_id (partition) plus the
# entity id (sort), except users which is keyed by user_id alone.
users_table = dynamodb.Table(settings.DYNAMO_TABLE_USERS)
transactions_table = dynamodb.Table(settings.DYNAMO_TABLE_TRANSACTIONS)
budgets_table = dynamodb.Table(settings.DYNAMO_TABLE_BUDGETS)
goals_table = dynamodb.Table(settings.DYNAMO_TABLE_GOALS)
notifications_table = dynamodb.Table(settings.DYNAMO_TABLE_NOTIFICATIONS)


def _fail(operation: str, error: ClientError) -> StoreError:
    message = error.response.get("Error", {}).get("Message", str(error))
    logger.error(f"{operation} failed: {message}")
    return StoreError(f"{operation} failed", details={"error": message}, original_error=error)


# Users

def get_user_by_username(username: str) -> Optional[UserInDB]:
    """Query the Users table by username (assumes a GSI exists on username)."""
    try:
        response = users_table.query(
            IndexName="username-index",
            KeyConditionExpression=Key("username").eq(username),
        )
    except ClientError as e:
        raise _fail("get_user_by_username", e)
    items = response.get("Items", [])
    return UserInDB(**_from_dynamo(items[0])) if items else None


def get_user_by_id(user_id: str) -> Optional[UserInDB]:
    try:
        response = users_table.get_item(Key={"user_id": user_id})
    except ClientError as e:
        raise _fail("get_user_by_id", e)
    item = response.get("Item")
    return UserInDB(**_from_dynamo(item)) if item else None


def put_user(user: UserInDB) -> UserInDB:
    _put(users_table, user.model_dump(mode="json"), "put_user")
    return user


def list_users() -> List[UserInDB]:
    return [UserInDB(**item) for item in _scan_all(users_table, "list_users")]


# Transactions

def put_transaction(transaction: TransactionInDB) -> TransactionInDB:
    """Insert or replace a transaction."""
    _put(transactions_table, transaction.model_dump(mode="json"), "put_transaction")
    return transaction


def get_transaction(user_id: str, transaction_id: str) -> Optional[TransactionInDB]:
    item = _get(transactions_table, {"user_id": user_id, "transaction_id": transaction_id}, "get_transaction")
    return TransactionInDB(**item) if item else None


def find_transactions(criteria: TransactionCriteria) -> List[TransactionInDB]:
    """
    Return every transaction matching ``criteria``, oldest first.
    Queries a single partition when ``criteria.user_id`` is set, scans otherwise.
    """
    criteria.validate()
    kwargs: Dict[str, Any] = {}
    filter_expression = _transaction_filter(criteria)
    if filter_expression is not None:
        kwargs["FilterExpression"] = filter_expression

    if criteria.user_id is not None:
        items = _query_all(
            transactions_table,
            "find_transactions",
            KeyConditionExpression=Key("user_id").eq(criteria.user_id),
            **kwargs,
        )
    else:
        items = _scan_all(transactions_table, "find_transactions", **kwargs)

    transactions = [TransactionInDB(**item) for item in items]
    return sorted(transactions, key=lambda t: t.date)


def update_transaction(user_id: str, transaction_id: str, updates: dict) -> Optional[TransactionInDB]:
    """Apply partial updates to a transaction. Returns the updated item or None."""
    item = _update(
        transactions_table,
        {"user_id": user_id, "transaction_id": transaction_id},
        updates,
        "update_transaction",
    )
    return TransactionInDB(**item) if item else None


def delete_transaction(user_id: str, transaction_id: str) -> bool:
    return _delete(transactions_table, {"user_id": user_id, "transaction_id": transaction_id}, "delete_transaction")


def _transaction_filter(criteria: TransactionCriteria):
    conditions = []
    if criteria.type is not None:
        conditions.append(Attr("type").eq(criteria.type))
    if criteria.category is not None:
        conditions.append(Attr("category").eq(criteria.category))
    if criteria.tags:
        conditions.append(reduce(lambda a, b: a | b, [Attr("tags").contains(tag) for tag in criteria.tags]))
    # Dates are stored as ISO-8601 strings, which sort chronologically.
    if criteria.start_date is not None:
        conditions.append(Attr("date").gte(criteria.start_date.isoformat()))
    if criteria.end_date is not None:
        bound = criteria.end_date.isoformat()
        conditions.append(Attr("date").lte(bound) if criteria.end_inclusive else Attr("date").lt(bound))
    if criteria.is_recurring is not None:
        conditions.append(Attr("is_recurring").eq(criteria.is_recurring))
    if not conditions:
        return None
    return reduce(lambda a, b: a & b, conditions)


# Budgets

def put_budget(budget: BudgetInDB) -> BudgetInDB:
    _put(budgets_table, budget.model_dump(mode="json"), "put_budget")
    return budget


def get_budget(user_id: str, budget_id: str) -> Optional[BudgetInDB]:
    item = _get(budgets_table, {"user_id": user_id, "budget_id": budget_id}, "get_budget")
    return BudgetInDB(**item) if item else None


def list_budgets(user_id: Optional[str] = None) -> List[BudgetInDB]:
    """Budgets of one user, or of every user when ``user_id`` is None."""
    if user_id is None:
        items = _scan_all(budgets_table, "list_budgets")
    else:
        items = _query_all(budgets_table, "list_budgets", KeyConditionExpression=Key("user_id").eq(user_id))
    return [BudgetInDB(**item) for item in items]


def update_budget(user_id: str, budget_id: str, updates: dict) -> Optional[BudgetInDB]:
    item = _update(budgets_table, {"user_id": user_id, "budget_id": budget_id}, updates, "update_budget")
    return BudgetInDB(**item) if item else None


def delete_budget(user_id: str, budget_id: str) -> bool:
    return _delete(budgets_table, {"user_id": user_id, "budget_id": budget_id}, "delete_budget")


# Goals

def put_goal(goal: GoalInDB) -> GoalInDB:
    _put(goals_table, goal.model_dump(mode="json"), "put_goal")
    return goal


def get_goal(user_id: str, goal_id: str) -> Optional[GoalInDB]:
    item = _get(goals_table, {"user_id": user_id, "goal_id": goal_id}, "get_goal")
    return GoalInDB(**item) if item else None


def list_goals(
    user_id: Optional[str] = None,
    status: Optional[str] = None,
    category: Optional[str] = None,
) -> List[GoalInDB]:
    conditions = []
    if status is not None:
        conditions.append(Attr("status").eq(status))
    if category is not None:
        conditions.append(Attr("category").eq(category))
    kwargs: Dict[str, Any] = {}
    if conditions:
        kwargs["FilterExpression"] = reduce(lambda a, b: a & b, conditions)

    if user_id is None:
        items = _scan_all(goals_table, "list_goals", **kwargs)
    else:
        items = _query_all(goals_table, "list_goals", KeyConditionExpression=Key("user_id").eq(user_id), **kwargs)
    return [GoalInDB(**item) for item in items]


def update_goal(user_id: str, goal_id: str, updates: dict) -> Optional[GoalInDB]:
    item = _update(goals_table, {"user_id": user_id, "goal_id": goal_id}, updates, "update_goal")
    return GoalInDB(**item) if item else None


def delete_goal(user_id: str, goal_id: str) -> bool:
    return _delete(goals_table, {"user_id": user_id, "goal_id": goal_id}, "delete_goal")


# Notifications

def put_notification(notification: NotificationInDB) -> NotificationInDB:
    _put(notifications_table, notification.model_dump(mode="json"), "put_notification")
    return notification


def list_notifications(user_id: Optional[str] = None, unread_only: bool = False) -> List[NotificationInDB]:
    """Notifications, newest first."""
    kwargs: Dict[str, Any] = {}
    if unread_only:
        kwargs["FilterExpression"] = Attr("is_read").eq(False)
    if user_id is None:
        items = _scan_all(notifications_table, "list_notifications", **kwargs)
    else:
        items = _query_all(
            notifications_table,
            "list_notifications",
            KeyConditionExpression=Key("user_id").eq(user_id),
            **kwargs,
        )
    notifications = [NotificationInDB(**item) for item in items]
    return sorted(notifications, key=lambda n: n.created_at, reverse=True)


def mark_notification_read(user_id: str, notification_id: str) -> Optional[NotificationInDB]:
    item = _update(
        notifications_table,
        {"user_id": user_id, "notification_id": notification_id},
        {"is_read": True},
        "mark_notification_read",
    )
    return NotificationInDB(**item) if item else None


# Generic helpers

def _put(table, item: dict, operation: str) -> None:
    try:
        table.put_item(Item=_convert_for_dynamo(item))
    except ClientError as e:
        raise _fail(operation, e)


def _get(table, key: dict, operation: str) -> Optional[dict]:
    try:
        response = table.get_item(Key=key)
    except ClientError as e:
        raise _fail(operation, e)
    item = response.get("Item")
    return _from_dynamo(item) if item else None


def _delete(table, key: dict, operation: str) -> bool:
    try:
        response = table.delete_item(Key=key, ReturnValues="ALL_OLD")
    except ClientError as e:
        raise _fail(operation, e)
    return "Attributes" in response


def _update(table, key: dict, updates: dict, operation: str) -> Optional[dict]:
    """
    SET the given attributes on an existing item. Returns the updated item,
    or None when no item exists under ``key``.
    """
    if not updates:
        return _get(table, key, operation)

    update_expression_parts = []
    expression_attribute_values = {}
    expression_attribute_names = {}

    for idx, (name, value) in enumerate(updates.items()):
        placeholder = f"#f{idx}"
        value_placeholder = f":v{idx}"
        update_expression_parts.append(f"{placeholder} = {value_placeholder}")
        expression_attribute_names[placeholder] = name
        expression_attribute_values[value_placeholder] = value

    key_names = {}
    conditions = []
    for idx, name in enumerate(key):
        key_names[f"#k{idx}"] = name
        conditions.append(f"attribute_exists(#k{idx})")

    try:
        response = table.update_item(
            Key=key,
            UpdateExpression="SET " + ", ".join(update_expression_parts),
            ConditionExpression=" AND ".join(conditions),
            ExpressionAttributeNames={**expression_attribute_names, **key_names},
            ExpressionAttributeValues=_convert_for_dynamo(expression_attribute_values),
            ReturnValues="ALL_NEW",
        )
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
            return None
        raise _fail(operation, e)
    attributes = response.get("Attributes")
    return _from_dynamo(attributes) if attributes else None


def _query_all(table, operation: str, **kwargs) -> List[dict]:
    return _paginate(table.query, operation, **kwargs)


def _scan_all(table, operation: str, **kwargs) -> List[dict]:
    return _paginate(table.scan, operation, **kwargs)


def _paginate(call, operation: str, **kwargs) -> List[dict]:
    items: List[dict] = []
    try:
        while True:
            response = call(**kwargs)
            items.extend(_from_dynamo(item) for item in response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
    except ClientError as e:
        raise _fail(operation, e)
    return items


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal for DynamoDB compatibility.
    """
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
