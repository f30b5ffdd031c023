import os

# Settings are read at import time; keep the scheduler off and never reach AWS.
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402

from finance_api.core.security import create_access_token  # noqa: E402
from finance_api.db import dynamo  # noqa: E402
from finance_api.models.budget import BudgetInDB  # noqa: E402
from finance_api.models.goal import GoalInDB  # noqa: E402
from finance_api.models.notification import NotificationInDB  # noqa: E402
from finance_api.models.transaction import TransactionInDB  # noqa: E402
from finance_api.models.user import UserInDB  # noqa: E402


class InMemoryStore:
    """Dictionary-backed stand-in for the dynamo module's functions."""

    def __init__(self):
        self.users = {}
        self.transactions = {}
        self.budgets = {}
        self.goals = {}
        self.notifications = {}

    # users
    def get_user_by_username(self, username):
        return next((u.model_copy(deep=True) for u in self.users.values() if u.username == username), None)

    def get_user_by_id(self, user_id):
        user = self.users.get(user_id)
        return user.model_copy(deep=True) if user else None

    def put_user(self, user):
        self.users[user.user_id] = user.model_copy(deep=True)
        return user

    def list_users(self):
        return [u.model_copy(deep=True) for u in self.users.values()]

    # transactions
    def put_transaction(self, transaction):
        self.transactions[(transaction.user_id, transaction.transaction_id)] = transaction.model_copy(deep=True)
        return transaction

    def get_transaction(self, user_id, transaction_id):
        found = self.transactions.get((user_id, transaction_id))
        return found.model_copy(deep=True) if found else None

    def find_transactions(self, criteria):
        criteria.validate()
        found = [t.model_copy(deep=True) for t in self.transactions.values() if criteria.matches(t)]
        return sorted(found, key=lambda t: t.date)

    def update_transaction(self, user_id, transaction_id, updates):
        return self._update(self.transactions, (user_id, transaction_id), updates, TransactionInDB)

    def delete_transaction(self, user_id, transaction_id):
        return self.transactions.pop((user_id, transaction_id), None) is not None

    # budgets
    def put_budget(self, budget):
        self.budgets[(budget.user_id, budget.budget_id)] = budget.model_copy(deep=True)
        return budget

    def get_budget(self, user_id, budget_id):
        found = self.budgets.get((user_id, budget_id))
        return found.model_copy(deep=True) if found else None

    def list_budgets(self, user_id=None):
        return [b.model_copy(deep=True) for b in self.budgets.values() if user_id is None or b.user_id == user_id]

    def update_budget(self, user_id, budget_id, updates):
        return self._update(self.budgets, (user_id, budget_id), updates, BudgetInDB)

    def delete_budget(self, user_id, budget_id):
        return self.budgets.pop((user_id, budget_id), None) is not None

    # goals
    def put_goal(self, goal):
        self.goals[(goal.user_id, goal.goal_id)] = goal.model_copy(deep=True)
        return goal

    def get_goal(self, user_id, goal_id):
        found = self.goals.get((user_id, goal_id))
        return found.model_copy(deep=True) if found else None

    def list_goals(self, user_id=None, status=None, category=None):
        return [
            g.model_copy(deep=True)
            for g in self.goals.values()
            if (user_id is None or g.user_id == user_id)
            and (status is None or g.status == status)
            and (category is None or g.category == category)
        ]

    def update_goal(self, user_id, goal_id, updates):
        return self._update(self.goals, (user_id, goal_id), updates, GoalInDB)

    def delete_goal(self, user_id, goal_id):
        return self.goals.pop((user_id, goal_id), None) is not None

    # notifications
    def put_notification(self, notification):
        self.notifications[(notification.user_id, notification.notification_id)] = notification.model_copy(deep=True)
        return notification

    def list_notifications(self, user_id=None, unread_only=False):
        found = [
            n.model_copy(deep=True)
            for n in self.notifications.values()
            if (user_id is None or n.user_id == user_id) and (not unread_only or not n.is_read)
        ]
        return sorted(found, key=lambda n: n.created_at, reverse=True)

    def mark_notification_read(self, user_id, notification_id):
        return self._update(self.notifications, (user_id, notification_id), {"is_read": True}, NotificationInDB)

    def notifications_of_type(self, kind):
        return [n for n in self.notifications.values() if n.type == kind]

    @staticmethod
    def _update(table, key, updates, model):
        existing = table.get(key)
        if existing is None:
            return None
        updated = model(**{**existing.model_dump(mode="json"), **updates})
        table[key] = updated
        return updated.model_copy(deep=True)


STORE_FUNCTIONS = [
    "get_user_by_username", "get_user_by_id", "put_user", "list_users",
    "put_transaction", "get_transaction", "find_transactions", "update_transaction", "delete_transaction",
    "put_budget", "get_budget", "list_budgets", "update_budget", "delete_budget",
    "put_goal", "get_goal", "list_goals", "update_goal", "delete_goal",
    "put_notification", "list_notifications", "mark_notification_read",
]


@pytest.fixture
def store(monkeypatch):
    fake = InMemoryStore()
    for name in STORE_FUNCTIONS:
        monkeypatch.setattr(dynamo, name, getattr(fake, name))
    return fake


@pytest.fixture
def make_transaction(store):
    def factory(amount, category="Food", type="expense", date=None, user_id="user-1", **kwargs):
        transaction = TransactionInDB(
            user_id=user_id,
            type=type,
            amount=amount,
            category=category,
            date=date or datetime(2025, 1, 15),
            **kwargs,
        )
        return store.put_transaction(transaction)

    return factory


@pytest.fixture
def user_token():
    return create_access_token({"sub": "user-1", "role": "user"})


@pytest.fixture
def admin_token():
    return create_access_token({"sub": "admin-1", "role": "admin"})


@pytest.fixture
def auth_headers(user_token):
    return {"Authorization": f"Bearer {user_token}"}
