import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from finance_api.core.security import (
    Principal,
    create_access_token,
    get_current_user,
    get_optional_user,
    get_password_hash,
    verify_password,
)
from finance_api.db import dynamo
from finance_api.models.user import UserCreate, UserInDB, UserLogin, UserPublic

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, caller: Optional[Principal] = Depends(get_optional_user)):
    # Check if user already exists
    existing = dynamo.get_user_by_username(user.username)
    if existing:
        raise HTTPException(status_code=400, detail="User already exists")

    # Only an admin may hand out a role other than "user".
    role = user.role if caller is not None and caller.is_admin else "user"
    if role != user.role:
        logger.warning(f"Ignoring requested role {user.role} for {user.username}: caller is not an admin")

    user_db = UserInDB(
        username=user.username,
        password_hash=get_password_hash(user.password),
        role=role,
        preferred_currency=user.preferred_currency,
    )
    dynamo.put_user(user_db)
    logger.info(f"Registered user {user_db.username} ({user_db.role})")
    return UserPublic(**user_db.model_dump())


@router.post("/login")
def login(login_data: UserLogin):
    logger.info(f"Login attempt for user: {login_data.username}")
    user = dynamo.get_user_by_username(login_data.username)

    if not user or not verify_password(login_data.password, user.password_hash):
        logger.warning(f"Invalid credentials for user: {login_data.username}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    access_token = create_access_token(data={"sub": user.user_id, "role": user.role})
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": UserPublic(**user.model_dump()).model_dump(mode="json"),
    }


@router.get("/me", response_model=UserPublic)
def get_me(principal: Principal = Depends(get_current_user)):
    """Get current user profile"""
    user = dynamo.get_user_by_id(principal.user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserPublic(**user.model_dump())
