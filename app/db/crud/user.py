# app/db/crud/user.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
from loguru import logger

from app.db.models import User
from app.exceptions.tasks import TaskStoreError


async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
    """Get user by primary key"""
    try:
        return await db.get(User, user_id)
    except SQLAlchemyError as e:
        logger.error(f"Error retrieving user {user_id}: {e}")
        await db.rollback()
        raise TaskStoreError("find_user", str(e)) from e


async def create_user(db: AsyncSession, firstname: str, lastname: str, email: str) -> User:
    """Create a user that tasks can be assigned to"""
    try:
        user = User(firstname=firstname, lastname=lastname, email=email.lower().strip())
        db.add(user)
        await db.commit()
        await db.refresh(user)
        logger.info(f"User created: {user.email}")
        return user
    except SQLAlchemyError as e:
        logger.error(f"Failed to create user {email}: {e}")
        await db.rollback()
        raise TaskStoreError("create_user", str(e)) from e
