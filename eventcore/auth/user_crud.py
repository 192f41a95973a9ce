from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from typing import Optional
import logging

from eventcore.models.user import User
from eventcore.schemas.user import UserCreateSchema
from eventcore.auth.security import IdentityStore, identity_store
from eventcore.errors import DuplicateEmail

logger = logging.getLogger(__name__)


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    user = await db.get(User, user_id)
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).filter(User.email == email))
    return result.scalars().first()


async def register_new_user(
    db: AsyncSession, user_in: UserCreateSchema, identity: IdentityStore = identity_store
) -> User:
    # HashFailure propagates: no row is written without a usable hash.
    hashed_password = identity.hash(user_in.password)
    db_user = User(
        email=user_in.email,
        name=user_in.name,
        hashed_password=hashed_password,
        role=user_in.role,
    )
    db.add(db_user)
    try:
        await db.commit()
    except IntegrityError as e_integrity:
        await db.rollback()
        logger.warning(f"IntegrityError registering user {user_in.email}: {str(e_integrity.orig)}")
        raise DuplicateEmail(user_in.email) from e_integrity
    await db.refresh(db_user)
    logger.info(f"User registered: {db_user.email} (ID: {db_user.id}, role {db_user.role.value})")
    return db_user


async def authenticate_user(
    db: AsyncSession, email: str, password: str, identity: IdentityStore = identity_store
) -> Optional[User]:
    user = await get_user_by_email(db, email)
    if user is None:
        return None
    if not identity.verify(password, user.hashed_password):
        logger.warning(f"Failed credential check for user ID {user.id}")
        return None
    return user
