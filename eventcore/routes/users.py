from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from eventcore.auth import user_crud
from eventcore.dependencies import get_db, http_error_for
from eventcore.errors import DomainError
from eventcore.schemas.user import UserCreateSchema, UserResponseSchema

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["Users"]
)


@router.post(
    "/",
    response_model=UserResponseSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user"
)
async def register_user(
    user_data: UserCreateSchema,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    try:
        return await user_crud.register_new_user(db, user_data, identity=request.app.state.services.identity)
    except DomainError as e:
        raise http_error_for(e)


@router.get(
    "/{user_id}",
    response_model=UserResponseSchema,
    summary="Get a user by ID"
)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db)
):
    user = await user_crud.get_user_by_id(db, user_id=user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User with id {user_id} not found.")
    return user
