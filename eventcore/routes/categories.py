from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List
import logging

from eventcore.dependencies import get_db
from eventcore.models.category import Category
from eventcore.schemas.category import CategoryResponseSchema

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/categories",
    tags=["Categories"]
)


@router.get(
    "/",
    summary="Get all categories",
    response_model=List[CategoryResponseSchema]
)
async def get_all_categories(
    db: AsyncSession = Depends(get_db)
):
    try:
        result = await db.execute(select(Category).order_by(Category.name))
        return result.scalars().all()
    except Exception as e:
        logger.error(f"Error fetching categories: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching categories."
        )


@router.get(
    "/{slug}",
    summary="Get a category by slug",
    response_model=CategoryResponseSchema
)
async def get_category_by_slug(
    slug: str,
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(select(Category).filter(Category.slug == slug))
    category = result.scalars().first()
    if not category:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Category '{slug}' not found."
        )
    return category
