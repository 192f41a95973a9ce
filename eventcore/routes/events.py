from fastapi import APIRouter, Depends, HTTPException, status
from typing import List, Optional
import logging

from eventcore.dependencies import get_catalog, http_error_for
from eventcore.errors import DomainError
from eventcore.services.catalog import EventCatalog
from eventcore.schemas.event import (
    EventCapacityResponseSchema,
    EventCreateSchema,
    EventPriceUpdateSchema,
    EventResponseSchema,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/events",
    tags=["Events"]
)


@router.post(
    "/",
    response_model=EventResponseSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new event"
)
async def create_event(
    event_data: EventCreateSchema,
    catalog: EventCatalog = Depends(get_catalog)
):
    try:
        return await catalog.create(event_data)
    except DomainError as e:
        raise http_error_for(e)
    except Exception as e_general:
        logger.error(f"Unexpected error creating event with slug '{event_data.slug}': {str(e_general)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while creating the event."
        )


@router.get(
    "/",
    response_model=List[EventResponseSchema],
    summary="List events with filtering and pagination"
)
async def list_events(
    catalog: EventCatalog = Depends(get_catalog),
    skip: int = 0,
    limit: int = 100,
    category_id: Optional[int] = None,
    published: Optional[bool] = None,
    featured: Optional[bool] = None
):
    try:
        return await catalog.list_events(
            skip=skip, limit=limit, category_id=category_id, published=published, featured=featured
        )
    except Exception as e:
        logger.error(f"Error fetching events: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching events."
        )


@router.get(
    "/{event_id}",
    response_model=EventResponseSchema,
    summary="Get a specific event by ID"
)
async def get_event(
    event_id: int,
    catalog: EventCatalog = Depends(get_catalog)
):
    try:
        return await catalog.get(event_id)
    except DomainError as e:
        raise http_error_for(e)


@router.get(
    "/{event_id}/capacity",
    response_model=EventCapacityResponseSchema,
    summary="Committed capacity and seats remaining"
)
async def get_event_capacity(
    event_id: int,
    catalog: EventCatalog = Depends(get_catalog)
):
    try:
        event = await catalog.get(event_id)
        remaining = await catalog.current_capacity(event_id)
    except DomainError as e:
        raise http_error_for(e)
    return EventCapacityResponseSchema(event_id=event_id, capacity=event.capacity, remaining=remaining)


@router.post(
    "/{event_id}/publish",
    response_model=EventResponseSchema,
    summary="Publish a draft event"
)
async def publish_event(
    event_id: int,
    catalog: EventCatalog = Depends(get_catalog)
):
    try:
        return await catalog.publish(event_id)
    except DomainError as e:
        raise http_error_for(e)


@router.post(
    "/{event_id}/cancel",
    response_model=EventResponseSchema,
    summary="Cancel an event"
)
async def cancel_event(
    event_id: int,
    catalog: EventCatalog = Depends(get_catalog)
):
    try:
        return await catalog.cancel(event_id)
    except DomainError as e:
        raise http_error_for(e)


@router.patch(
    "/{event_id}/price",
    response_model=EventResponseSchema,
    summary="Change the price for future tickets"
)
async def update_event_price(
    event_id: int,
    price_update: EventPriceUpdateSchema,
    catalog: EventCatalog = Depends(get_catalog)
):
    try:
        return await catalog.update_price(event_id, price_update)
    except DomainError as e:
        raise http_error_for(e)
