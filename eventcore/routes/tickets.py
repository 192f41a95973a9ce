from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
import logging

from eventcore.dependencies import get_issuer, http_error_for
from eventcore.errors import DomainError
from eventcore.services.issuer import TicketIssuer
from eventcore.schemas.tickets import (
    TicketCheckInSchema,
    TicketIssueSchema,
    TicketResponseSchema
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/tickets",
    tags=["Tickets"]
)


@router.post(
    "/",
    response_model=TicketResponseSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a ticket for an event"
)
async def issue_ticket(
    request_data: TicketIssueSchema,
    issuer: TicketIssuer = Depends(get_issuer)
):
    try:
        return await issuer.issue(request_data.event_id, request_data.user_id)
    except DomainError as e:
        logger.info(f"Ticket issuance for user_id {request_data.user_id}, event_id {request_data.event_id} refused: {e}")
        raise http_error_for(e)
    except Exception as e_general:
        logger.error(
            f"Unexpected error issuing ticket for user_id {request_data.user_id}, event_id {request_data.event_id}: {str(e_general)}",
            exc_info=True
        )
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An unexpected error occurred.")


@router.post(
    "/check-in",
    response_model=TicketResponseSchema,
    summary="Redeem a ticket by its QR code"
)
async def check_in_ticket(
    check_in: TicketCheckInSchema,
    issuer: TicketIssuer = Depends(get_issuer)
):
    try:
        return await issuer.check_in(check_in.qr_code)
    except DomainError as e:
        logger.info(f"Check-in refused: {e}")
        raise http_error_for(e)


@router.get(
    "/user/{user_id}",
    response_model=List[TicketResponseSchema],
    summary="Tickets held by a user"
)
async def get_user_tickets(
    user_id: int,
    issuer: TicketIssuer = Depends(get_issuer),
    skip: int = 0,
    limit: int = 100
):
    return await issuer.list_for_user(user_id, skip=skip, limit=limit)


@router.get(
    "/event/{event_id}",
    response_model=List[TicketResponseSchema],
    summary="Tickets issued for an event"
)
async def get_event_tickets(
    event_id: int,
    issuer: TicketIssuer = Depends(get_issuer),
    skip: int = 0,
    limit: int = 100
):
    try:
        return await issuer.list_for_event(event_id, skip=skip, limit=limit)
    except DomainError as e:
        raise http_error_for(e)


@router.get(
    "/{ticket_id}",
    response_model=TicketResponseSchema,
    summary="Get a specific ticket by ID"
)
async def get_ticket(
    ticket_id: int,
    issuer: TicketIssuer = Depends(get_issuer)
):
    try:
        return await issuer.get(ticket_id)
    except DomainError as e:
        raise http_error_for(e)


@router.post(
    "/{ticket_id}/confirm",
    response_model=TicketResponseSchema,
    summary="Confirm a pending ticket"
)
async def confirm_ticket(
    ticket_id: int,
    issuer: TicketIssuer = Depends(get_issuer)
):
    try:
        return await issuer.confirm(ticket_id)
    except DomainError as e:
        raise http_error_for(e)


@router.post(
    "/{ticket_id}/cancel",
    response_model=TicketResponseSchema,
    summary="Cancel a ticket and release its seat"
)
async def cancel_ticket(
    ticket_id: int,
    issuer: TicketIssuer = Depends(get_issuer)
):
    try:
        return await issuer.cancel(ticket_id)
    except DomainError as e:
        raise http_error_for(e)
