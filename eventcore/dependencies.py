from typing import AsyncIterator
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventcore.errors import DomainError, ErrorCode
from eventcore.services import EventCatalog, Services, TicketIssuer

_STATUS_BY_CODE = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.DUPLICATE_SLUG: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_EMAIL: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_TICKET: status.HTTP_409_CONFLICT,
    ErrorCode.CAPACITY_EXCEEDED: status.HTTP_409_CONFLICT,
    ErrorCode.EVENT_NOT_ON_SALE: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_USED: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_CANCELLED: status.HTTP_409_CONFLICT,
    ErrorCode.NOT_CONFIRMED: status.HTTP_409_CONFLICT,
    ErrorCode.CODE_GENERATION_FAILED: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.HASH_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def http_error_for(error: DomainError) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_CODE.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail={"code": error.code.value, "message": error.message},
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_catalog(services: Services = Depends(get_services)) -> EventCatalog:
    return services.catalog


def get_issuer(services: Services = Depends(get_services)) -> TicketIssuer:
    return services.issuer


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.database.session_factory() as session:
        yield session
