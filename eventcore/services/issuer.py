"""Ticket issuance and check-in.

Ticket lifecycle::

    PENDING -> CONFIRMED -> USED
    PENDING | CONFIRMED -> CANCELLED

USED and CANCELLED are terminal. Every transition is a compare-and-swap
UPDATE on the ticket row so concurrent callers cannot both win.
"""

from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional
import logging
import secrets
import time

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventcore.config import settings
from eventcore.errors import (
    AlreadyCancelled,
    AlreadyUsed,
    CapacityExceeded,
    CodeGenerationFailed,
    DomainError,
    DuplicateTicket,
    EventNotOnSale,
    InvalidTransition,
    NotConfirmed,
    NotFound,
)
from eventcore.models.event import Event, EventStatus
from eventcore.models.tickets import ACTIVE_TICKET_STATUSES, Ticket, TicketStatus
from eventcore.models.user import User
from eventcore.services.catalog import EventCatalog, count_active_tickets

logger = logging.getLogger(__name__)


def generate_qr_code() -> str:
    """Millisecond timestamp plus 64 random bits."""
    return f"TICKET-{int(time.time() * 1000)}-{secrets.token_hex(8)}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_qr_code_conflict(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "qr_code" in message


class TicketIssuer:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        catalog: EventCatalog,
        code_factory: Callable[[], str] = generate_qr_code,
        max_code_attempts: Optional[int] = None,
        allow_multiple_per_user: Optional[bool] = None,
        require_payment: Optional[bool] = None,
    ) -> None:
        self._session_factory = session_factory
        self._catalog = catalog
        self._code_factory = code_factory
        self.max_code_attempts = (
            max_code_attempts if max_code_attempts is not None else settings.TICKET_CODE_MAX_ATTEMPTS
        )
        self.allow_multiple_per_user = (
            allow_multiple_per_user
            if allow_multiple_per_user is not None
            else settings.ALLOW_MULTIPLE_TICKETS_PER_USER
        )
        self.require_payment = (
            require_payment if require_payment is not None else settings.TICKETS_REQUIRE_PAYMENT
        )

    async def issue(self, event_id: int, user_id: int, allow_multiple: Optional[bool] = None) -> Ticket:
        """Issue one ticket for ``user_id`` to ``event_id``.

        ``allow_multiple`` overrides the issuer-wide duplicate policy for this
        call.

        The event row is locked for the whole unit of work, so the capacity
        count, the duplicate check, the price snapshot and the insert all see
        the same committed state.

        Raises:
            NotFound: unknown event or user.
            EventNotOnSale: the event is not published.
            CapacityExceeded: every seat is held by a PENDING/CONFIRMED ticket.
            DuplicateTicket: the user already holds an active ticket and the
                one-ticket-per-user policy is in force.
            CodeGenerationFailed: no unique QR code after the allowed attempts.
        """
        async with self._session_factory() as session:
            async with session.begin():
                event = await self._catalog.lock_event(session, event_id)
                if event.status != EventStatus.PUBLISHED:
                    raise EventNotOnSale(event_id, event.status.value)
                if await session.get(User, user_id) is None:
                    raise NotFound("User", user_id)

                held = await count_active_tickets(session, event_id)
                if held >= event.capacity:
                    logger.info(f"Event ID {event_id} sold out ({held}/{event.capacity}); rejecting user ID {user_id}.")
                    raise CapacityExceeded(event_id, event.capacity)

                if allow_multiple is None:
                    allow_multiple = self.allow_multiple_per_user
                if not allow_multiple and await self._holds_active_ticket(session, event_id, user_id):
                    raise DuplicateTicket(event_id, user_id)

                if self.require_payment and not event.is_free:
                    status = TicketStatus.PENDING
                else:
                    status = TicketStatus.CONFIRMED
                ticket = await self._insert_with_unique_code(session, event, user_id, status)

        logger.info(
            f"Ticket (ID: {ticket.id}) issued as {ticket.status.value} to user_id {user_id} "
            f"for event_id {event_id} at price {ticket.price}."
        )
        return ticket

    async def _holds_active_ticket(self, session: AsyncSession, event_id: int, user_id: int) -> bool:
        result = await session.execute(
            select(Ticket.id).where(
                Ticket.event_id == event_id,
                Ticket.user_id == user_id,
                Ticket.status.in_(ACTIVE_TICKET_STATUSES),
            ).limit(1)
        )
        return result.first() is not None

    async def _insert_with_unique_code(
        self, session: AsyncSession, event: Event, user_id: int, status: TicketStatus
    ) -> Ticket:
        event_id, price = event.id, event.price
        now = _utcnow()
        for attempt in range(1, self.max_code_attempts + 1):
            ticket = Ticket(
                event_id=event_id,
                user_id=user_id,
                qr_code=self._code_factory(),
                status=status,
                price=price,
                created_at=now,
                confirmed_at=now if status == TicketStatus.CONFIRMED else None,
            )
            try:
                async with session.begin_nested():
                    session.add(ticket)
                    await session.flush()
                return ticket
            except IntegrityError as e_integrity:
                if not _is_qr_code_conflict(e_integrity):
                    raise
                logger.warning(
                    f"QR code collision for event_id {event_id} "
                    f"(attempt {attempt}/{self.max_code_attempts}); regenerating."
                )
        logger.error(f"Gave up generating a unique QR code for event_id {event_id} after {self.max_code_attempts} attempts.")
        raise CodeGenerationFailed(self.max_code_attempts)

    async def check_in(self, qr_code: str) -> Ticket:
        """Redeem a ticket at the door. Succeeds exactly once per ticket."""
        async with self._session_factory() as session:
            async with session.begin():
                ticket = await self._get_by_code(session, qr_code)
                if ticket.status != TicketStatus.CONFIRMED:
                    raise self._check_in_rejection(ticket)

                won = await self._compare_and_set(
                    session,
                    ticket,
                    expected=(TicketStatus.CONFIRMED,),
                    status=TicketStatus.USED,
                    used_at=_utcnow(),
                )
                if not won:
                    raise self._check_in_rejection(ticket)

        logger.info(f"Ticket (ID: {ticket.id}) checked in for event_id {ticket.event_id}.")
        return ticket

    async def confirm(self, ticket_id: int) -> Ticket:
        """Mark a PENDING ticket as paid/confirmed."""
        async with self._session_factory() as session:
            async with session.begin():
                ticket = await self._get(session, ticket_id)
                won = ticket.status == TicketStatus.PENDING and await self._compare_and_set(
                    session,
                    ticket,
                    expected=(TicketStatus.PENDING,),
                    status=TicketStatus.CONFIRMED,
                    confirmed_at=_utcnow(),
                )
                if not won:
                    raise InvalidTransition("Ticket", ticket.status.value, TicketStatus.CONFIRMED.value)

        logger.info(f"Ticket (ID: {ticket.id}) confirmed.")
        return ticket

    async def cancel(self, ticket_id: int) -> Ticket:
        """Cancel a PENDING or CONFIRMED ticket, releasing its seat."""
        async with self._session_factory() as session:
            async with session.begin():
                ticket = await self._get(session, ticket_id)
                won = ticket.status in ACTIVE_TICKET_STATUSES and await self._compare_and_set(
                    session,
                    ticket,
                    expected=ACTIVE_TICKET_STATUSES,
                    status=TicketStatus.CANCELLED,
                    cancelled_at=_utcnow(),
                )
                if not won:
                    raise InvalidTransition("Ticket", ticket.status.value, TicketStatus.CANCELLED.value)

        logger.info(f"Ticket (ID: {ticket.id}) for event_id {ticket.event_id} cancelled; seat released.")
        return ticket

    async def get(self, ticket_id: int) -> Ticket:
        async with self._session_factory() as session:
            return await self._get(session, ticket_id)

    async def list_for_user(self, user_id: int, skip: int = 0, limit: int = 100) -> List[Ticket]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Ticket).where(Ticket.user_id == user_id)
                .order_by(Ticket.created_at.desc(), Ticket.id.desc()).offset(skip).limit(limit)
            )
            return list(result.scalars().all())

    async def list_for_event(self, event_id: int, skip: int = 0, limit: int = 100) -> List[Ticket]:
        async with self._session_factory() as session:
            if await session.get(Event, event_id) is None:
                raise NotFound("Event", event_id)
            result = await session.execute(
                select(Ticket).where(Ticket.event_id == event_id)
                .order_by(Ticket.created_at.desc(), Ticket.id.desc()).offset(skip).limit(limit)
            )
            return list(result.scalars().all())

    async def _get(self, session: AsyncSession, ticket_id: int) -> Ticket:
        ticket = await session.get(Ticket, ticket_id)
        if ticket is None:
            raise NotFound("Ticket", ticket_id)
        return ticket

    async def _get_by_code(self, session: AsyncSession, qr_code: str) -> Ticket:
        result = await session.execute(select(Ticket).where(Ticket.qr_code == qr_code))
        ticket = result.scalars().first()
        if ticket is None:
            raise NotFound("Ticket", qr_code)
        return ticket

    async def _compare_and_set(
        self,
        session: AsyncSession,
        ticket: Ticket,
        expected: Iterable[TicketStatus],
        **values,
    ) -> bool:
        """Apply ``values`` only if the row still has one of ``expected``.

        Returns False when another transaction moved the ticket first; the
        in-memory ticket is refreshed either way.
        """
        result = await session.execute(
            update(Ticket)
            .where(Ticket.id == ticket.id, Ticket.status.in_(tuple(expected)))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await session.refresh(ticket)
        return result.rowcount == 1

    @staticmethod
    def _check_in_rejection(ticket: Ticket) -> DomainError:
        if ticket.status == TicketStatus.USED:
            return AlreadyUsed(ticket.qr_code)
        if ticket.status == TicketStatus.CANCELLED:
            return AlreadyCancelled(ticket.qr_code)
        return NotConfirmed(ticket.qr_code)
