"""Event catalog: creation, publication and committed capacity/price reads."""

from decimal import Decimal
from typing import Any, List, Mapping, Optional, Union
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventcore.errors import DuplicateSlug, InvalidTransition, NotFound
from eventcore.models.category import Category
from eventcore.models.event import Event, EventStatus
from eventcore.models.tickets import ACTIVE_TICKET_STATUSES, Ticket
from eventcore.models.user import User
from eventcore.schemas.event import EventCreateSchema, EventPriceUpdateSchema

logger = logging.getLogger(__name__)


async def count_active_tickets(session: AsyncSession, event_id: int) -> int:
    """Number of tickets currently holding a seat for the event."""
    result = await session.execute(
        select(func.count(Ticket.id)).where(
            Ticket.event_id == event_id,
            Ticket.status.in_(ACTIVE_TICKET_STATUSES),
        )
    )
    return result.scalar_one()


class EventCatalog:
    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    async def lock_event(self, session: AsyncSession, event_id: int) -> Event:
        """Load an event row for update inside the caller's transaction.

        Concurrent writers on the same event queue behind this lock until the
        holding transaction ends.
        """
        result = await session.execute(
            select(Event).where(Event.id == event_id).with_for_update()
        )
        event = result.scalars().first()
        if event is None:
            raise NotFound("Event", event_id)
        return event

    async def create(self, attrs: Union[EventCreateSchema, Mapping[str, Any]]) -> Event:
        if not isinstance(attrs, EventCreateSchema):
            attrs = EventCreateSchema.model_validate(attrs)

        status = EventStatus.PUBLISHED if attrs.publish else EventStatus.DRAFT
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    if await session.get(User, attrs.organizer_id) is None:
                        raise NotFound("User", attrs.organizer_id)
                    if await session.get(Category, attrs.category_id) is None:
                        raise NotFound("Category", attrs.category_id)

                    db_event = Event(
                        **attrs.model_dump(exclude={"publish"}),
                        status=status,
                        published=attrs.publish,
                    )
                    session.add(db_event)
                    await session.flush()
            except IntegrityError as e_integrity:
                logger.warning(f"IntegrityError creating event with slug '{attrs.slug}': {str(e_integrity.orig)}")
                if "slug" in str(e_integrity.orig).lower():
                    raise DuplicateSlug(attrs.slug) from e_integrity
                raise

        logger.info(f"Event '{db_event.slug}' (ID: {db_event.id}) created as {status.value} by user ID {attrs.organizer_id}")
        return db_event

    async def publish(self, event_id: int) -> Event:
        async with self._session_factory() as session:
            async with session.begin():
                event = await self.lock_event(session, event_id)
                if event.status == EventStatus.PUBLISHED:
                    return event
                if event.status == EventStatus.CANCELLED:
                    raise InvalidTransition("Event", event.status.value, EventStatus.PUBLISHED.value)
                event.status = EventStatus.PUBLISHED
                event.published = True

        logger.info(f"Event ID {event_id} published.")
        return event

    async def cancel(self, event_id: int) -> Event:
        """Withdraw an event. Issued tickets are left untouched."""
        async with self._session_factory() as session:
            async with session.begin():
                event = await self.lock_event(session, event_id)
                if event.status == EventStatus.CANCELLED:
                    raise InvalidTransition("Event", event.status.value, EventStatus.CANCELLED.value)
                event.status = EventStatus.CANCELLED
                event.published = False

        logger.info(f"Event ID {event_id} cancelled.")
        return event

    async def update_price(self, event_id: int, price: Union[EventPriceUpdateSchema, Optional[Decimal]]) -> Event:
        """Change the price for future issuances; issued tickets keep theirs."""
        if not isinstance(price, EventPriceUpdateSchema):
            price = EventPriceUpdateSchema(price=price)
        price = price.price
        async with self._session_factory() as session:
            async with session.begin():
                event = await self.lock_event(session, event_id)
                old_price = event.price
                event.price = price

        logger.info(f"Event ID {event_id} price changed from {old_price} to {price}.")
        return event

    async def current_capacity(self, event_id: int) -> int:
        """Seats still available, counted from committed tickets only."""
        async with self._session_factory() as session:
            event = await session.get(Event, event_id)
            if event is None:
                raise NotFound("Event", event_id)
            held = await count_active_tickets(session, event_id)
            return max(event.capacity - held, 0)

    async def price(self, event_id: int) -> Optional[Decimal]:
        async with self._session_factory() as session:
            result = await session.execute(select(Event.price).where(Event.id == event_id))
            row = result.first()
            if row is None:
                raise NotFound("Event", event_id)
            return row[0]

    async def get(self, event_id: int) -> Event:
        async with self._session_factory() as session:
            event = await session.get(Event, event_id)
            if event is None:
                raise NotFound("Event", event_id)
            return event

    async def get_by_slug(self, slug: str) -> Event:
        async with self._session_factory() as session:
            result = await session.execute(select(Event).where(Event.slug == slug))
            event = result.scalars().first()
            if event is None:
                raise NotFound("Event", slug)
            return event

    async def list_events(
        self,
        skip: int = 0,
        limit: int = 100,
        category_id: Optional[int] = None,
        published: Optional[bool] = None,
        featured: Optional[bool] = None,
    ) -> List[Event]:
        query = select(Event)
        if category_id is not None:
            query = query.where(Event.category_id == category_id)
        if published is not None:
            query = query.where(Event.published == published)
        if featured is not None:
            query = query.where(Event.featured == featured)
        query = query.order_by(Event.start_date, Event.id).offset(skip).limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())
