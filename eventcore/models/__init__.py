from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


from eventcore.models.category import Category  # noqa: E402
from eventcore.models.user import User, UserRole  # noqa: E402
from eventcore.models.event import Event, EventStatus  # noqa: E402
from eventcore.models.tickets import Ticket, TicketStatus  # noqa: E402

__all__ = [
    "Base",
    "Category",
    "User",
    "UserRole",
    "Event",
    "EventStatus",
    "Ticket",
    "TicketStatus",
]
