from sqlalchemy import Column, Integer, String, DateTime, Numeric, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from eventcore.models import Base
import enum


class TicketStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    USED = "USED"
    CANCELLED = "CANCELLED"


# Statuses that hold a seat against the event capacity
ACTIVE_TICKET_STATUSES = (TicketStatus.PENDING, TicketStatus.CONFIRMED)


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    qr_code = Column(String(64), nullable=False)
    status = Column(Enum(TicketStatus, native_enum=False, length=20), default=TicketStatus.CONFIRMED, nullable=False)
    # Snapshot of Event.price at issuance; NULL for free events
    price = Column(Numeric(10, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    used_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    holder = relationship("User", foreign_keys=[user_id], back_populates="tickets")
    event = relationship("Event", foreign_keys=[event_id], back_populates="tickets")

    __table_args__ = (
        Index("uq_ticket_qr_code", "qr_code", unique=True),
        Index("ix_ticket_event_status", "event_id", "status"),
        Index("ix_ticket_user_event", "user_id", "event_id"),
    )

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, event={self.event_id}, user={self.user_id}, status={self.status})>"
