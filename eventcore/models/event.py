from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Boolean, Numeric, JSON, Enum, ForeignKey, CheckConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from eventcore.models import Base
import enum


class EventStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    CANCELLED = "CANCELLED"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    image = Column(String(500), nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)
    location = Column(String(255), nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    capacity = Column(Integer, nullable=False)
    # NULL price means the event is free
    price = Column(Numeric(10, 2), nullable=True)
    status = Column(Enum(EventStatus, native_enum=False, length=20), default=EventStatus.DRAFT, nullable=False)
    published = Column(Boolean, default=False, nullable=False)
    featured = Column(Boolean, default=False, nullable=False)
    tags = Column(JSON, default=list, nullable=False)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    organizer = relationship("User", back_populates="organized_events")
    category = relationship("Category", back_populates="events")
    tickets = relationship("Ticket", back_populates="event")

    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_event_capacity_positive"),
        CheckConstraint("price IS NULL OR price >= 0", name="ck_event_price_non_negative"),
        CheckConstraint(
            "NOT published OR status = 'PUBLISHED'",
            name="ck_event_published_status",
        ),
    )

    @property
    def is_free(self) -> bool:
        return self.price is None or self.price == 0

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, slug={self.slug}, status={self.status})>"
