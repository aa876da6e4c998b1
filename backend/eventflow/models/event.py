"""
Event model with attendee capacity tracking.

Key design decisions:
- `current_attendees` is a denormalized counter across all ticket types,
  moved only by conditional UPDATEs in the booking transaction
- CHECK constraints keep the counter inside [0, max_attendees] even if
  application code misbehaves
- Index on `start_date` for the listing and "upcoming" queries
"""

from sqlalchemy import (
    Column, Integer, String, Text, Numeric, Boolean, DateTime, ForeignKey, Index, CheckConstraint,
)
from sqlalchemy.orm import relationship

from eventflow.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    short_description = Column(String(500), nullable=True)
    category = Column(String(50), nullable=True)
    venue = Column(String(200), nullable=False)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    image_url = Column(String(255), nullable=True)
    max_attendees = Column(Integer, nullable=False, default=100)
    current_attendees = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    is_free = Column(Boolean, nullable=False, default=False)
    is_featured = Column(Boolean, nullable=False, default=False)
    is_published = Column(Boolean, nullable=False, default=True)
    organizer_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Relationships
    organizer = relationship("User", back_populates="events")
    tickets = relationship("Ticket", back_populates="event", cascade="all, delete")
    bookings = relationship("Booking", back_populates="event", cascade="all, delete")

    __table_args__ = (
        CheckConstraint("current_attendees >= 0", name="check_current_attendees_non_negative"),
        CheckConstraint("max_attendees > 0", name="check_max_attendees_positive"),
        CheckConstraint("current_attendees <= max_attendees", name="check_attendees_lte_max"),
        Index("ix_events_start_date", "start_date"),
        # Listing query: published events ordered by start date
        Index("ix_events_published_start", "is_published", "start_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Event(id={self.id}, title={self.title}, "
            f"attendees={self.current_attendees}/{self.max_attendees})>"
        )
