"""
Booking model representing a user's claim on N units of one ticket type.

Key design decisions:
- `total_amount` snapshots ticket.price * quantity at creation; it is never
  recomputed from the ticket afterwards
- `booking_reference` is the human-facing receipt key, unique across all bookings
- Status is constrained at the DB level; transitions are governed by
  eventflow.services.booking_state.BookingStateMachine
"""

from sqlalchemy import (
    Column, Integer, String, Text, Numeric, Boolean, DateTime, ForeignKey, CheckConstraint,
)
from sqlalchemy.orm import relationship

from eventflow.db.base import Base, TimestampMixin


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    ticket_id = Column(Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    total_amount = Column(Numeric(10, 2), nullable=False)
    booking_reference = Column(String(50), unique=True, index=True, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    notes = Column(Text, nullable=True)
    attended = Column(Boolean, nullable=False, default=False)
    checkin_time = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", back_populates="bookings")
    event = relationship("Event", back_populates="bookings")
    ticket = relationship("Ticket", back_populates="bookings")
    payments = relationship("Payment", back_populates="booking", cascade="all, delete")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_booking_quantity_positive"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'refunded')",
            name="check_booking_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, ref={self.booking_reference}, status={self.status})>"
