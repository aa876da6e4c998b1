"""
Ticket type belonging to exactly one event.

`available_quantity` is the shared inventory counter; the CHECK constraints
pin it to [0, quantity].
"""

from sqlalchemy import (
    Column, Integer, String, Text, Numeric, Boolean, DateTime, ForeignKey, CheckConstraint,
)
from sqlalchemy.orm import relationship

from eventflow.db.base import Base, TimestampMixin


class Ticket(Base, TimestampMixin):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    available_quantity = Column(Integer, nullable=False)
    sale_start = Column(DateTime(timezone=True), nullable=True)
    sale_end = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    event = relationship("Event", back_populates="tickets")
    bookings = relationship("Booking", back_populates="ticket", cascade="all, delete")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="check_ticket_quantity_non_negative"),
        CheckConstraint("available_quantity >= 0", name="check_available_quantity_non_negative"),
        CheckConstraint("available_quantity <= quantity", name="check_available_lte_quantity"),
        CheckConstraint("price >= 0", name="check_ticket_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, event={self.event_id}, available={self.available_quantity}/{self.quantity})>"
