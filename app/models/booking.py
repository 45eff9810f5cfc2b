# ===== app/models/booking.py =====
from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from app.models.base import Base


class BookingStatus:
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_host_window", "host_id", "start_time", "end_time"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # References
    event_type_id = Column(Uuid(as_uuid=True), ForeignKey("event_types.id"), nullable=False)
    host_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)

    # Guest info
    guest_name = Column(String, nullable=False)
    guest_email = Column(String, nullable=False)
    guest_timezone = Column(String(50), default="UTC")

    # Stored in UTC
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)

    status = Column(String, default=BookingStatus.CONFIRMED, nullable=False)

    # Rows fanned out from one collective booking share this id
    collective_group_id = Column(Uuid(as_uuid=True), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    host = relationship("User")
    event_type = relationship("EventType")
