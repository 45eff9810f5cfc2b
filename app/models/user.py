# ============================================================================
# FILE: app/models/user.py
# Hosts whose availability is resolved into bookable slots
# ============================================================================
from sqlalchemy import Column, String, Boolean, DateTime, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from app.models.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=True)
    name = Column(String(255), nullable=True)

    # Weekly rules and overrides are interpreted in this timezone
    timezone = Column(String(50), default="UTC", nullable=False)

    # Holiday blocking; holiday_country wins over the timezone-derived region
    block_holidays = Column(Boolean, default=False, nullable=False)
    holiday_country = Column(String(2), nullable=True)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    availability_rules = relationship(
        "AvailabilityRule",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="AvailabilityRule.start_time",
    )
    date_overrides = relationship(
        "AvailabilityOverride",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    event_types = relationship("EventType", back_populates="owner")
    calendar_integrations = relationship("CalendarIntegration", back_populates="user")

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"
