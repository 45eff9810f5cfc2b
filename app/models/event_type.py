# ===== app/models/event_type.py =====
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Uuid, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
import uuid
from app.models.base import Base


class SchedulingType(str, enum.Enum):
    INDIVIDUAL = "individual"
    ROUND_ROBIN = "round_robin"
    COLLECTIVE = "collective"


class EventType(Base):
    """Bookable meeting definition owned by a user or by a team"""
    __tablename__ = "event_types"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)
    team_id = Column(Uuid(as_uuid=True), ForeignKey("teams.id"), nullable=True, index=True)

    title = Column(String(200), nullable=False)
    slug = Column(String(100), nullable=False, index=True)

    duration = Column(Integer, nullable=False, default=30)  # minutes
    buffer_before = Column(Integer, nullable=False, default=0)
    buffer_after = Column(Integer, nullable=False, default=0)
    min_notice = Column(Integer, nullable=False, default=0)  # minutes
    max_days_ahead = Column(Integer, nullable=False, default=60)

    scheduling_type = Column(
        SQLEnum(SchedulingType),
        default=SchedulingType.INDIVIDUAL,
        nullable=False,
    )

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("User", back_populates="event_types")
    team = relationship("Team", back_populates="event_types")

    def __repr__(self):
        return f"<EventType(id={self.id}, slug={self.slug}, type={self.scheduling_type})>"
