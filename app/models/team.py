# ===== app/models/team.py =====
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from app.models.base import Base


class Team(Base):
    __tablename__ = "teams"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    slug = Column(String(100), unique=True, nullable=False)

    # Team slots are displayed in this timezone
    timezone = Column(String(50), default="UTC", nullable=False)

    # Round-robin rotation pointer, guarded by rotation_version
    last_assigned_member_id = Column(Uuid(as_uuid=True), nullable=True)
    rotation_version = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    members = relationship(
        "TeamMember",
        back_populates="team",
        cascade="all, delete-orphan",
        order_by="TeamMember.priority",
    )
    event_types = relationship("EventType", back_populates="team")


class TeamMember(Base):
    __tablename__ = "team_members"
    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_member"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    team_id = Column(Uuid(as_uuid=True), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    priority = Column(Integer, default=0, nullable=False)  # ascending = earlier turn

    team = relationship("Team", back_populates="members")
    user = relationship("User")
