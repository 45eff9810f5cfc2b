# ===== app/models/calendar_integration.py =====
from sqlalchemy import Column, String, Boolean, DateTime, LargeBinary, ForeignKey, JSON, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from app.models.base import Base
import uuid


class CalendarIntegration(Base):
    __tablename__ = "calendar_integrations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), index=True)

    provider = Column(String)  # 'google', 'outlook'
    is_active = Column(Boolean, default=True)
    is_primary = Column(Boolean, default=False)  # For users with multiple calendars

    # OAuth tokens, Fernet-encrypted
    access_token_encrypted = Column(LargeBinary)
    refresh_token_encrypted = Column(LargeBinary)
    token_expires_at = Column(DateTime(timezone=True))

    # Provider-specific config (stored as JSON for flexibility)
    provider_config = Column(JSON)  # selected_calendar_id, etc.

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), onupdate=lambda: datetime.now(timezone.utc))

    user = relationship("User", back_populates="calendar_integrations")
