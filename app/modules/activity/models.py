import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, ForeignKey, Boolean, text
from app.core.base import Base, UTCDateTime, utcnow

class TicketActivityLog(Base):
    """Append-only lifecycle trail of a ticket."""
    __tablename__ = "ticket_activity_log"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    ticket_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("ticket.id"), index=True)
    user_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("profile.id"), nullable=True)
    action: Mapped[str] = mapped_column(String(32))  # created, status_changed, priority_changed, assigned, commented
    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    # rows written for internal notes are staff-only, like the note itself
    is_internal: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, server_default=text("CURRENT_TIMESTAMP"))
