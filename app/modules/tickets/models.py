import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, ForeignKey, JSON
from app.core.base import Base, TimestampedTenantMixin, UTCDateTime

STATUSES = ("open", "in_progress", "resolved", "closed")
PRIORITIES = ("low", "medium", "high", "critical")

class Ticket(Base, TimestampedTenantMixin):
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(Text)
    category: Mapped[str] = mapped_column(String(64), default="general")
    tags: Mapped[list] = mapped_column(JSON, default=list)
    priority: Mapped[str] = mapped_column(String(16), default="medium")  # low, medium, high, critical
    status: Mapped[str] = mapped_column(String(16), default="open", index=True)  # open, in_progress, resolved, closed

    created_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("profile.id"), nullable=True, index=True)
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("profile.id"), nullable=True, index=True)
    # shared with the customer out of band; several tickets may carry the same code
    ticket_code: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)

    resolved_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
