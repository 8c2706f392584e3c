import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Text, ForeignKey, Boolean
from app.core.base import Base, TimestampedMixin

class Comment(Base, TimestampedMixin):
    ticket_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("ticket.id"), index=True)
    user_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("profile.id"), nullable=True)  # None: system
    message: Mapped[str] = mapped_column(Text)
    is_internal: Mapped[bool] = mapped_column(Boolean, default=False)
