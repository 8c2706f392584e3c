import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, ForeignKey, Boolean
from app.core.base import Base, TimestampedMixin

class Profile(Base, TimestampedMixin):
    # id is the auth provider's identity id (or the derived id of a ticket-code customer)
    organization_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("organization.id"), nullable=True, index=True)
    full_name: Mapped[str] = mapped_column(String(160), default="")
    email: Mapped[str | None] = mapped_column(String(254), nullable=True, index=True)
    role: Mapped[str | None] = mapped_column(String(16), nullable=True)  # owner | admin | agent | requester
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    ticket_code: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)

    @property
    def is_pending(self) -> bool:
        return self.organization_id is None
