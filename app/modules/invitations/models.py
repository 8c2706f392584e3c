import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, ForeignKey
from app.core.base import Base, TimestampedTenantMixin, UTCDateTime

class OrganizationInvitation(Base, TimestampedTenantMixin):
    __tablename__ = "organization_invitation"

    email: Mapped[str | None] = mapped_column(String(254), nullable=True)  # None: anyone holding the token
    role: Mapped[str] = mapped_column(String(16))  # admin | agent | requester
    invited_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("profile.id"), nullable=True)
    token: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime)
    status: Mapped[str] = mapped_column(String(16), default="pending")  # pending | accepted | expired | revoked

    accepted_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("profile.id"), nullable=True)
    accepted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    def effective_status(self, now: datetime) -> str:
        if self.status == "pending" and self.expires_at <= now:
            return "expired"
        return self.status
