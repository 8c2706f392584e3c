from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String
from app.core.base import Base, TimestampedMixin

class Organization(Base, TimestampedMixin):
    name: Mapped[str] = mapped_column(String(160))
    slug: Mapped[str] = mapped_column(String(80), unique=True, index=True)
