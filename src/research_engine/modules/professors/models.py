"""
Professor Models

Owner record referenced by every project.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from research_engine.core.database import Base, UTCDateTime


class Professor(Base):
    __tablename__ = "professors"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    department: Mapped[str] = mapped_column(String(200), index=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(UTC), nullable=False
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Professor(id={self.id}, email={self.email})>"
