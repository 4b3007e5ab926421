import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from carecircle.database import Base


class Senior(Base):
    __tablename__ = "seniors"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    memberships: Mapped[list["FamilyMember"]] = relationship(back_populates="senior")  # noqa: F821
    family_codes: Mapped[list["FamilyCode"]] = relationship(back_populates="senior")  # noqa: F821
    alerts: Mapped[list["Alert"]] = relationship(back_populates="senior")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Senior(id={self.id}, name={self.first_name!r} {self.last_name!r})>"
