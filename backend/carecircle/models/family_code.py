import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.orm import relationship as orm_relationship

from carecircle.database import Base


class FamilyCode(Base):
    """Shareable code that lets a caregiver join a senior's care circle.

    ``current_uses`` only moves through the conditional update in
    ``redemption_service``; the check constraint keeps it
    within ``[0, max_uses]`` even if that path is bypassed.
    """

    __tablename__ = "family_codes"
    __table_args__ = (
        CheckConstraint(
            "current_uses >= 0 AND current_uses <= max_uses",
            name="ck_family_codes_uses_in_range",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    senior_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("seniors.id"), nullable=False, index=True,
    )
    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False,
    )
    max_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    current_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=func.now()
    )

    # Relationships
    senior: Mapped["Senior"] = orm_relationship(back_populates="family_codes")  # noqa: F821
    usages: Mapped[list["FamilyCodeUsage"]] = orm_relationship(
        back_populates="family_code", order_by="FamilyCodeUsage.id",
    )

    @property
    def remaining_uses(self) -> int:
        return self.max_uses - self.current_uses

    def __repr__(self) -> str:
        return f"<FamilyCode(id={self.id}, code={self.code!r}, uses={self.current_uses}/{self.max_uses})>"


class FamilyCodeUsage(Base):
    """One redemption of a family code. Rows are only ever appended."""

    __tablename__ = "family_code_usages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("family_codes.id"), nullable=False, index=True,
    )
    redeemed_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False,
    )
    relationship: Mapped[str] = mapped_column(String(50), nullable=False)
    used_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    # Relationships
    family_code: Mapped["FamilyCode"] = orm_relationship(back_populates="usages")

    def __repr__(self) -> str:
        return f"<FamilyCodeUsage(code_id={self.code_id}, redeemed_by={self.redeemed_by})>"
