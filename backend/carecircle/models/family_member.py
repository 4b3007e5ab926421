import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.orm import relationship as orm_relationship

from carecircle.database import Base
from carecircle.enums import AccessLevel
from carecircle.schemas.membership import NotificationPreferences
from carecircle.types import PydanticJSON, str_enum


class FamilyMember(Base):
    """A caregiver's membership in one senior's care circle.

    At most one row per senior may have ``is_primary_contact`` set; the
    partial unique index enforces it at the store level.
    """

    __tablename__ = "family_members"
    __table_args__ = (
        UniqueConstraint("user_id", "senior_id", name="uq_family_members_user_senior"),
        Index(
            "uq_family_members_primary_contact",
            "senior_id",
            unique=True,
            postgresql_where=text("is_primary_contact"),
            sqlite_where=text("is_primary_contact = 1"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True,
    )
    senior_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("seniors.id"), nullable=False, index=True,
    )
    relationship: Mapped[str] = mapped_column(String(50), nullable=False)
    is_primary_contact: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    access_level: Mapped[AccessLevel] = mapped_column(
        str_enum(AccessLevel), nullable=False, default=AccessLevel.STANDARD,
    )
    notification_preferences: Mapped[NotificationPreferences] = mapped_column(
        PydanticJSON(NotificationPreferences),
        nullable=False,
        default=lambda: NotificationPreferences(),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=func.now()
    )

    # Relationships
    user: Mapped["User"] = orm_relationship(back_populates="memberships")  # noqa: F821
    senior: Mapped["Senior"] = orm_relationship(back_populates="memberships")  # noqa: F821

    def __repr__(self) -> str:
        return (
            f"<FamilyMember(id={self.id}, senior_id={self.senior_id}, "
            f"access_level={self.access_level!r}, primary={self.is_primary_contact})>"
        )


class MembershipAuditLog(Base):
    """Append-only record of membership mutations."""

    __tablename__ = "membership_audit_log"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    membership_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    senior_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("seniors.id"), nullable=False, index=True,
    )
    actor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True,
    )
    action: Mapped[str] = mapped_column(
        String(30), nullable=False
    )  # 'created', 'removed', 'access_level_changed', 'primary_transferred'
    old_value: Mapped[str | None] = mapped_column(String(100), nullable=True)
    new_value: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<MembershipAuditLog(membership_id={self.membership_id}, action={self.action!r})>"
