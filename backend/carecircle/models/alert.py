import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from carecircle.database import Base
from carecircle.enums import AlertSeverity, AlertStatus
from carecircle.schemas.alert import DetectedIndicators
from carecircle.types import PydanticJSON, str_enum


class Alert(Base):
    """A detected well-being event.

    Rows are written by the external detection process in state ``new`` and
    afterwards only changed by ``alert_service``. Severity never changes.
    """

    __tablename__ = "alerts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    senior_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("seniors.id"), nullable=False, index=True,
    )
    call_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    alert_type: Mapped[str] = mapped_column(String(50), nullable=False)
    severity: Mapped[AlertSeverity] = mapped_column(
        str_enum(AlertSeverity), nullable=False,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    detected_indicators: Mapped[DetectedIndicators | None] = mapped_column(
        PydanticJSON(DetectedIndicators), nullable=True,
    )
    confidence_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[AlertStatus] = mapped_column(
        str_enum(AlertStatus), nullable=False, default=AlertStatus.NEW,
    )
    acknowledged_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True,
    )
    acknowledged_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=func.now()
    )

    # Relationships
    senior: Mapped["Senior"] = relationship(back_populates="alerts")  # noqa: F821
    events: Mapped[list["AlertEvent"]] = relationship(
        back_populates="alert", order_by="AlertEvent.id",
    )

    def __repr__(self) -> str:
        return f"<Alert(id={self.id}, severity={self.severity!r}, status={self.status!r})>"


class AlertEvent(Base):
    """One legal status transition of an alert."""

    __tablename__ = "alert_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    alert_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("alerts.id"), nullable=False, index=True,
    )
    from_status: Mapped[AlertStatus] = mapped_column(str_enum(AlertStatus), nullable=False)
    to_status: Mapped[AlertStatus] = mapped_column(str_enum(AlertStatus), nullable=False)
    actor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    alert: Mapped["Alert"] = relationship(back_populates="events")

    def __repr__(self) -> str:
        return f"<AlertEvent(alert_id={self.alert_id}, {self.from_status!r} -> {self.to_status!r})>"
