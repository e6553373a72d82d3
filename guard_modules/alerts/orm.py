"""
Alert ORM Persistence Model (``guard_modules.alerts.orm``).

Responsibility:
    Persist ``Alert`` DTOs.  ``related_data`` is stored as JSON; the
    (year, month) it refers to is also kept in indexed columns so the
    sync-status lookup does not have to query inside JSON.

Invariants enforced:
    - ``period_year`` / ``period_month`` mirror ``related_data`` year/month
      when the alert refers to a period, else they are NULL.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, Boolean, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from guard_kernel.db.base import TrackedBase, UUIDString


class AlertModel(TrackedBase):
    """ORM model for ``Alert``."""

    __tablename__ = "alerts"

    guard_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    alert_type: Mapped[str] = mapped_column(String(50), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), default="warning", nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    related_data: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    period_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    period_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_resolved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    resolved_notes: Mapped[str] = mapped_column(Text, default="", nullable=False)
    action_url: Mapped[str] = mapped_column(String(500), default="", nullable=False)

    __table_args__ = (
        Index("idx_alert_guard_period", "guard_id", "period_year", "period_month"),
        Index("idx_alert_unresolved", "is_resolved", "severity"),
    )

    def to_dto(self):
        from guard_modules.alerts.models import Alert
        return Alert(
            id=self.id,
            guard_id=self.guard_id,
            alert_type=self.alert_type,
            severity=self.severity,
            title=self.title,
            description=self.description or "",
            related_data=dict(self.related_data or {}),
            is_read=bool(self.is_read),
            is_resolved=bool(self.is_resolved),
            resolved_at=self.resolved_at,
            resolved_notes=self.resolved_notes or "",
            action_url=self.action_url or "",
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(cls, dto) -> "AlertModel":
        related = dict(dto.related_data)
        return cls(
            id=dto.id,
            guard_id=dto.guard_id,
            alert_type=dto.alert_type,
            severity=dto.severity,
            title=dto.title,
            description=dto.description,
            related_data=related,
            period_year=related.get("year"),
            period_month=related.get("month"),
            is_read=dto.is_read,
            is_resolved=dto.is_resolved,
            resolved_at=dto.resolved_at,
            resolved_notes=dto.resolved_notes,
            action_url=dto.action_url,
        )

    def __repr__(self) -> str:
        return f"<AlertModel {self.alert_type}/{self.severity}: {self.title}>"
