import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from opsdash.db import Base


class OrderStatus(enum.Enum):
    pending = "pending"
    in_progress = "in_progress"
    delivered = "delivered"


class PendencyStatus(enum.Enum):
    pending = "pending"
    resolved = "resolved"


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_assigned_to", "assigned_to"),
        Index("ix_orders_attribution_date", "attribution_date"),
        Index("ix_orders_delivered_at", "delivered_at"),
        Index("ix_orders_deadline", "deadline"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str | None] = mapped_column(String(80))
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    document_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    urgent_document_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, name="order_status"), nullable=False, default=OrderStatus.pending
    )
    deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    attribution_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )

    pendencies = relationship("Pendency", back_populates="order")


class Pendency(Base):
    __tablename__ = "pendencies"
    __table_args__ = (
        Index("ix_pendencies_created_at", "created_at"),
        Index("ix_pendencies_error_type", "error_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("orders.id"))
    error_type: Mapped[str] = mapped_column(String(80), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500))
    status: Mapped[PendencyStatus] = mapped_column(
        Enum(PendencyStatus, name="pendency_status"), nullable=False, default=PendencyStatus.pending
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    order = relationship("Order", back_populates="pendencies")


class UserDocumentLimit(Base):
    __tablename__ = "user_document_limits"
    __table_args__ = (UniqueConstraint("user_id", name="uq_user_document_limits_user"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    daily_limit: Mapped[int | None] = mapped_column(Integer)
    concurrent_order_limit: Mapped[int | None] = mapped_column(Integer)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )


class CollaboratorKpi(Base):
    __tablename__ = "collaborator_kpis"
    __table_args__ = (Index("ix_collaborator_kpis_user_active", "user_id", "is_active"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    kpi_name: Mapped[str] = mapped_column(String(80), nullable=False)
    kpi_label: Mapped[str] = mapped_column(String(160), nullable=False)
    target_value: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    target_operator: Mapped[str] = mapped_column(String(8), nullable=False, default="lte")
    calculation_type: Mapped[str] = mapped_column(String(40), nullable=False, default="error_rate")
    unit: Mapped[str] = mapped_column(String(16), nullable=False, default="%")
    manual_value: Mapped[float | None] = mapped_column(Float)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
