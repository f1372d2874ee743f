import enum
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, inspect
from sqlalchemy import Enum as SQLEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from ..database import Base

if TYPE_CHECKING:
    from .resource import Resource
    from .user import User
    from .venue import Venue


class EventStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    HOD_APPROVED = "HOD_APPROVED"
    DEAN_APPROVED = "DEAN_APPROVED"
    HEAD_APPROVED = "HEAD_APPROVED"
    REJECTED = "REJECTED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"


# Statuses whose events hold their venue slot and resource quantities
COMMITTED_STATUSES = frozenset({EventStatus.HEAD_APPROVED, EventStatus.RUNNING})


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    department: Mapped[str] = mapped_column(String(200), nullable=False)
    coordinator_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    venue_id: Mapped[int] = mapped_column(ForeignKey("venues.id"), nullable=False)
    # Naive UTC instants
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    participant_count: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[EventStatus] = mapped_column(
        SQLEnum(EventStatus, name="eventstatus"),
        default=EventStatus.DRAFT,
        nullable=False,
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    coordinator: Mapped["User"] = relationship("User")
    venue: Mapped["Venue"] = relationship("Venue")
    claims: Mapped[List["EventResource"]] = relationship(
        "EventResource",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventResource.id",
    )

    __table_args__ = (
        Index("idx_event_venue_status", "venue_id", "status"),
        Index("idx_event_status_window", "status", "start_time", "end_time"),
    )

    @property
    def venue_name(self) -> Optional[str]:
        if "venue" in inspect(self).unloaded or self.venue is None:
            return None
        return self.venue.name

    @property
    def coordinator_name(self) -> Optional[str]:
        if "coordinator" in inspect(self).unloaded or self.coordinator is None:
            return None
        return self.coordinator.full_name


class EventResource(Base):
    """A resource claim: quantity of one resource held for the event's whole window."""

    __tablename__ = "event_resources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    resource_id: Mapped[int] = mapped_column(
        ForeignKey("resources.id"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    event: Mapped["Event"] = relationship("Event", back_populates="claims")
    resource: Mapped["Resource"] = relationship("Resource")

    __table_args__ = (
        UniqueConstraint("event_id", "resource_id", name="uq_event_resource"),
    )

    @property
    def resource_name(self) -> Optional[str]:
        if "resource" in inspect(self).unloaded or self.resource is None:
            return None
        return self.resource.name
