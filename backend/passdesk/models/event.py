"""
Event model, mirrored from the upstream event catalog.

Key design decisions:
- `id` is the catalog's own identifier, so the sync job upserts on it directly
- `registrations` is a denormalized slot count, kept in step by the slot
  allocator inside the same transaction as each slot insert/delete
- The sync job never writes `registrations`
"""

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, Index, CheckConstraint

from passdesk.db.base import Base, TimestampMixin

EVENT_TYPES = ("technical", "non-technical", "workshop")


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(255), nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)
    event_type = Column(String(20), nullable=False)
    cost = Column(Numeric(10, 2), nullable=True)
    registrations = Column(Integer, nullable=False, default=0, server_default="0")

    __table_args__ = (
        CheckConstraint("registrations >= 0", name="check_event_registrations_non_negative"),
        CheckConstraint(
            "event_type IN ('technical', 'non-technical', 'workshop')",
            name="check_event_type",
        ),
        Index("ix_events_department_id", "department_id"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, name={self.name}, registrations={self.registrations})>"
