"""
Slot model: one (slot number, event) binding on a pass.

Key design decisions:
- Natural key (pass_id, slot_no); slot_no is constrained to 1..4, which caps a
  pass at four slots
- Unique (pass_id, event_id) forbids registering the same event twice on a pass
- Both unique constraints are the last line of defence when two writers race;
  the allocator turns their violations into a Conflict
"""

from sqlalchemy import (
    Column, Integer, Boolean, DateTime, ForeignKey, Uuid,
    UniqueConstraint, CheckConstraint, Index, func,
)

from passdesk.db.base import Base

MAX_SLOTS_PER_PASS = 4


class Slot(Base):
    __tablename__ = "slots"

    pass_id = Column(Uuid, ForeignKey("passes.id", ondelete="CASCADE"), primary_key=True)
    slot_no = Column(Integer, primary_key=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False)
    attended = Column(Boolean, nullable=False, default=False, server_default="false")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("pass_id", "event_id", name="uq_slot_pass_event"),
        CheckConstraint(f"slot_no BETWEEN 1 AND {MAX_SLOTS_PER_PASS}", name="check_slot_no_range"),
        Index("ix_slots_event_id", "event_id"),
    )

    def __repr__(self) -> str:
        return f"<Slot(pass={self.pass_id}, slot_no={self.slot_no}, event={self.event_id}, attended={self.attended})>"
