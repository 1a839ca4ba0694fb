"""
Pass model: a participant's admission record.

Key design decisions:
- The pass row is the lock target for slot mutations (SELECT ... FOR UPDATE),
  so all assignment/removal against one pass is serialized
- `payment_id` is required: the receipt row must exist before the pass
- `verified` and `issued` only ever move false -> true, through conditional
  updates (see services.pass_service.compare_and_set_flag)
"""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Uuid

from passdesk.db.base import Base, TimestampMixin


class Pass(Base, TimestampMixin):
    __tablename__ = "passes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_email = Column(String(255), nullable=False, index=True)
    payment_id = Column(String(100), ForeignKey("receipts.payment_id"), nullable=False, unique=True)
    verified = Column(Boolean, nullable=False, default=False, server_default="false")
    verified_by = Column(String(255), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    issued = Column(Boolean, nullable=False, default=False, server_default="false")

    def __repr__(self) -> str:
        return f"<Pass(id={self.id}, email={self.user_email}, verified={self.verified})>"
