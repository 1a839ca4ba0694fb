"""
Receipt model: the payment record a pass is issued against.
"""

from sqlalchemy import Column, String, Numeric, DateTime, func

from passdesk.db.base import Base


class Receipt(Base):
    __tablename__ = "receipts"

    payment_id = Column(String(100), primary_key=True)
    method = Column(String(20), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    paid_on = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self) -> str:
        return f"<Receipt(payment_id={self.payment_id}, method={self.method}, amount={self.amount})>"
