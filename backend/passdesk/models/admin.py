"""
Staff account model with secure password storage.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint

from passdesk.db.base import Base, TimestampMixin


class Admin(Base, TimestampMixin):
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="volunteer")
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "role IN ('volunteer', 'event_admin', 'dept_admin', 'super_admin')",
            name="check_admin_role",
        ),
    )

    def __repr__(self) -> str:
        return f"<Admin(email={self.email}, role={self.role}, department={self.department_id})>"
