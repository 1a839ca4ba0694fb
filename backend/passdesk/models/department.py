"""
Department model. Used purely as a scoping tag for events and staff.
"""

from sqlalchemy import Column, Integer, String

from passdesk.db.base import Base


class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Department(id={self.id}, name={self.name})>"
