from sqlalchemy import Column, Integer, Text, DateTime, Index
from perfstore.database import Base
from perfstore.utils.clock import utcnow

class Summary(Base):
    __tablename__ = "summaries"

    id = Column(Integer, primary_key=True)
    employee_id = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("uq_summaries_employee_id", "employee_id", unique=True),
    )
