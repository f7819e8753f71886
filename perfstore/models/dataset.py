from sqlalchemy import Column, Integer, String, Text, DateTime
from perfstore.database import Base
from perfstore.utils.clock import utcnow

class Dataset(Base):
    __tablename__ = "datasets"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    source_file = Column(String, nullable=True)  # original CSV file name
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
