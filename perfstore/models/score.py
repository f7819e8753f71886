from sqlalchemy import Column, Integer, String, Float, DateTime, UniqueConstraint
from perfstore.database import Base
from perfstore.utils.clock import utcnow

class Score(Base):
    __tablename__ = "scores"

    id = Column(Integer, primary_key=True)
    employee_id = Column(Integer, nullable=False, index=True)
    # NULL only for legacy scores whose employee had no dataset at upgrade time
    dataset_id = Column(Integer, nullable=True, index=True)
    competency_id = Column(Integer, nullable=False, index=True)
    raw_value = Column(String, nullable=False)
    numeric_value = Column(Float, nullable=True)  # NULL when raw_value has no rating mapping
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

class RatingMapping(Base):
    __tablename__ = "rating_mappings"

    id = Column(Integer, primary_key=True)
    dataset_id = Column(Integer, nullable=False, index=True)
    text_value = Column(String, nullable=False)
    numeric_value = Column(Float, nullable=False)

    __table_args__ = (
        UniqueConstraint("dataset_id", "text_value", name="uq_rating_mapping_text"),
    )
