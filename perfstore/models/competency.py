from sqlalchemy import Column, Integer, String, Text, UniqueConstraint
from perfstore.database import Base

class Competency(Base):
    __tablename__ = "competencies"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    display_order = Column(Integer, nullable=False, default=0)  # first-seen order across imports

    __table_args__ = (
        UniqueConstraint("name", name="uq_competencies_name"),
    )
