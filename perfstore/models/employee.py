from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from perfstore.database import Base
from perfstore.utils.clock import utcnow

class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, index=True)
    # normalize_name(name); uniqueness is checked by the import layer, not the index
    name_key = Column(String, nullable=False, index=True)
    nip = Column(String, nullable=True)
    gol = Column(String, nullable=True)
    jabatan = Column(String, nullable=True)
    sub_jabatan = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

class DatasetEmployee(Base):
    __tablename__ = "dataset_employees"

    id = Column(Integer, primary_key=True)
    dataset_id = Column(Integer, nullable=False, index=True)
    employee_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("dataset_id", "employee_id", name="uq_dataset_employee"),
    )
