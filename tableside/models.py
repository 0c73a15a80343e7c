"""
SQLAlchemy Database Models

The shared store keeps every entity as one denormalised JSON row keyed by
(collection, id). A serving group row embeds its items and prep list, so a
group is always written atomically.
"""

from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func

from tableside.database import Base


class Record(Base):
    """One row of one collection (serving_groups, attendance_logs, ...)."""
    __tablename__ = "records"

    table_name = Column(String(50), primary_key=True)
    id = Column(String(100), primary_key=True)
    payload = Column(JSON, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Record {self.table_name}/{self.id}>"
