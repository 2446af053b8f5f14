"""SQLAlchemy ORM models."""
from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from devloop.infrastructure.database.base import Base


class ExecutionRecord(Base):
    __tablename__ = "executions"

    id = Column(String(96), primary_key=True)
    script_id = Column(String(64), nullable=False, index=True)
    script_name = Column(String(255))
    script_path = Column(Text)
    command = Column(Text, nullable=False, default="")
    args = Column(Text, nullable=False, default="[]")  # JSON array
    env = Column(Text, nullable=False, default="{}")  # JSON object
    output = Column(Text)
    output_truncated = Column(Boolean, nullable=False, default=False)
    exit_code = Column(Integer)
    status = Column(String(20), nullable=False, default="running")
    error_message = Column(Text)
    incognito = Column(Boolean, nullable=False, default=False)
    started_at = Column(DateTime(timezone=True), nullable=False, index=True)
    finished_at = Column(DateTime(timezone=True))

    __table_args__ = (Index("ix_executions_script_started", "script_id", "started_at"),)
