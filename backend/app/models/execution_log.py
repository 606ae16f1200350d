from enum import StrEnum

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.db import Base


class LogType(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class ExecutionLog(Base):
    """Append-only audit trail. Rows are never updated or deleted."""

    __tablename__ = "execution_logs"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    task_id: Mapped[str] = mapped_column(String, ForeignKey("tasks.id"), nullable=False)
    agent_id: Mapped[str | None] = mapped_column(String, ForeignKey("agents.id"), nullable=True)
    log_type: Mapped[str] = mapped_column(String, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (Index("idx_execution_logs_task", "task_id", "created_at"),)
