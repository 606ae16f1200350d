from enum import StrEnum

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.db import Base


class FileStatus(StrEnum):
    DRAFT = "draft"
    COMMITTED = "committed"


class GeneratedFile(Base):
    __tablename__ = "generated_code"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    task_id: Mapped[str] = mapped_column(String, ForeignKey("tasks.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False)
    file_path: Mapped[str] = mapped_column(String, nullable=False)
    file_content: Mapped[str] = mapped_column(Text, nullable=False)
    language: Mapped[str] = mapped_column(String, nullable=False, default="typescript")
    status: Mapped[str] = mapped_column(String, nullable=False, default=FileStatus.DRAFT)
    created_at: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (Index("idx_generated_code_task_status", "task_id", "status"),)
