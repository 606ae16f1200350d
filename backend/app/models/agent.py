from enum import StrEnum

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.db import Base


class AgentStatus(StrEnum):
    IDLE = "idle"
    ACTIVE = "active"


DEFAULT_AGENT_TYPE = "code-generator"


class Agent(Base):
    __tablename__ = "agents"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False, default=DEFAULT_AGENT_TYPE)
    status: Mapped[str] = mapped_column(String, nullable=False, default=AgentStatus.IDLE)
    # Non-null exactly when status == "active"
    current_task_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("tasks.id"), nullable=True
    )
    created_at: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (Index("idx_agents_user_status", "user_id", "status"),)
