from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.db import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String, nullable=True, default=None)
    # Timestamps are stored as ISO 8601 strings (not datetime columns) throughout
    # the schema. This keeps SQLite and JSON output consistent.
    created_at: Mapped[str] = mapped_column(String, nullable=False)
