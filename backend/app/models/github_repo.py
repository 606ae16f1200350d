from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.db import Base


class GitHubRepoLink(Base):
    __tablename__ = "github_repos"

    # One link per user; saving again overwrites it
    user_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), primary_key=True)
    repo_name: Mapped[str] = mapped_column(String, nullable=False)  # "owner/repo"
    repo_url: Mapped[str] = mapped_column(String, nullable=False)
    access_token: Mapped[str] = mapped_column(String, nullable=False)
    default_branch: Mapped[str] = mapped_column(String, nullable=False, default="main")
    created_at: Mapped[str] = mapped_column(String, nullable=False)
    updated_at: Mapped[str] = mapped_column(String, nullable=False)
