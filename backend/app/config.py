"""Application configuration with environment variable support.

All settings can be overridden via environment variables prefixed with ``AGENTDECK_``,
or via a ``.env`` file in the project root.

Examples::

    AGENTDECK_PORT=9000 uv run agentdeck start
    AGENTDECK_GEMINI_API_KEY=... uv run agentdeck start
    AGENTDECK_DB_URL=sqlite+aiosqlite:////var/data/agentdeck.db uv run agentdeck start
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root: two levels up from this file (backend/app/config.py -> agentdeck/)
_BASE_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """AgentDeck configuration — all values overridable via env vars."""

    model_config = SettingsConfigDict(
        env_prefix="AGENTDECK_",
        env_file=str(_BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Paths
    data_dir: Path = _BASE_DIR / "data"
    prompts_dir: Path = _BASE_DIR / "prompts"

    # Store (defaults to a SQLite file under data_dir)
    db_url: str | None = None

    # Logging
    log_level: str = "INFO"

    # Language model
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-1.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    estimated_cost_per_call: float = 0.001

    # GitHub
    github_api_url: str = "https://api.github.com"
    commit_max_attempts: int = 3

    # Pipeline
    agent_claim_attempts: int = 3
    http_timeout_seconds: float = 60.0

    @property
    def db_path(self) -> Path:
        return self.data_dir / "agentdeck.db"

    @property
    def database_url(self) -> str:
        return self.db_url or f"sqlite+aiosqlite:///{self.db_path}"

    @property
    def api_url(self) -> str:
        return f"http://localhost:{self.port}"


# Singleton instance, import this everywhere
settings = Settings()

DATA_DIR = settings.data_dir
DATABASE_URL = settings.database_url
PROMPTS_DIR = settings.prompts_dir
