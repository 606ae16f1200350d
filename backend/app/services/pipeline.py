"""Wiring for the task pipeline.

Components never read settings or the environment on their own. Everything
they need (model API key, store session factory, GitHub credential
provider) is collected once in ``PipelineConfig`` and passed in at
construction, which is also how tests swap in fakes.
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from pathlib import Path

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.config import Settings
from backend.app.models.github_repo import GitHubRepoLink
from backend.app.services.code_generator import CodeGenerator
from backend.app.services.commit_publisher import CommitPublisher
from backend.app.services.github_client import GitHubClient
from backend.app.services.llm_client import GeminiClient
from backend.app.services.prompt_engine import PromptEngine
from backend.app.services.task_processor import TaskProcessor

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]
CredentialProvider = Callable[[GitHubRepoLink], GitHubClient]


def github_credentials(
    api_url: str,
    timeout_seconds: float = 60.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> CredentialProvider:
    """Build GitHub clients from the token stored on each user's repo link."""

    def _provider(link: GitHubRepoLink) -> GitHubClient:
        return GitHubClient(
            link.access_token,
            link.repo_name,
            api_url=api_url,
            timeout_seconds=timeout_seconds,
            transport=transport,
        )

    return _provider


@dataclass(slots=True)
class PipelineConfig:
    model_api_key: str | None
    session_factory: SessionFactory
    credential_provider: CredentialProvider
    model: str = "gemini-1.5-flash"
    model_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    estimated_cost_per_call: float = 0.001
    commit_max_attempts: int = 3
    agent_claim_attempts: int = 3
    http_timeout_seconds: float = 60.0
    prompts_dir: Path | None = None
    llm_transport: httpx.AsyncBaseTransport | None = None

    @classmethod
    def from_settings(cls, settings: Settings, session_factory: SessionFactory) -> "PipelineConfig":
        return cls(
            model_api_key=settings.gemini_api_key,
            session_factory=session_factory,
            credential_provider=github_credentials(
                settings.github_api_url, settings.http_timeout_seconds
            ),
            model=settings.gemini_model,
            model_base_url=settings.gemini_base_url,
            estimated_cost_per_call=settings.estimated_cost_per_call,
            commit_max_attempts=settings.commit_max_attempts,
            agent_claim_attempts=settings.agent_claim_attempts,
            http_timeout_seconds=settings.http_timeout_seconds,
            prompts_dir=settings.prompts_dir,
        )


@dataclass(slots=True)
class Pipeline:
    processor: TaskProcessor
    generator: CodeGenerator
    publisher: CommitPublisher

    @classmethod
    def build(cls, config: PipelineConfig) -> "Pipeline":
        llm = GeminiClient(
            config.model_api_key,
            model=config.model,
            base_url=config.model_base_url,
            timeout_seconds=config.http_timeout_seconds,
            transport=config.llm_transport,
        )
        prompts = PromptEngine(config.prompts_dir)
        return cls(
            processor=TaskProcessor(
                config.session_factory,
                llm,
                prompts,
                estimated_cost_per_call=config.estimated_cost_per_call,
                agent_claim_attempts=config.agent_claim_attempts,
            ),
            generator=CodeGenerator(config.session_factory, llm, prompts),
            publisher=CommitPublisher(
                config.session_factory,
                config.credential_provider,
                max_attempts=config.commit_max_attempts,
            ),
        )
