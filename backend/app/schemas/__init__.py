from backend.app.schemas.agent import AgentResponse
from backend.app.schemas.generated_file import (
    GeneratedFileResponse,
    GeneratedFileSpec,
    GeneratedPayload,
    GenerateResponse,
)
from backend.app.schemas.github import RepoLinkResponse, RepoLinkUpsert
from backend.app.schemas.log import ApiUsageResponse, ExecutionLogResponse, StatsResponse
from backend.app.schemas.task import (
    CommitRequest,
    CommitResponse,
    ProcessResponse,
    TaskCreate,
    TaskResponse,
)
from backend.app.schemas.user import UserOnboard, UserResponse

__all__ = [
    "UserOnboard",
    "UserResponse",
    "TaskCreate",
    "TaskResponse",
    "ProcessResponse",
    "CommitRequest",
    "CommitResponse",
    "AgentResponse",
    "GeneratedFileSpec",
    "GeneratedPayload",
    "GeneratedFileResponse",
    "GenerateResponse",
    "RepoLinkUpsert",
    "RepoLinkResponse",
    "ExecutionLogResponse",
    "ApiUsageResponse",
    "StatsResponse",
]
