from backend.app.models.user import User
from backend.app.models.task import Task
from backend.app.models.agent import Agent
from backend.app.models.generated_file import GeneratedFile
from backend.app.models.github_repo import GitHubRepoLink
from backend.app.models.execution_log import ExecutionLog
from backend.app.models.api_usage import ApiUsage

__all__ = [
    "User",
    "Task",
    "Agent",
    "GeneratedFile",
    "GitHubRepoLink",
    "ExecutionLog",
    "ApiUsage",
]
