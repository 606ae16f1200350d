from pydantic import BaseModel, ConfigDict, Field

from backend.app.models.task import TaskPriority


class TaskCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    priority: TaskPriority = TaskPriority.MEDIUM
    auto_process: bool = False  # run the processor in the background after insert


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    description: str
    status: str
    priority: str
    result: str | None = None
    generated_files_count: int = 0
    github_commit_sha: str | None = None
    created_at: str
    updated_at: str


class ProcessResponse(BaseModel):
    success: bool = True
    agent_id: str


class CommitRequest(BaseModel):
    commit_message: str | None = None


class CommitResponse(BaseModel):
    success: bool = True
    commit_sha: str
    commit_url: str | None = None
    files_committed: int
