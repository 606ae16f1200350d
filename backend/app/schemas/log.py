from pydantic import BaseModel, ConfigDict


class ExecutionLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    task_id: str
    agent_id: str | None = None
    log_type: str
    message: str
    created_at: str


class ApiUsageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    task_id: str
    model: str
    tokens_used: int
    estimated_cost: float
    created_at: str


class StatsResponse(BaseModel):
    completed: int = 0
    failed: int = 0
    running: int = 0
    estimated_cost: float = 0.0
