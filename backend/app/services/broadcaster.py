"""Change-feed events for the dashboard.

Every store mutation made by the service layer is mirrored as a ``db_change``
event::

    {"type": "db_change",
     "data": {"table": "tasks", "event": "UPDATE", "user_id": "...",
              "new": {...row...}, "old": {"id": "..."}}}

``broadcast_event`` routes each event to the owning user's WebSocket clients.
"""

import logging
from typing import Any

from backend.app.models.agent import Agent
from backend.app.models.api_usage import ApiUsage
from backend.app.models.execution_log import ExecutionLog
from backend.app.models.generated_file import GeneratedFile
from backend.app.models.task import Task
from backend.app.schemas.agent import AgentResponse
from backend.app.schemas.generated_file import GeneratedFileResponse
from backend.app.schemas.log import ApiUsageResponse, ExecutionLogResponse
from backend.app.schemas.task import TaskResponse
from backend.app.services.ws_manager import ws_manager

logger = logging.getLogger(__name__)

CHANGE_EVENT = "db_change"
SNAPSHOT_EVENT = "snapshot"

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


def change_event(
    table: str,
    event: str,
    user_id: str,
    new: dict[str, Any] | None = None,
    old: dict[str, Any] | None = None,
) -> dict[str, Any]:
    return {
        "type": CHANGE_EVENT,
        "data": {
            "table": table,
            "event": event,
            "user_id": user_id,
            "new": new or {},
            "old": old or {},
        },
    }


def task_change_event(task: Task, event: str = UPDATE) -> dict[str, Any]:
    row = TaskResponse.model_validate(task).model_dump()
    return change_event("tasks", event, task.user_id, new=row, old={"id": task.id})


def agent_change_event(agent: Agent, event: str = UPDATE) -> dict[str, Any]:
    row = AgentResponse.model_validate(agent).model_dump()
    return change_event("agents", event, agent.user_id, new=row, old={"id": agent.id})


def log_created_event(log: ExecutionLog, user_id: str) -> dict[str, Any]:
    row = ExecutionLogResponse.model_validate(log).model_dump()
    return change_event("execution_logs", INSERT, user_id, new=row)


def file_change_event(file: GeneratedFile, event: str = UPDATE) -> dict[str, Any]:
    row = GeneratedFileResponse.model_validate(file).model_dump()
    return change_event("generated_code", event, file.user_id, new=row, old={"id": file.id})


def usage_created_event(usage: ApiUsage) -> dict[str, Any]:
    row = ApiUsageResponse.model_validate(usage).model_dump()
    return change_event("api_usage", INSERT, usage.user_id, new=row)


def snapshot_event(
    tasks: list[dict[str, Any]],
    agents: list[dict[str, Any]],
    logs: list[dict[str, Any]],
    usage: list[dict[str, Any]],
) -> dict[str, Any]:
    """Initial state sent to a client right after it subscribes."""
    return {
        "type": SNAPSHOT_EVENT,
        "data": {"tasks": tasks, "agents": agents, "logs": logs, "usage": usage},
    }


async def broadcast_event(event: dict[str, Any]) -> None:
    """Push an event to the WebSocket clients of the user who owns the row."""
    user_id = event.get("data", {}).get("user_id")
    try:
        await ws_manager.broadcast(event, user_id=user_id)
    except Exception:
        logger.exception("[WS] Failed to broadcast %s event", event.get("type"))


async def broadcast_all(events: list[dict[str, Any]]) -> None:
    for event in events:
        await broadcast_event(event)
