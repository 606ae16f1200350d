"""In-memory mirror of one user's dashboard state.

The mirror is seeded from a ``snapshot`` event and then kept current by
applying ``db_change`` events from the feed. Statistics are recomputed from
the mirrored rows after every change rather than adjusted incrementally, so
they can never drift from the rows themselves.

The mirror is display state only; nothing writes back to the store from it.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from backend.app.models.task import TaskStatus
from backend.app.schemas.log import StatsResponse
from backend.app.services.broadcaster import (
    CHANGE_EVENT,
    DELETE,
    INSERT,
    SNAPSHOT_EVENT,
    UPDATE,
)

MAX_LOGS = 50


def compute_stats(
    tasks: Iterable[Mapping[str, Any]], usage_costs: Iterable[float]
) -> StatsResponse:
    completed = failed = running = 0
    for task in tasks:
        status = task.get("status")
        if status == TaskStatus.COMPLETED:
            completed += 1
        elif status == TaskStatus.FAILED:
            failed += 1
        elif status == TaskStatus.PROCESSING:
            running += 1
    return StatsResponse(
        completed=completed,
        failed=failed,
        running=running,
        estimated_cost=round(sum(float(c) for c in usage_costs), 6),
    )


class RealtimeMirror:
    def __init__(self, max_logs: int = MAX_LOGS) -> None:
        self.max_logs = max_logs
        self.tasks: list[dict[str, Any]] = []  # newest first
        self.agents: list[dict[str, Any]] = []
        self.logs: list[dict[str, Any]] = []  # newest first, capped at max_logs
        self.usage: list[dict[str, Any]] = []
        self.stats = StatsResponse()

    def load_snapshot(self, data: Mapping[str, Any]) -> None:
        self.tasks = [dict(t) for t in data.get("tasks", [])]
        self.agents = [dict(a) for a in data.get("agents", [])]
        self.logs = [dict(entry) for entry in data.get("logs", [])][: self.max_logs]
        self.usage = [dict(u) for u in data.get("usage", [])]
        self._recompute()

    def handle(self, event: Mapping[str, Any]) -> bool:
        """Dispatch any feed message. Returns True if the mirror changed."""
        kind = event.get("type")
        if kind == SNAPSHOT_EVENT:
            self.load_snapshot(event.get("data", {}))
            return True
        if kind == CHANGE_EVENT:
            return self.apply(event.get("data", {}))
        return False

    def apply(self, change: Mapping[str, Any]) -> bool:
        """Apply one ``db_change`` payload. Returns True if the mirror changed."""
        table = change.get("table")
        if table == "tasks":
            changed = self._apply_rows(self.tasks, change, prepend=True)
        elif table == "agents":
            changed = self._apply_rows(self.agents, change, prepend=False)
        elif table == "execution_logs":
            changed = self._apply_log(change)
        elif table == "api_usage":
            changed = self._apply_rows(self.usage, change, prepend=False)
        else:
            return False

        if changed:
            self._recompute()
        return changed

    def _apply_rows(self, rows: list[dict[str, Any]], change: Mapping[str, Any], prepend: bool) -> bool:
        event = change.get("event")
        new = dict(change.get("new") or {})
        old = change.get("old") or {}

        if event == INSERT and new:
            if prepend:
                rows.insert(0, new)
            else:
                rows.append(new)
            return True

        if event == UPDATE and new:
            for i, row in enumerate(rows):
                if row.get("id") == new.get("id"):
                    rows[i] = new
                    return True
            # Row we never saw (e.g. created before the snapshot was taken)
            if prepend:
                rows.insert(0, new)
            else:
                rows.append(new)
            return True

        if event == DELETE:
            row_id = old.get("id") or new.get("id")
            before = len(rows)
            rows[:] = [row for row in rows if row.get("id") != row_id]
            return len(rows) != before

        return False

    def _apply_log(self, change: Mapping[str, Any]) -> bool:
        # Logs are append-only; only inserts are meaningful
        if change.get("event") != INSERT or not change.get("new"):
            return False
        self.logs.insert(0, dict(change["new"]))
        del self.logs[self.max_logs :]
        return True

    def _recompute(self) -> None:
        self.stats = compute_stats(self.tasks, (u.get("estimated_cost", 0.0) for u in self.usage))
