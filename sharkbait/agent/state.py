from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Streamed tool calls ─────────────────────────────────────────


@dataclass
class ToolCall:
    """One tool call requested by the model, rebuilt from streamed deltas."""

    id: str = ""
    name: str = ""
    arguments: str = ""  # raw JSON text, possibly empty
    stream_index: int = 0

    def to_openai(self) -> dict:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


# ── Ledgers ─────────────────────────────────────────────────────


@dataclass
class TaskLedger:
    """What the run is trying to achieve. One per top-level request."""

    objective: str
    task_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    facts: list[str] = field(default_factory=list)
    assumptions: list[str] = field(default_factory=list)
    plan: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    last_replan_at: datetime = field(default_factory=utcnow)
    replan_count: int = 0

    def to_dict(self) -> dict:
        return {
            "task_id": self.task_id,
            "objective": self.objective,
            "facts": list(self.facts),
            "assumptions": list(self.assumptions),
            "plan": list(self.plan),
            "created_at": self.created_at.isoformat(),
            "last_replan_at": self.last_replan_at.isoformat(),
            "replan_count": self.replan_count,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


@dataclass
class StepRecord:
    step: int
    action: str
    timestamp: datetime
    success: bool
    error: str | None = None


@dataclass
class ProgressLedger:
    """How the run is going. stall_count only grows between successes."""

    current_step: int = 0
    step_history: list[StepRecord] = field(default_factory=list)
    stall_count: int = 0
    last_progress_at: datetime = field(default_factory=utcnow)
    agent_assignments: dict[str, str] = field(default_factory=dict)


# ── Parallel invocations ────────────────────────────────────────


@dataclass
class AgentInvocation:
    """A request to run one specialized agent once."""

    role: str
    input: str
    mode: str | None = None
    weight: float = 1.0


@dataclass
class AgentResult:
    """Terminal summary of one agent invocation."""

    role: str
    success: bool
    output: str = ""
    mode: str | None = None
    tools_called: list[str] = field(default_factory=list)
    duration_ms: int = 0
    error: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)
