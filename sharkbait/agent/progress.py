"""Dual-ledger progress tracking with stall detection.

The TaskLedger records what a run is trying to do; the ProgressLedger
records how it is going. check_progress() turns the pair into a verdict the
turn loop acts on before every model call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sharkbait.agent.constants import (
    COMPLETION_LOOKBACK_STEPS,
    COMPLETION_MARKERS,
    MAX_REPLANS,
    STALE_PROGRESS_MS,
    STALL_THRESHOLD,
)
from sharkbait.agent.state import ProgressLedger, StepRecord, TaskLedger, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressCheck:
    type: str  # continue, complete, replan, escalate
    reason: str | None = None


CONTINUE = ProgressCheck("continue")
COMPLETE = ProgressCheck("complete")


class ProgressTracker:
    def __init__(
        self,
        stall_threshold: int = STALL_THRESHOLD,
        max_replans: int = MAX_REPLANS,
        stale_progress_ms: int = STALE_PROGRESS_MS,
    ) -> None:
        self.stall_threshold = stall_threshold
        self.max_replans = max_replans
        self.stale_progress_ms = stale_progress_ms

    def check_progress(
        self,
        progress: ProgressLedger,
        task: TaskLedger,
        now: datetime | None = None,
    ) -> ProgressCheck:
        """Decide whether the run should continue, replan, escalate or stop.

        First match wins: escalation, stall replan, stale replan, completion.
        Pass ``now`` to make the staleness check reproducible.
        """
        if progress.stall_count >= self.stall_threshold:
            if task.replan_count >= self.max_replans:
                return ProgressCheck(
                    "escalate",
                    f"Stalled after {progress.stall_count} failed attempts "
                    f"and {task.replan_count} re-planning attempts",
                )
            return ProgressCheck(
                "replan",
                f"Stalled after {progress.stall_count} consecutive failures",
            )

        if progress.step_history:
            now = now or utcnow()
            elapsed_ms = (now - progress.last_progress_at).total_seconds() * 1000
            if elapsed_ms > self.stale_progress_ms:
                return ProgressCheck(
                    "replan",
                    f"No progress for {round(elapsed_ms / 1000)} seconds",
                )

        if self._is_objective_complete(progress, task):
            return COMPLETE

        return CONTINUE

    @staticmethod
    def _is_objective_complete(progress: ProgressLedger, task: TaskLedger) -> bool:
        if task.plan and progress.current_step >= len(task.plan):
            return True

        for record in progress.step_history[-COMPLETION_LOOKBACK_STEPS:]:
            if any(marker in record.action for marker in COMPLETION_MARKERS):
                return True
        return False

    def record_step(
        self,
        progress: ProgressLedger,
        action: str,
        success: bool,
        error: str | None = None,
    ) -> StepRecord:
        record = StepRecord(
            step=progress.current_step,
            action=action,
            timestamp=utcnow(),
            success=success,
            error=error,
        )
        progress.current_step += 1
        progress.step_history.append(record)

        if success:
            progress.stall_count = 0
            progress.last_progress_at = record.timestamp
        else:
            progress.stall_count += 1
            logger.debug(
                "Step %d (%s) failed, stall count now %d",
                record.step,
                action,
                progress.stall_count,
            )
        return record

    @staticmethod
    def update_plan(task: TaskLedger, new_plan: list[str]) -> None:
        task.plan = list(new_plan)
        task.last_replan_at = utcnow()
        task.replan_count += 1

    @staticmethod
    def add_fact(task: TaskLedger, fact: str) -> None:
        if fact not in task.facts:
            task.facts.append(fact)

    @staticmethod
    def add_assumption(task: TaskLedger, assumption: str) -> None:
        if assumption not in task.assumptions:
            task.assumptions.append(assumption)
