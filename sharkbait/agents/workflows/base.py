"""Multi-phase workflows built on the role agents.

A workflow is an ordered list of phases. Each phase runs one role agent,
optionally in a prompting mode, on the previous completed phase's output.
A failed required phase stops the workflow; a failed optional phase is
recorded and skipped over. Phases selected by ``should_refine`` go through
a review-then-improve loop before their output is passed on.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Callable

from sharkbait.agent.constants import (
    DEFAULT_PHASE_ITERATIONS,
    SECURITY_REVIEW_WEIGHT,
    WORKFLOW_REVIEW_TIMEOUT_SECONDS,
)
from sharkbait.agent.state import AgentInvocation
from sharkbait.agents.base import BaseAgent
from sharkbait.agents.factory import AgentFactory
from sharkbait.agents.parallel import ParallelExecutionResult, ParallelExecutor

logger = logging.getLogger(__name__)


# ── Phase and result types ──────────────────────────────────────


@dataclass
class WorkflowPhase:
    id: str
    name: str
    description: str
    agent: str
    mode: str | None = None
    required: bool = True
    max_iterations: int | None = None
    parallel: bool = False  # reviewer phases: fan out over the review modes


@dataclass
class PhaseResult:
    phase: str
    status: str  # completed, failed
    output: str = ""
    iterations: int = 0
    duration_ms: int = 0
    error: str | None = None


@dataclass
class Issue:
    type: str
    description: str
    severity: str  # minor, major, critical
    location: str | None = None


@dataclass
class Evaluation:
    approved: bool
    severity: str = "none"  # none, minor, major, critical
    issues: list[Issue] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


@dataclass
class WorkflowOptions:
    max_iterations_per_phase: int = DEFAULT_PHASE_ITERATIONS
    parallel_review: bool = False
    review_modes: list[str] = field(default_factory=lambda: ["bugs", "security"])
    dry_run: bool = False  # skip refinement
    on_phase_start: Callable[[WorkflowPhase], None] | None = None
    on_phase_complete: Callable[[WorkflowPhase, PhaseResult], None] | None = None
    on_refinement: Callable[[int, Evaluation], None] | None = None


@dataclass
class WorkflowResult:
    success: bool
    phases: list[PhaseResult] = field(default_factory=list)
    total_duration_ms: int = 0
    error: str | None = None

    @property
    def output(self) -> str:
        """Output of the last completed phase."""
        for result in reversed(self.phases):
            if result.status == "completed":
                return result.output
        return ""


# ── Review parsing ──────────────────────────────────────────────

CRITICAL_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (r"critical", r"security vulnerability", r"injection", r"crash")
]
MAJOR_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (r"bug", r"error", r"incorrect", r"wrong")
]
MINOR_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (r"style", r"convention", r"naming", r"cleanup")
]
APPROVAL_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (r"looks good", r"approved", r"no issues", r"lgtm")
]


def parse_evaluation(review: str) -> Evaluation:
    """Grade a free-text review by keyword.

    Severity is the worst tier with a match. The review is approved when it
    contains an approval phrase or nothing matched at all.
    """
    issues: list[Issue] = []
    severity = "none"

    critical = [p for p in CRITICAL_PATTERNS if p.search(review)]
    if critical:
        severity = "critical"
        issues += [
            Issue("critical", f"Critical issue detected: {p.pattern}", "critical")
            for p in critical
        ]
    else:
        major = [p for p in MAJOR_PATTERNS if p.search(review)]
        if major:
            severity = "major"
            issues += [Issue("major", f"Issue detected: {p.pattern}", "major") for p in major]
        else:
            minor = [p for p in MINOR_PATTERNS if p.search(review)]
            if minor:
                severity = "minor"
                issues += [Issue("minor", f"Minor issue: {p.pattern}", "minor") for p in minor]

    approved = severity == "none" or any(p.search(review) for p in APPROVAL_PATTERNS)
    return Evaluation(approved=approved, severity=severity, issues=issues)


# ── Workflow ────────────────────────────────────────────────────


class BaseWorkflow:
    """Runs ``phases`` in order. Subclasses declare name, description, phases.

    Every ``execute`` call gets its own set of agents from the factory, so a
    role's conversation carries across that run's phases and nothing else.
    """

    name: str = ""
    description: str = ""
    phases: list[WorkflowPhase] = []

    def __init__(self, factory: AgentFactory, executor: ParallelExecutor | None = None) -> None:
        self.factory = factory
        self.executor = executor or ParallelExecutor(factory)
        self.agents: dict[str, BaseAgent] = {}

    def default_options(self) -> WorkflowOptions:
        return WorkflowOptions()

    def build_input(self, input: str) -> str:
        return input

    async def execute(self, input: str, options: WorkflowOptions | None = None) -> WorkflowResult:
        options = options or self.default_options()
        started = time.monotonic()
        self.agents = self.factory.create_all()
        results: list[PhaseResult] = []
        last_output = self.build_input(input)

        logger.info("Starting workflow: %s", self.name)
        for phase in self.phases:
            if options.on_phase_start:
                options.on_phase_start(phase)
            try:
                result = await self.execute_phase(phase, last_output, options)
            except Exception as e:
                logger.exception("Workflow %s: phase %s raised", self.name, phase.id)
                result = PhaseResult(phase=phase.id, status="failed", error=str(e) or type(e).__name__)
            results.append(result)
            if options.on_phase_complete:
                options.on_phase_complete(phase, result)

            if result.status == "failed":
                if phase.required:
                    logger.warning("Workflow %s stopped at phase %s", self.name, phase.id)
                    return WorkflowResult(
                        success=False,
                        phases=results,
                        total_duration_ms=_elapsed_ms(started),
                        error=f"Required phase '{phase.name}' failed: {result.error}",
                    )
                logger.info("Optional phase %s failed, continuing", phase.id)
                continue
            last_output = result.output

        logger.info("Workflow %s completed", self.name)
        return WorkflowResult(success=True, phases=results, total_duration_ms=_elapsed_ms(started))

    async def execute_phase(
        self, phase: WorkflowPhase, input: str, options: WorkflowOptions
    ) -> PhaseResult:
        started = time.monotonic()
        max_iterations = phase.max_iterations or options.max_iterations_per_phase

        if phase.parallel and phase.agent == "reviewer" and len(options.review_modes) > 1:
            review = await self._parallel_review(input, options.review_modes)
            if not any(r.success for r in review.results):
                return PhaseResult(
                    phase=phase.id,
                    status="failed",
                    iterations=1,
                    duration_ms=_elapsed_ms(started),
                    error=review.consolidated,
                )
            return PhaseResult(
                phase=phase.id,
                status="completed",
                output=review.consolidated,
                iterations=1,
                duration_ms=_elapsed_ms(started),
            )

        agent = self._agent(phase.agent)
        mode = phase.mode if phase.mode and agent.supports_mode(phase.mode) else None
        outcome = await agent.execute(input, mode)
        if not outcome.success:
            return PhaseResult(
                phase=phase.id,
                status="failed",
                output=outcome.output,
                iterations=1,
                duration_ms=_elapsed_ms(started),
                error=outcome.error,
            )

        output, iterations = outcome.output, 1
        if self.should_refine(phase) and not options.dry_run:
            output, refinements = await self.refine_output(
                phase, output, max_iterations - 1, options
            )
            iterations += refinements

        return PhaseResult(
            phase=phase.id,
            status="completed",
            output=output,
            iterations=iterations,
            duration_ms=_elapsed_ms(started),
        )

    def should_refine(self, phase: WorkflowPhase) -> bool:
        return phase.agent == "coder"

    async def refine_output(
        self,
        phase: WorkflowPhase,
        output: str,
        max_iterations: int,
        options: WorkflowOptions,
    ) -> tuple[str, int]:
        """Evaluate, then improve, until approved, only minor issues remain,
        or ``max_iterations`` rounds have run. Returns (output, steps taken)."""
        current = output
        steps = 0
        for round_number in range(1, max_iterations + 1):
            evaluation = await self.evaluate(current, options)
            steps += 1
            if options.on_refinement:
                options.on_refinement(round_number, evaluation)

            if evaluation.approved:
                logger.debug("Phase %s approved after %d review(s)", phase.id, round_number)
                break
            if evaluation.severity not in ("major", "critical"):
                logger.debug("Phase %s has minor issues only, accepting", phase.id)
                break

            current = await self.improve(current, evaluation, phase)
            steps += 1
        return current, steps

    async def evaluate(self, output: str, options: WorkflowOptions) -> Evaluation:
        if options.parallel_review and len(options.review_modes) > 1:
            review = await self._parallel_review(
                f"Review this code:\n\n{output}", options.review_modes
            )
            return parse_evaluation(review.consolidated)

        reviewer = self._agent("reviewer")
        result = await reviewer.execute(f"Review this code for issues:\n\n{output}")
        return parse_evaluation(result.output)

    async def improve(self, output: str, evaluation: Evaluation, phase: WorkflowPhase) -> str:
        feedback = "\n".join(f"- [{i.severity}] {i.description}" for i in evaluation.issues)
        prompt = (
            "Fix the following issues in this code:\n\n"
            f"**Issues Found:**\n{feedback}\n\n"
            f"**Code to Fix:**\n{output}\n\n"
            "Provide the corrected code."
        )
        result = await self._agent("coder").execute(prompt)
        return result.output or output

    async def _parallel_review(self, input: str, modes: list[str]) -> ParallelExecutionResult:
        return await self.executor.execute(
            [
                AgentInvocation(
                    role="reviewer",
                    mode=mode,
                    input=input,
                    weight=SECURITY_REVIEW_WEIGHT if mode == "security" else 1.0,
                )
                for mode in modes
            ],
            strategy="all",
            consolidation="merge",
            timeout=WORKFLOW_REVIEW_TIMEOUT_SECONDS,
        )

    def _agent(self, role: str) -> BaseAgent:
        agent = self.agents.get(role)
        if agent is None:
            agent = self.agents[role] = self.factory.create(role)
        return agent


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
