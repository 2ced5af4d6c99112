from sharkbait.agents.workflows.base import (
    BaseWorkflow,
    Evaluation,
    Issue,
    PhaseResult,
    WorkflowOptions,
    WorkflowPhase,
    WorkflowResult,
    parse_evaluation,
)
from sharkbait.agents.workflows.bug_fix import BugFixWorkflow
from sharkbait.agents.workflows.feature_dev import FeatureDevWorkflow
from sharkbait.agents.workflows.pr import PRWorkflow
from sharkbait.agents.workflows.refactor import RefactorWorkflow

WORKFLOWS: dict[str, type[BaseWorkflow]] = {
    "feature-dev": FeatureDevWorkflow,
    "bug-fix": BugFixWorkflow,
    "refactor": RefactorWorkflow,
    "pr": PRWorkflow,
}

__all__ = [
    "WORKFLOWS",
    "BaseWorkflow",
    "BugFixWorkflow",
    "Evaluation",
    "FeatureDevWorkflow",
    "Issue",
    "PRWorkflow",
    "PhaseResult",
    "RefactorWorkflow",
    "WorkflowOptions",
    "WorkflowPhase",
    "WorkflowResult",
    "parse_evaluation",
]
