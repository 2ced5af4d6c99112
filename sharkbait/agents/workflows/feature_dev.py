from sharkbait.agents.workflows.base import BaseWorkflow, WorkflowOptions, WorkflowPhase


class FeatureDevWorkflow(BaseWorkflow):
    """Discover, plan, implement, review, test, document."""

    name = "feature-dev"
    description = "End-to-end feature development with discovery, planning, implementation and review"
    phases = [
        WorkflowPhase("discover", "Discovery", "Explore the codebase and understand requirements",
                      agent="explorer", mode="map", max_iterations=1),
        WorkflowPhase("plan", "Planning", "Create an implementation plan and architecture",
                      agent="planner", mode="architecture", max_iterations=1),
        WorkflowPhase("implement", "Implementation", "Write the feature code",
                      agent="coder", mode="write", max_iterations=3),
        WorkflowPhase("review", "Code Review", "Review for bugs, security and style",
                      agent="reviewer", max_iterations=1, parallel=True),
        WorkflowPhase("test", "Testing", "Write tests for the feature",
                      agent="coder", mode="test", required=False, max_iterations=2),
        WorkflowPhase("document", "Documentation", "Document the feature",
                      agent="coder", mode="docs", required=False, max_iterations=1),
    ]

    def default_options(self) -> WorkflowOptions:
        return WorkflowOptions(parallel_review=True, review_modes=["bugs", "security", "style"])

    def should_refine(self, phase: WorkflowPhase) -> bool:
        return phase.id in ("implement", "test")
