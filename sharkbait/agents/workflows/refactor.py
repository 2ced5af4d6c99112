from sharkbait.agents.workflows.base import BaseWorkflow, WorkflowOptions, WorkflowPhase


class RefactorWorkflow(BaseWorkflow):
    """Analyze, plan, refactor, verify behavior, look for optimizations, document."""

    name = "refactor"
    description = "Large-scale refactoring with safety checks"
    phases = [
        WorkflowPhase("analyze", "Analyze", "Analyze structure and find refactoring opportunities",
                      agent="explorer", mode="patterns", max_iterations=1),
        WorkflowPhase("plan", "Plan", "Create a step-by-step refactoring plan",
                      agent="planner", mode="tasks", max_iterations=1),
        WorkflowPhase("execute", "Execute", "Perform the refactoring",
                      agent="coder", mode="refactor", max_iterations=3),
        WorkflowPhase("verify", "Verify", "Verify the refactoring keeps behavior",
                      agent="reviewer", mode="bugs", max_iterations=1),
        WorkflowPhase("optimize", "Optimize", "Check for performance improvements",
                      agent="reviewer", mode="performance", required=False, max_iterations=1),
        WorkflowPhase("document", "Document", "Update documentation for the changes",
                      agent="coder", mode="docs", required=False, max_iterations=1),
    ]

    def __init__(
        self,
        *args,
        target_files: list[str] | None = None,
        refactor_type: str | None = None,
        preserve_behavior: bool = True,
        run_tests: bool = False,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.target_files = target_files or []
        self.refactor_type = refactor_type
        self.preserve_behavior = preserve_behavior
        self.run_tests = run_tests

    def default_options(self) -> WorkflowOptions:
        return WorkflowOptions(parallel_review=True, review_modes=["bugs", "performance"])

    def build_input(self, input: str) -> str:
        text = f"## Refactoring Request\n\n{input}"
        if self.refactor_type:
            text += f"\n\n### Refactor Type\n{self.refactor_type}"
        if self.target_files:
            text += "\n\n### Target Files\n- " + "\n- ".join(self.target_files)
        if self.preserve_behavior:
            text += "\n\n### Constraints\n- Must preserve existing behavior (no breaking changes)"
        if self.run_tests:
            text += "\n- Run existing tests after refactoring to verify behavior"
        return text

    def should_refine(self, phase: WorkflowPhase) -> bool:
        return phase.id == "execute"
