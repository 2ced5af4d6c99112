from sharkbait.agents.workflows.base import BaseWorkflow, WorkflowOptions, WorkflowPhase


class PRWorkflow(BaseWorkflow):
    """Prepare, commit, push and open a pull request, then self-review. No refinement."""

    name = "pr"
    description = "Create and self-review a pull request"
    phases = [
        WorkflowPhase("prepare", "Prepare Changes", "Review and stage changes for commit",
                      agent="explorer", max_iterations=1),
        WorkflowPhase("commit", "Commit", "Create meaningful commits",
                      agent="coder", max_iterations=1),
        WorkflowPhase("push", "Push", "Push changes to the remote",
                      agent="coder", max_iterations=1),
        WorkflowPhase("create-pr", "Create PR", "Open a pull request with a description",
                      agent="coder", max_iterations=1),
        WorkflowPhase("self-review", "Self Review", "Review the changes before requesting review",
                      agent="reviewer", required=False, max_iterations=1, parallel=True),
    ]

    def __init__(self, *args, base_branch: str | None = None, draft: bool = False, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.base_branch = base_branch
        self.draft = draft

    def default_options(self) -> WorkflowOptions:
        return WorkflowOptions(
            max_iterations_per_phase=1, parallel_review=True, review_modes=["bugs", "security"]
        )

    def build_input(self, input: str) -> str:
        text = f"Create a pull request for the following changes:\n\n{input}"
        if self.base_branch:
            text += f"\n\nTarget branch: {self.base_branch}"
        if self.draft:
            text += "\n\nCreate as draft PR."
        return text

    def should_refine(self, phase: WorkflowPhase) -> bool:
        return False
