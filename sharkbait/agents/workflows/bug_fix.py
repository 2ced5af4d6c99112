from sharkbait.agents.workflows.base import BaseWorkflow, WorkflowOptions, WorkflowPhase


class BugFixWorkflow(BaseWorkflow):
    """Diagnose, hypothesize, fix, verify, then add a test and document."""

    name = "bug-fix"
    description = "Diagnose and fix bugs with verification"
    phases = [
        WorkflowPhase("diagnose", "Diagnose", "Understand the bug and trace its cause",
                      agent="debugger", mode="trace", max_iterations=2),
        WorkflowPhase("hypothesize", "Hypothesize", "Form a hypothesis about the root cause",
                      agent="debugger", mode="hypothesis", max_iterations=1),
        WorkflowPhase("fix", "Fix", "Implement the fix",
                      agent="coder", mode="write", max_iterations=3),
        WorkflowPhase("verify", "Verify", "Check the fix and look for regressions",
                      agent="reviewer", mode="bugs", max_iterations=1),
        WorkflowPhase("test", "Add Test", "Add a regression test for the bug",
                      agent="coder", mode="test", required=False, max_iterations=2),
        WorkflowPhase("document", "Document", "Document the fix and root cause",
                      agent="coder", mode="docs", required=False, max_iterations=1),
    ]

    def __init__(
        self,
        *args,
        error_message: str | None = None,
        stack_trace: str | None = None,
        repro_steps: list[str] | None = None,
        related_files: list[str] | None = None,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.error_message = error_message
        self.stack_trace = stack_trace
        self.repro_steps = repro_steps or []
        self.related_files = related_files or []

    def default_options(self) -> WorkflowOptions:
        return WorkflowOptions(parallel_review=False, review_modes=["bugs"])

    def build_input(self, input: str) -> str:
        text = f"## Bug Report\n\n{input}"
        if self.error_message:
            text += f"\n\n### Error Message\n```\n{self.error_message}\n```"
        if self.stack_trace:
            text += f"\n\n### Stack Trace\n```\n{self.stack_trace}\n```"
        if self.repro_steps:
            text += "\n\n### Steps to Reproduce\n"
            text += "".join(f"{i}. {step}\n" for i, step in enumerate(self.repro_steps, 1))
        if self.related_files:
            text += "\n\n### Possibly Related Files\n- " + "\n- ".join(self.related_files)
        return text

    def should_refine(self, phase: WorkflowPhase) -> bool:
        return phase.id == "fix"
