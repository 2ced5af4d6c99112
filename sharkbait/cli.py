"""CLI for sharkbait: chat, ask, run and review commands."""

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from sharkbait import __version__
from sharkbait.agent.agent import Agent, context_manager_from, default_hooks
from sharkbait.agent.events import AgentEvent
from sharkbait.agent.llm import ConfigError, LLMClient
from sharkbait.agent.tools import build_tool_registry
from sharkbait.agents.factory import AGENT_CLASSES, AgentFactory
from sharkbait.agents.parallel import ParallelExecutor, parallel_review
from sharkbait.agents.workflows import WORKFLOWS, PhaseResult, WorkflowPhase
from sharkbait.config import settings

console = Console()

ROLE_COLORS = {role: cls.color for role, cls in AGENT_CLASSES.items()}


def render_event(event: AgentEvent, console: Console = console) -> None:
    """Print one event. Text deltas are written without a newline."""
    data = event.data
    if event.type == "text":
        console.print(data["content"], end="", markup=False, highlight=False)
    elif event.type == "tool_start":
        console.print(f"\n[dim]→ {data['name']}[/dim]")
    elif event.type == "tool_result":
        console.print(f"[green]✓ {data['name']}[/green] [dim]({data['duration_ms']}ms)[/dim]")
    elif event.type == "tool_error":
        console.print(f"[red]✗ {data['name']}: {data['error']}[/red]")
    elif event.type == "replan":
        console.print(f"\n[yellow]↻ Re-planning: {data['reason']}[/yellow]")
    elif event.type == "handoff":
        color = ROLE_COLORS.get(data["to"], "white")
        console.print(f"[{color}]⇢ handing off to {data['to']}[/{color}]")
    elif event.type == "agent_start":
        mode = f" ({data['mode']})" if data.get("mode") else ""
        console.print(f"[bold]{data['agent']}{mode}[/bold]")
    elif event.type == "error":
        console.print(f"\n[bold red]Error:[/bold red] {data['message']}")
    elif event.type == "done":
        console.print(
            f"\n[dim]done in {data.get('iterations', 0)} iteration(s), "
            f"{data.get('duration_ms', 0)}ms[/dim]"
        )


async def _stream(events) -> bool:
    """Render a stream; True when it ended in done."""
    ok = False
    async for event in events:
        render_event(event)
        ok = event.type == "done"
    return ok


def _factory() -> AgentFactory:
    return AgentFactory(
        LLMClient(settings),
        build_tool_registry(),
        hooks=default_hooks(settings),
        max_iterations=settings.MAX_ITERATIONS,
        context_manager_factory=lambda: context_manager_from(settings),
    )


# ── Commands ────────────────────────────────────────────────────


async def cmd_chat(args: argparse.Namespace) -> int:
    orchestrator = _factory().create_orchestrator()
    console.print(
        Panel.fit(
            f"Sharkbait {__version__}\nWorking directory: {settings.WORKING_DIR}\n"
            "Type /reset to clear the conversation, /exit to quit.",
            title="sharkbait",
        )
    )
    while True:
        try:
            line = await asyncio.to_thread(console.input, "[bold blue]> [/bold blue]")
        except (EOFError, KeyboardInterrupt):
            console.print()
            return 0
        line = line.strip()
        if not line:
            continue
        if line in ("/exit", "/quit"):
            return 0
        if line == "/reset":
            orchestrator.reset()
            for agent in orchestrator.agents.values():
                agent.reset()
            console.print("[dim]Conversation cleared.[/dim]")
            continue
        await _stream(orchestrator.run(line))


async def cmd_ask(args: argparse.Namespace) -> int:
    agent = Agent(config=settings)
    ok = await _stream(agent.run(args.question))
    return 0 if ok else 1


async def cmd_run(args: argparse.Namespace) -> int:
    orchestrator = _factory().create_orchestrator()
    if args.agent:
        events = orchestrator.dispatch(args.agent, args.task, args.mode)
    else:
        events = orchestrator.run(args.task, args.mode)
    ok = await _stream(events)
    return 0 if ok else 1


async def cmd_review(args: argparse.Namespace) -> int:
    executor = ParallelExecutor(_factory())
    with console.status("Reviewing (bugs, security, style, performance)..."):
        result = await parallel_review(executor, args.input)

    table = Table(title="Review passes")
    table.add_column("Mode", style="yellow")
    table.add_column("Status", justify="center")
    table.add_column("Tools", justify="right")
    table.add_column("Duration", justify="right")
    for r in result.results:
        status = "[green]ok[/green]" if r.success else f"[red]{r.error}[/red]"
        table.add_row(r.mode or "-", status, str(len(r.tools_called)), f"{r.duration_ms}ms")
    console.print(table)
    console.print(Markdown(result.consolidated))
    return 0 if any(r.success for r in result.results) else 1


async def cmd_workflow(args: argparse.Namespace) -> int:
    workflow = WORKFLOWS[args.name](_factory())
    options = workflow.default_options()
    options.dry_run = args.dry_run

    def phase_started(phase: WorkflowPhase) -> None:
        mode = f" ({phase.mode})" if phase.mode else ""
        console.print(f"[bold]▸ {phase.name}[/bold] [dim]{phase.agent}{mode}[/dim]")

    def phase_completed(phase: WorkflowPhase, result: PhaseResult) -> None:
        if result.status == "completed":
            console.print(
                f"  [green]✓[/green] [dim]{result.iterations} iteration(s), {result.duration_ms}ms[/dim]"
            )
        else:
            style = "red" if phase.required else "yellow"
            console.print(f"  [{style}]✗ {result.error}[/{style}]")

    options.on_phase_start = phase_started
    options.on_phase_complete = phase_completed
    options.on_refinement = lambda n, e: console.print(
        f"  [dim]review {n}: {'approved' if e.approved else e.severity}[/dim]"
    )

    console.print(Panel.fit(workflow.description, title=f"workflow: {workflow.name}"))
    result = await workflow.execute(args.input, options)
    if not result.success:
        console.print(f"[bold red]Workflow failed:[/bold red] {result.error}")
        return 1
    console.print(Markdown(result.output))
    return 0


# ── Entry point ─────────────────────────────────────────────────


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="sharkbait",
        description="AI coding assistant with specialized agents",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command")

    chat_parser = subparsers.add_parser("chat", help="Interactive session through the orchestrator")
    chat_parser.set_defaults(func=cmd_chat)

    ask_parser = subparsers.add_parser("ask", help="Ask a single question")
    ask_parser.add_argument("question", help="The question to ask")
    ask_parser.set_defaults(func=cmd_ask)

    run_parser = subparsers.add_parser("run", help="Run a task, routed to the best agent")
    run_parser.add_argument("task", help="What to do")
    run_parser.add_argument(
        "--agent",
        choices=[r for r in AGENT_CLASSES if r != "orchestrator"],
        default=None,
        help="Skip routing and send the task to this agent",
    )
    run_parser.add_argument("--mode", default=None, help="Prompting mode for the agent")
    run_parser.set_defaults(func=cmd_run)

    review_parser = subparsers.add_parser("review", help="Parallel code review")
    review_parser.add_argument("input", help="What to review, e.g. 'the staged changes'")
    review_parser.set_defaults(func=cmd_review)

    workflow_parser = subparsers.add_parser("workflow", help="Run a multi-phase workflow")
    workflow_parser.add_argument("name", choices=list(WORKFLOWS), help="Workflow to run")
    workflow_parser.add_argument("input", help="Feature request, bug report or change description")
    workflow_parser.add_argument(
        "--dry-run", action="store_true", help="Skip the review-and-improve loops"
    )
    workflow_parser.set_defaults(func=cmd_workflow)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        sys.exit(asyncio.run(args.func(args)))
    except ConfigError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        sys.exit(2)
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
