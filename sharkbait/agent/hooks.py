"""PreToolUse / PostToolUse hook chains.

A HookChain is built by whoever constructs an agent and passed into its
turn loop. There is no process-wide registry.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


@dataclass
class PreToolUseContext:
    tool_name: str
    args: dict
    agent_name: str


@dataclass
class PreToolUseResult:
    proceed: bool = True
    args: dict | None = None  # rewritten arguments, None keeps them
    reason: str | None = None


@dataclass
class PostToolUseContext:
    tool_name: str
    args: dict
    result: Any
    duration_ms: int
    success: bool
    error: str | None = None


@dataclass
class PostToolUseResult:
    result: Any = None
    modified: bool = False


PreToolUseHandler = Callable[[PreToolUseContext], Awaitable[PreToolUseResult]]
PostToolUseHandler = Callable[[PostToolUseContext], Awaitable[PostToolUseResult]]


@dataclass
class _Entry:
    name: str
    priority: int
    handler: Callable


@dataclass
class HookChain:
    _pre: list[_Entry] = field(default_factory=list)
    _post: list[_Entry] = field(default_factory=list)

    def add_pre_tool_use(
        self, name: str, handler: PreToolUseHandler, priority: int = 100
    ) -> None:
        self._pre.append(_Entry(name, priority, handler))
        self._pre.sort(key=lambda e: e.priority)

    def add_post_tool_use(
        self, name: str, handler: PostToolUseHandler, priority: int = 100
    ) -> None:
        self._post.append(_Entry(name, priority, handler))
        self._post.sort(key=lambda e: e.priority)

    @property
    def empty(self) -> bool:
        return not self._pre and not self._post

    def names(self) -> list[str]:
        return [e.name for e in self._pre] + [e.name for e in self._post]

    async def run_pre_tool_use(self, context: PreToolUseContext) -> PreToolUseResult:
        """Run handlers in priority order; the first veto wins."""
        args = dict(context.args)
        for entry in self._pre:
            try:
                result = await entry.handler(
                    PreToolUseContext(context.tool_name, args, context.agent_name)
                )
            except Exception:
                logger.exception("PreToolUse hook '%s' failed", entry.name)
                continue
            if not result.proceed:
                logger.warning(
                    "PreToolUse hook '%s' blocked %s: %s",
                    entry.name,
                    context.tool_name,
                    result.reason,
                )
                return result
            if result.args is not None:
                args = result.args
        return PreToolUseResult(proceed=True, args=args)

    async def run_post_tool_use(self, context: PostToolUseContext) -> Any:
        """Thread the tool result through every handler and return it."""
        current = context.result
        for entry in self._post:
            try:
                result = await entry.handler(
                    PostToolUseContext(
                        context.tool_name,
                        context.args,
                        current,
                        context.duration_ms,
                        context.success,
                        context.error,
                    )
                )
            except Exception:
                logger.exception("PostToolUse hook '%s' failed", entry.name)
                continue
            if result.modified:
                current = result.result
        return current

    @classmethod
    def with_builtins(cls) -> HookChain:
        chain = cls()
        chain.add_pre_tool_use("shell-safety", shell_safety_hook, priority=10)
        chain.add_pre_tool_use("sensitive-file-warning", sensitive_file_hook, priority=20)
        return chain


# ── Built-in hooks ──────────────────────────────────────────────

DANGEROUS_PATTERNS = [
    re.compile(r"rm\s+-rf\s+[/~]", re.IGNORECASE),
    re.compile(r"rm\s+-rf\s+\*"),
    re.compile(r">\s*/dev/sd[a-z]", re.IGNORECASE),
    re.compile(r"mkfs\.", re.IGNORECASE),
    re.compile(r"dd\s+if=.*of=/dev", re.IGNORECASE),
    re.compile(r"chmod\s+-R\s+777", re.IGNORECASE),
    re.compile(r":\(\)\s*\{\s*:\s*\|\s*:\s*&\s*\}"),  # fork bomb
]

SENSITIVE_FILES = [
    re.compile(r"\.env$", re.IGNORECASE),
    re.compile(r"\.env\.(local|prod|production)", re.IGNORECASE),
    re.compile(r"\.ssh/", re.IGNORECASE),
    re.compile(r"id_rsa", re.IGNORECASE),
    re.compile(r"\.aws/credentials", re.IGNORECASE),
    re.compile(r"\.npmrc$", re.IGNORECASE),
    re.compile(r"(passwords?|secrets?)\.(txt|json|ya?ml)", re.IGNORECASE),
]


async def shell_safety_hook(context: PreToolUseContext) -> PreToolUseResult:
    if context.tool_name != "run_command":
        return PreToolUseResult()
    command = str(context.args.get("command", ""))
    for pattern in DANGEROUS_PATTERNS:
        if pattern.search(command):
            return PreToolUseResult(
                proceed=False,
                reason=f"Blocked potentially dangerous command matching pattern: {pattern.pattern}",
            )
    return PreToolUseResult()


async def sensitive_file_hook(context: PreToolUseContext) -> PreToolUseResult:
    if context.tool_name not in ("read_file", "write_file", "edit_file"):
        return PreToolUseResult()
    path = str(context.args.get("path", ""))
    if any(p.search(path) for p in SENSITIVE_FILES):
        logger.warning("%s is accessing sensitive file: %s", context.agent_name, path)
    return PreToolUseResult()
