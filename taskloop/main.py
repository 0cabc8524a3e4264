"""taskloop command-line entry point.

    taskloop "Fix the failing test" --cwd ./project --max-turns 50

Exit codes: 0 completed or halted, 1 failed, 2 turn limit exceeded.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from taskloop.agent import run
from taskloop.config import Settings
from taskloop.engine.conversation import Conversation
from taskloop.engine.results import Completed, Failed, Halted, RunResult, TurnLimitExceeded
from taskloop.skills import discover_skills

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskloop", description="Run a coding agent on a task.")
    parser.add_argument("task", help="Task description")
    parser.add_argument("--max-turns", type=int, default=None, help="Maximum model round trips")
    parser.add_argument("--cwd", default=None, help="Working directory for the local executor")
    parser.add_argument("--timeout", type=float, default=None, help="Shell timeout in seconds")
    parser.add_argument(
        "--skills", nargs="*", default=None, metavar="DIR", help="Skill directories to scan"
    )
    parser.add_argument("--instructions", default=None, help="Extra system prompt instructions")
    parser.add_argument("--quiet", action="store_true", help="Do not stream model output")
    return parser


def _print_chunk(chunk: str, _conversation: Conversation) -> None:
    sys.stdout.write(chunk)
    sys.stdout.flush()


def report(result: RunResult) -> int:
    """Print the outcome and return the process exit code."""
    if isinstance(result, Completed):
        print(f"\n[done after {result.turns} turns] {result.message}")
        return 0
    if isinstance(result, Halted):
        print(f"\n[halted after {result.turns} turns] {result.message}")
        return 0
    if isinstance(result, TurnLimitExceeded):
        print(f"\n[turn limit reached after {result.turns} turns]", file=sys.stderr)
        return 2
    if isinstance(result, Failed):
        print(f"\n[failed] {result.reason}", file=sys.stderr)
        return 1
    raise TypeError(f"unexpected result: {result!r}")


def main(argv: list[str] | None = None) -> int:
    """Entry point -- parse settings and arguments, run the task."""
    args = build_parser().parse_args(argv)

    overrides: dict[str, object] = {}
    if args.max_turns is not None:
        overrides["max_turns"] = args.max_turns
    if args.cwd is not None:
        overrides["workspace_dir"] = args.cwd
    if args.timeout is not None:
        overrides["shell_timeout"] = args.timeout
    settings = Settings(**overrides)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    logger.info("Model: %s, max_turns: %d", settings.model, settings.max_turns)

    skill_dirs = args.skills if args.skills is not None else settings.skill_dirs
    skills = discover_skills(skill_dirs) if skill_dirs else []

    result = asyncio.run(
        run(
            args.task,
            settings=settings,
            instructions=args.instructions,
            skills=skills,
            on_chunk=None if args.quiet else _print_chunk,
        )
    )
    return report(result)


if __name__ == "__main__":
    sys.exit(main())
