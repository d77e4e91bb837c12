# src/ducktodo/cli/commands.py

from __future__ import annotations

import argparse
import logging
from collections.abc import Callable

import argcomplete

from ..core.state import AppState
from ..errors import ValidationError
from ..formats import SUPPORTED_FORMATS
from ..tasks import task_api
from ..tasks.search import SearchQuery
from ..tasks.task_models import MAX_PRIORITY, MIN_PRIORITY, ImportStrategy, normalize_tags
from .display import format_names, format_tasks

CommandHandler = Callable[[AppState | None, argparse.Namespace], str]
ArgumentSetup = Callable[[argparse.ArgumentParser], None]

PROG = "ducktodo"
COMPLETION_SHELLS = ("bash", "zsh", "fish", "powershell")

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Subcommand registry: argument setup, handler and help text per command."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}
        self._setup: dict[str, ArgumentSetup | None] = {}
        self._aliases: dict[str, list[str]] = {}
        self._stateless: set[str] = set()

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        setup: ArgumentSetup | None = None,
        aliases: list[str] | None = None,
        *,
        needs_state: bool = True,
    ) -> None:
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        self._setup[key] = setup
        self._aliases[key] = [a.lower() for a in aliases or []]
        for alias in self._aliases[key]:
            self._handlers[alias] = handler
            if not needs_state:
                self._stateless.add(alias)
        if not needs_state:
            self._stateless.add(key)

    def needs_state(self, name: str) -> bool:
        return name not in self._stateless

    def build_parser(self, prog: str = PROG) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(prog=prog, description="Manage your todos.")
        parser.add_argument(
            "--db-path",
            help="DuckDB database file (default: DUCKTODO_DB_PATH or ~/.ducktodo/todo.duckdb)",
        )
        subparsers = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)
        for name, help_text in self._help.items():
            sub = subparsers.add_parser(
                name, help=help_text, description=help_text, aliases=self._aliases[name]
            )
            setup = self._setup[name]
            if setup is not None:
                setup(sub)
        return parser

    def handle(self, state: AppState | None, args: argparse.Namespace) -> str:
        handler = self._handlers.get(args.command)
        if handler is None:
            raise ValidationError(f"Unknown command: {args.command}. Use --help for available commands.")
        logger.debug("Running command %s", args.command)
        return handler(state, args)


registry = CommandRegistry()


def _priority_help(what: str) -> str:
    return f"{what} ({MIN_PRIORITY}-{MAX_PRIORITY}, lower is more urgent)"


# ---- tasks ----


def _setup_add(p: argparse.ArgumentParser) -> None:
    p.add_argument("description", help="The task description.")
    p.add_argument("due_date", nargs="?", help="The due date in YYYY-MM-DD format.")
    p.add_argument("--category", help="The category of the task.")
    p.add_argument("--tags", nargs="+", metavar="TAG", help="Tags, space or comma separated.")
    p.add_argument("--priority", help=_priority_help("Priority of the task"))


def cmd_add(state: AppState, args: argparse.Namespace) -> str:
    task = task_api.add_task(
        state,
        args.description,
        due_date=args.due_date,
        category=args.category,
        tags=normalize_tags(args.tags),
        priority=args.priority,
    )
    return f"Added task {task.id}: {task.description}"


def _setup_list(p: argparse.ArgumentParser) -> None:
    p.add_argument("--done-only", action="store_true", help="List only completed tasks.")


def cmd_list(state: AppState, args: argparse.Namespace) -> str:
    tasks = task_api.list_tasks(state, done_only=args.done_only)
    return format_tasks(tasks, show_completion_date=args.done_only)


def _setup_done(p: argparse.ArgumentParser) -> None:
    p.add_argument("id", type=int, help="The ID of the task.")


def cmd_done(state: AppState, args: argparse.Namespace) -> str:
    task = task_api.mark_done(state, args.id)
    return f"Marked task {task.id} as done on {task.completion_date.isoformat()}."


def _setup_update(p: argparse.ArgumentParser) -> None:
    p.add_argument("id", type=int, help="The ID of the task to update.")
    p.add_argument("--task", help="The new task description.")
    p.add_argument("--due-date", help="The new due date in YYYY-MM-DD format.")
    p.add_argument("--category", help="The new category of the task.")
    p.add_argument("--tags", nargs="+", metavar="TAG", help="Replace the task's tags.")
    p.add_argument("--priority", help=_priority_help("The new priority"))
    p.add_argument("--undone", action="store_true", help="Mark the task as not done.")


def cmd_update(state: AppState, args: argparse.Namespace) -> str:
    given = [args.task, args.due_date, args.category, args.tags, args.priority]
    if all(v is None for v in given) and not args.undone:
        raise ValidationError(
            "Nothing to update. Pass at least one of --task, --due-date, "
            "--category, --tags, --priority, --undone."
        )
    task = task_api.update_task(
        state,
        args.id,
        description=args.task,
        due_date=args.due_date,
        category=args.category,
        tags=normalize_tags(args.tags) if args.tags is not None else None,
        priority=args.priority,
        undone=args.undone,
    )
    return f"Updated task {task.id}: {task.description}"


def _setup_search(p: argparse.ArgumentParser) -> None:
    p.add_argument("query", nargs="?", help="Text to find in descriptions, categories or tags.")
    p.add_argument("--tag", action="append", metavar="TAG", help="Match any of these tags (repeatable).")
    p.add_argument("--category", help="Exact category name.")
    p.add_argument("--done-only", action="store_true", help="Only completed tasks.")


def cmd_search(state: AppState, args: argparse.Namespace) -> str:
    query = SearchQuery.build(
        text=args.query,
        tags=args.tag,
        category=args.category,
        done_only=args.done_only,
    )
    return format_tasks(task_api.search_tasks(state, query), show_completion_date=True)


# ---- categories / tags ----


def _setup_name(kind: str) -> ArgumentSetup:
    def setup(p: argparse.ArgumentParser) -> None:
        p.add_argument("name", help=f"The name of the {kind}.")

    return setup


def cmd_add_category(state: AppState, args: argparse.Namespace) -> str:
    return f"Added category: {state.task_store.add_category(args.name)}"


def cmd_delete_category(state: AppState, args: argparse.Namespace) -> str:
    detached = state.task_store.delete_category(args.name)
    return f"Deleted category: {args.name.strip()} ({detached} task(s) detached)"


def cmd_list_categories(state: AppState, args: argparse.Namespace) -> str:
    return format_names("Category", state.task_store.list_categories(), empty="No categories defined.")


def cmd_add_tag(state: AppState, args: argparse.Namespace) -> str:
    return f"Added tag: {state.task_store.add_tag(args.name)}"


def cmd_delete_tag(state: AppState, args: argparse.Namespace) -> str:
    detached = state.task_store.delete_tag(args.name)
    return f"Deleted tag: {args.name.strip()} ({detached} task(s) detached)"


def cmd_list_tags(state: AppState, args: argparse.Namespace) -> str:
    return format_names("Tag", state.task_store.list_tags(), empty="No tags defined.")


# ---- import / export ----


def _setup_import(p: argparse.ArgumentParser) -> None:
    p.add_argument("format", help=f"File format: {', '.join(SUPPORTED_FORMATS)}.")
    p.add_argument("path", help="The file to import from.")
    p.add_argument(
        "--strategy",
        choices=[s.value for s in ImportStrategy],
        default=ImportStrategy.SKIP.value,
        help="skip: keep matching tasks; remove: replace them; upsert: update them (default: skip).",
    )


def cmd_import(state: AppState, args: argparse.Namespace) -> str:
    summary = task_api.import_tasks(state, args.format, args.path, args.strategy)
    return f"Imported {args.path} with strategy '{args.strategy}': {summary.describe()}."


def _setup_export(p: argparse.ArgumentParser) -> None:
    p.add_argument("format", help=f"File format: {', '.join(SUPPORTED_FORMATS)}.")
    p.add_argument("path", help="The file to export to.")


def cmd_export(state: AppState, args: argparse.Namespace) -> str:
    count = task_api.export_tasks(state, args.format, args.path)
    return f"Exported {count} task(s) to {args.path}."


# ---- shell completion ----


def _setup_completion(p: argparse.ArgumentParser) -> None:
    p.add_argument("shell", choices=COMPLETION_SHELLS, help="The shell to generate the script for.")


def cmd_completion(state: AppState | None, args: argparse.Namespace) -> str:
    return argcomplete.shellcode([PROG], shell=args.shell)


registry.register("add", cmd_add, "Add a task with an optional due date, category, tags and priority.", _setup_add)
registry.register("list", cmd_list, "List all tasks, or only completed ones.", _setup_list, aliases=["ls"])
registry.register("done", cmd_done, "Mark a task as done.", _setup_done)
registry.register("update", cmd_update, "Update an existing task's details.", _setup_update)
registry.register("search", cmd_search, "Search tasks by text, tags, category or status.", _setup_search)
registry.register("add-category", cmd_add_category, "Add a category.", _setup_name("category"))
registry.register(
    "delete-category",
    cmd_delete_category,
    "Delete a category (its tasks are kept).",
    _setup_name("category"),
)
registry.register("list-categories", cmd_list_categories, "List all categories.")
registry.register("add-tag", cmd_add_tag, "Add a tag.", _setup_name("tag"))
registry.register("delete-tag", cmd_delete_tag, "Delete a tag (its tasks are kept).", _setup_name("tag"))
registry.register("list-tags", cmd_list_tags, "List all tags.")
registry.register("import", cmd_import, "Import tasks from a file.", _setup_import)
registry.register("export", cmd_export, "Export all tasks to a file.", _setup_export)
registry.register(
    "completion",
    cmd_completion,
    "Generate a shell completion script.",
    _setup_completion,
    needs_state=False,
)
